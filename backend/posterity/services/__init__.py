"""Services Layer - the imperative shell around the core engine.

Invariants:
    - Every mutating call runs under the community write lock and one DB transaction
    - Services hydrate and persist CommunityState; they never decide economics

Design Decisions:
    - Persistence mapping separated from orchestration (ADR: no god objects)
"""
