"""Core Layer - pure economic engine, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Every operation validates all preconditions before its first mutation

Design Decisions:
    - Functional core separated from imperative shell: the shell hydrates a
      CommunityState, the core mutates it, the shell persists it (ADR: impureim sandwich)
"""
