"""Infrastructure Layer - database access, chain time and cross-cutting concerns.

Invariants:
    - Infrastructure never imports core/ economic logic (errors excepted)
    - All driver exceptions mapped to core error types
"""
