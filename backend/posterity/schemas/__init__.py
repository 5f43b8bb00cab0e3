"""Pydantic Schemas - request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (addresses, u32 fields, decimals)
    - Member states leave the API as lowercase enum names ("alive")

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
