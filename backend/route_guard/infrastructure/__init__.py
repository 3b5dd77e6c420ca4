"""Infrastructure Layer — external service clients and cross-cutting concerns.

Invariants:
    - Adapters translate transport failures into core/errors.py exceptions
    - No routing decisions are made here

Design Decisions:
    - Thin adapters behind core Protocols: services depend on the contract,
      tests swap in fakes
"""
