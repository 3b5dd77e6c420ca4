"""Service Layer — async orchestration around the pure core.

Invariants:
    - Every I/O failure is converted to a classified state before it reaches core
    - Services hold no cross-request mutable state
"""
