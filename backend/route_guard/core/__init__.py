"""Core Layer — pure routing logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - All functions are pure and deterministic

Design Decisions:
    - Functional core separated from imperative shell: the classifier, decision
      engine and loop guard are testable without mocks or a transport layer
"""
