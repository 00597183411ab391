"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Randomness and time are injected, never read from globals

Design Decisions:
    - Functional core separated from imperative shell: services load rows,
      core decides, services persist
"""
