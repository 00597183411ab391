"""Infrastructure Layer — database, auth provider and logging plumbing.

Invariants:
    - Infrastructure never imports from core/ domain logic (errors excepted)
    - External failures mapped onto the WaypointError hierarchy

Design Decisions:
    - Thin wrappers over SQLAlchemy and firebase_admin; the rest of the app
      depends on FastAPI dependencies, not on the clients directly
"""
