"""Services Layer — orchestration between the pure core and the database.

Invariants:
    - Every rejection is raised before the first mutation of a row
    - One commit per successful operation

Design Decisions:
    - One service class per aggregate (exploration, catalog)
"""
