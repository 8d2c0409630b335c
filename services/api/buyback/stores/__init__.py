"""Data stores for persistence and coordination.

Stores handle:
- PostgreSQL: DB session, pricing repository, ORM operations
- Redis: locks (sync gate), rate-limit counters

No business/pricing logic in stores - that belongs in services.
"""
