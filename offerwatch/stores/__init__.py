"""Data stores for persistence and caching.

Stores handle:
- PostgreSQL: DB session, ORM base, connection pool
- Redis: caching, locks, TTL policies

No matching/mapping logic in stores - that belongs in services.
"""
