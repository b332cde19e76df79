"""Concrete stores behind the content engine's contracts.

- **memory**: dictionary-backed registry and entry store
- **database**: SQLAlchemy (asyncpg or aiosqlite) registry and entry store
- **seed**: content type definitions loaded from JSON
"""
