"""Adapters for the access review engine.

Contains:
- repositories.py  — SQLAlchemy repositories for the primary database, including the append-only audit log
"""

__all__: list[str] = []
