"""Database Package — the declarative Base shared by every ORM model.

Engine and session lifecycle live in infrastructure/database.py.
"""
