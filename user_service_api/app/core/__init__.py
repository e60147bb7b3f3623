"""
Core building blocks: settings, logging, the error taxonomy and the
SQLite‑backed document store.
"""
