"""
Storage subsystem.

Components:
- errors.py: storage exception types
- sqlite_storage.py: SQLite-backed task storage (default)
- json_storage.py: single-file JSON task storage
- preferences.py: key-value view settings (language, theme)
"""
