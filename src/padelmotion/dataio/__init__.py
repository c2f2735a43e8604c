"""Data input/output helpers (session storage, CSV export and file names).

Utility modules here keep disk-level concerns isolated from the rest of the
application:
- :mod:`session_store` persists finished sessions.
- :mod:`export` writes per-movement CSV files and zips them.
- :mod:`csv_writer` and :mod:`file_paths` hold the shared low-level helpers.
"""
