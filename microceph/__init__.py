"""SQLite-backed cluster state for a small Ceph deployment: schema, records, and removal checks."""

__version__ = "0.1"