"""
Read-only access to the externally owned notes that make up the records.
"""

from vaultview.records.record_store import FILE_NAME_FIELD, RecordStore

__all__ = ["FILE_NAME_FIELD", "RecordStore"]
