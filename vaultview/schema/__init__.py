"""
Schema of typed fields for one kind of record, and where it comes from.
"""

from vaultview.schema.file_class import load_file_class
from vaultview.schema.schema_registry import SchemaRegistry

__all__ = ["SchemaRegistry", "load_file_class"]
