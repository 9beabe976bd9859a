"""
The core classes for modeling vaultview: schema fields, records, views, and tables.

We keep logic and dependencies minimal here.
"""

from vaultview.model.records_model import Record
from vaultview.model.schema_model import Field, FieldType
from vaultview.model.table_model import Table, TableRow
from vaultview.model.views_model import ColumnSpec, Predicate, SortDirection, SortKey, View

__all__ = [
    "ColumnSpec",
    "Field",
    "FieldType",
    "Predicate",
    "Record",
    "SortDirection",
    "SortKey",
    "Table",
    "TableRow",
    "View",
]
