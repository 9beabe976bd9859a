import copy
from datetime import date, datetime, time
from typing import Any, List, Optional, Sequence

from vaultview.config.logger import get_logger
from vaultview.config.text_styles import EMPTY_CELL
from vaultview.model.records_model import Record
from vaultview.model.table_model import Table, TableRow
from vaultview.model.views_model import ColumnSpec

log = get_logger(__name__)


def project_cell(record: Record, column: ColumnSpec) -> Optional[Any]:
    """
    The cell for one record and column. Unknown or absent fields are empty (None). A
    value that can't be copied into the table is logged and left empty.
    """
    if not record.has(column.field):
        return None
    try:
        return copy.deepcopy(record.get(column.field))
    except Exception as e:
        log.warning("Could not project `%s` of %s: %s", column.field, record.id, e)
        return None


def project(records: Sequence[Record], columns: Sequence[ColumnSpec]) -> Table:
    """
    Project records onto the given columns, in the order given.
    """
    headers = [c.field for c in columns]
    rows = [TableRow(record.id, [project_cell(record, c) for c in columns]) for record in records]
    return Table(headers=headers, rows=rows)


def cell_text(value: Any) -> str:
    """
    Plain text for a cell, for display.
    """
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ", ".join(cell_text(v) for v in value if v is not None)
    if isinstance(value, dict):
        return ", ".join(f"{k}: {cell_text(v)}" for k, v in value.items())
    return str(value)


## Tests


def test_project_unknown_columns_are_empty():
    records = [Record("a.md", {"name": "Acme", "tags": ["x", "y"]}), Record("b.md", {})]
    columns: List[ColumnSpec] = [ColumnSpec("name"), ColumnSpec("nonexistent"), ColumnSpec("tags")]
    table = project(records, columns)
    assert table.headers == ["name", "nonexistent", "tags"]
    assert table.record_ids == ["a.md", "b.md"]
    assert table.column("nonexistent") == [None, None]
    assert table.column("name") == ["Acme", None]
    assert table.rows[0].cells[2] == ["x", "y"]


def test_cell_text():
    assert cell_text(None) == EMPTY_CELL
    assert cell_text(["a", "b"]) == "a, b"
    assert cell_text(date(2024, 5, 1)) == "2024-05-01"
    assert cell_text(3.0) == "3"
    assert cell_text(False) == "false"
