from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class TableRow:
    """
    One projected row. `cells` line up with the table headers. An empty cell is None.
    """

    record_id: str
    cells: List[Optional[Any]]


@dataclass(frozen=True)
class Table:
    headers: List[str] = field(default_factory=list)
    rows: List[TableRow] = field(default_factory=list)

    @property
    def record_ids(self) -> List[str]:
        return [row.record_id for row in self.rows]

    def column(self, header: str) -> List[Optional[Any]]:
        i = self.headers.index(header)
        return [row.cells[i] for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)
