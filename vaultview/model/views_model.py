"""
The data model for saved views: which columns to show, which records to keep, and
how to order them. Views reference fields by name only, so a view stays valid as the
schema evolves.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from vaultview.util.parse_key_vals import parse_bool


@dataclass(frozen=True)
class Predicate:
    """
    A user-authored boolean test over a single field's value. `expression` is the
    source text of the test, with the field's value bound to `value`.
    """

    field: str
    expression: str

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Predicate":
        return cls(field=str(d["field"]), expression=str(d["expression"]))

    def as_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "expression": self.expression}


class SortDirection(Enum):
    ascending = "ascending"
    descending = "descending"

    @classmethod
    def parse(cls, direction_str: str) -> "SortDirection":
        canon = direction_str.strip().lower()
        aliases = {"asc": "ascending", "desc": "descending"}
        try:
            return cls(aliases.get(canon, canon))
        except ValueError:
            raise ValueError(
                f"Invalid sort direction: `{direction_str}`. Valid options are: `ascending`, `descending`"
            )


@dataclass(frozen=True)
class SortKey:
    field: str
    direction: SortDirection = SortDirection.ascending

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.descending

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SortKey":
        return cls(
            field=str(d["field"]),
            direction=SortDirection.parse(str(d.get("direction", "ascending"))),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "direction": self.direction.value}


@dataclass(frozen=True)
class ColumnSpec:
    field: str
    visible: bool = True
    position: int = 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ColumnSpec":
        return cls(
            field=str(d["field"]),
            visible=parse_bool(d.get("visible", True)),
            position=int(d.get("position", 0)),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "visible": self.visible, "position": self.position}


@dataclass(frozen=True)
class View:
    """
    A named, persisted combination of column layout, filters, and sort order.

    A record passes the view if it satisfies every filter. Sort keys are in priority
    order: later keys only break ties of earlier ones.
    """

    name: str
    columns: List[ColumnSpec] = field(default_factory=list)
    filters: List[Predicate] = field(default_factory=list)
    sort_keys: List[SortKey] = field(default_factory=list)

    def visible_columns(self) -> List[ColumnSpec]:
        """Visible columns in position order. Ties keep their listed order."""
        return sorted((c for c in self.columns if c.visible), key=lambda c: c.position)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "View":
        return cls(
            name=str(d["name"]),
            columns=[ColumnSpec.from_dict(c) for c in d.get("columns") or []],
            filters=[Predicate.from_dict(p) for p in d.get("filters") or []],
            sort_keys=[SortKey.from_dict(k) for k in d.get("sort_keys") or []],
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.as_dict() for c in self.columns],
            "filters": [p.as_dict() for p in self.filters],
            "sort_keys": [k.as_dict() for k in self.sort_keys],
        }

    def __str__(self):
        return (
            f"View({self.name!r}: {len(self.columns)} columns, "
            f"{len(self.filters)} filters, {len(self.sort_keys)} sort keys)"
        )


## Tests


def test_view_dict_roundtrip():
    view = View(
        name="CS companies",
        columns=[ColumnSpec("name", True, 0), ColumnSpec("website", False, 1)],
        filters=[
            Predicate(
                "majors",
                "if (value) {return value.includes('Computer Science')} else {return false}",
            )
        ],
        sort_keys=[SortKey("Priority", SortDirection.descending), SortKey("name")],
    )
    assert View.from_dict(view.as_dict()) == view


def test_visible_columns_order():
    view = View(
        name="v",
        columns=[
            ColumnSpec("c", True, 2),
            ColumnSpec("hidden", False, 0),
            ColumnSpec("a", True, 1),
            ColumnSpec("b", True, 1),
        ],
    )
    assert [c.field for c in view.visible_columns()] == ["a", "b", "c"]


def test_sort_direction_parse():
    assert SortDirection.parse("DESC") == SortDirection.descending
    assert SortDirection.parse("ascending") == SortDirection.ascending
    try:
        SortDirection.parse("sideways")
        assert False
    except ValueError:
        pass


def test_column_visibility_from_text():
    assert not ColumnSpec.from_dict({"field": "a", "visible": "false"}).visible
    assert not ColumnSpec.from_dict({"field": "a", "visible": "no"}).visible
    assert ColumnSpec.from_dict({"field": "a", "visible": "True"}).visible
    assert ColumnSpec.from_dict({"field": "a"}).visible
    try:
        ColumnSpec.from_dict({"field": "a", "visible": "maybe"})
        assert False
    except ValueError:
        pass
