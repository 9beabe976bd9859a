from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Record:
    """
    One schema-typed document in the collection being viewed, e.g. a company note.

    `id` is stable (the note's path within the vault). `values` maps field names to
    values. A field can be absent: incomplete data is normal, not an error. Values are
    copied on construction and exposed read-only.
    """

    id: str
    values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, name: str) -> Optional[Any]:
        """Value of the field, or None if absent."""
        return self.values.get(name)

    def has(self, name: str) -> bool:
        return self.values.get(name) is not None

    def __str__(self):
        return f"Record({self.id})"


## Tests


def test_record_values_are_read_only_copy():
    source = {"name": "Acme", "majors": ["Biology"]}
    record = Record("companies/Acme.md", source)
    source["name"] = "Changed"

    assert record.get("name") == "Acme"
    assert record.get("missing") is None
    assert record.has("majors")
    assert not record.has("missing")
    try:
        record.values["name"] = "Other"  # type: ignore
        assert False
    except TypeError:
        pass
