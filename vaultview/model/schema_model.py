from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class FieldType(Enum):
    """Declared type of a schema field. Drives how values compare when sorting."""

    text = "text"
    number = "number"
    date = "date"
    list = "list"
    boolean = "boolean"
    link = "link"


@dataclass(frozen=True)
class Field:
    """
    A named, typed attribute defined once in the schema and referenced by records
    and views.
    """

    name: str
    type: FieldType = FieldType.text
    default_value: Optional[Any] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Field":
        return cls(
            name=str(d["name"]),
            type=FieldType(d.get("type", FieldType.text.value)),
            default_value=d.get("default_value"),
        )

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "type": self.type.value}
        if self.default_value is not None:
            d["default_value"] = self.default_value
        return d

    def __str__(self):
        return f"{self.name} ({self.type.value})"


## Tests


def test_field_dict_roundtrip():
    field = Field("Priority", FieldType.text, default_value="Low")
    assert Field.from_dict(field.as_dict()) == field
    assert Field.from_dict({"name": "Done"}).type == FieldType.text
    assert "default_value" not in Field("name").as_dict()
