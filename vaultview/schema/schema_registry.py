from typing import Dict, Iterable, List, Optional

from vaultview.errors import InvalidSchema
from vaultview.model.schema_model import Field, FieldType


class SchemaRegistry:
    """
    The set of known fields for one kind of record. Read-only once built.

    Lookups of unknown fields return None rather than failing, since views and
    records may reference fields the schema no longer (or doesn't yet) define.
    """

    def __init__(self, fields: Iterable[Field] = ()):
        self._fields: Dict[str, Field] = {}
        for f in fields:
            if f.name in self._fields:
                raise InvalidSchema(f"Duplicate field name in schema: `{f.name}`")
            self._fields[f.name] = f

    def list_fields(self) -> List[Field]:
        """All fields, in declaration order."""
        return list(self._fields.values())

    def get_field(self, name: str) -> Optional[Field]:
        return self._fields.get(name)

    def field_type(self, name: str) -> Optional[FieldType]:
        f = self._fields.get(name)
        return f.type if f else None

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self):
        return f"SchemaRegistry({', '.join(str(f) for f in self._fields.values())})"


## Tests


def test_schema_registry_lookups():
    schema = SchemaRegistry(
        [Field("name"), Field("Priority", FieldType.text, "Low"), Field("Done", FieldType.boolean)]
    )
    assert [f.name for f in schema.list_fields()] == ["name", "Priority", "Done"]
    assert schema.get_field("Done") == Field("Done", FieldType.boolean)
    assert schema.get_field("nope") is None
    assert schema.field_type("Priority") == FieldType.text
    assert schema.field_type("nope") is None
    assert "name" in schema and len(schema) == 3


def test_schema_registry_rejects_duplicates():
    try:
        SchemaRegistry([Field("name"), Field("name", FieldType.link)])
        assert False
    except InvalidSchema as e:
        assert "name" in str(e)
