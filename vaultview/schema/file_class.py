"""
Read a schema from a file-class note: a Markdown file whose YAML frontmatter lists
the fields shared by one kind of note, e.g.

    ---
    fields:
      - name: Priority
        type: Select
        default: Low
      - name: majors
        type: Multi
    ---

Field types may be given as vaultview's own type names or as the usual file-class
widget names, which are mapped to the nearest field type.
"""

from pathlib import Path
from typing import Any, Dict, List

from frontmatter_format import fmf_read_frontmatter, FmFormatError

from vaultview.config.logger import get_logger
from vaultview.errors import FileFormatError, InvalidSchema
from vaultview.model.schema_model import Field, FieldType
from vaultview.schema.schema_registry import SchemaRegistry

log = get_logger(__name__)


WIDGET_TYPES: Dict[str, FieldType] = {
    "input": FieldType.text,
    "select": FieldType.text,
    "cycle": FieldType.text,
    "formula": FieldType.text,
    "yaml": FieldType.text,
    "json": FieldType.text,
    "number": FieldType.number,
    "date": FieldType.date,
    "datetime": FieldType.date,
    "time": FieldType.date,
    "multi": FieldType.list,
    "multifile": FieldType.list,
    "multimedia": FieldType.list,
    "list": FieldType.list,
    "boolean": FieldType.boolean,
    "file": FieldType.link,
    "media": FieldType.link,
}


def parse_field_type(type_str: Any) -> FieldType:
    """
    Map a declared type to a FieldType. Unknown types fall back to text.
    """
    if type_str is None:
        return FieldType.text
    canon = str(type_str).strip().lower()
    try:
        return FieldType(canon)
    except ValueError:
        pass
    if canon in WIDGET_TYPES:
        return WIDGET_TYPES[canon]

    log.warning("Unknown field type `%s`, treating as text", type_str)
    return FieldType.text


def fields_from_metadata(metadata: Dict[str, Any]) -> List[Field]:
    raw_fields = metadata.get("fields") or []
    if not isinstance(raw_fields, list):
        raise InvalidSchema(f"Expected `fields` to be a list, got: {type(raw_fields).__name__}")

    fields = []
    for raw in raw_fields:
        if not isinstance(raw, dict) or not raw.get("name"):
            log.warning("Skipping field definition without a name: %s", raw)
            continue
        fields.append(
            Field(
                name=str(raw["name"]),
                type=parse_field_type(raw.get("type")),
                default_value=raw.get("default", raw.get("default_value")),
            )
        )
    return fields


def load_file_class(path: Path | str) -> SchemaRegistry:
    """
    Load a SchemaRegistry from a file-class note. A note without frontmatter or
    without `fields` gives an empty schema.
    """
    try:
        metadata = fmf_read_frontmatter(path)
    except FmFormatError as e:
        raise FileFormatError(f"Could not read file class: {e}")

    if not metadata:
        log.info("No frontmatter in file class, using empty schema: %s", path)
        return SchemaRegistry()

    schema = SchemaRegistry(fields_from_metadata(metadata))
    log.info("Loaded schema with %s fields from %s", len(schema), path)
    return schema


## Tests


def test_parse_field_type():
    assert parse_field_type("Multi") == FieldType.list
    assert parse_field_type("number") == FieldType.number
    assert parse_field_type(" Boolean ") == FieldType.boolean
    assert parse_field_type("File") == FieldType.link
    assert parse_field_type("DateTime") == FieldType.date
    assert parse_field_type("Canvas") == FieldType.text
    assert parse_field_type(None) == FieldType.text


def test_fields_from_metadata():
    fields = fields_from_metadata(
        {
            "fields": [
                {"name": "Priority", "type": "Select", "default": "Low"},
                {"name": "Software Focus", "type": "Boolean"},
                {"type": "Input"},
                {"name": "Link", "type": "File"},
            ]
        }
    )
    assert fields == [
        Field("Priority", FieldType.text, "Low"),
        Field("Software Focus", FieldType.boolean),
        Field("Link", FieldType.link),
    ]
    assert fields_from_metadata({}) == []


def test_load_file_class(tmp_path):
    path = tmp_path / "company.md"
    path.write_text(
        "---\n"
        "fields:\n"
        "  - name: Work\n"
        "    type: Input\n"
        "  - name: majors\n"
        "    type: Multi\n"
        "  - name: Done\n"
        "    type: Boolean\n"
        "    default: false\n"
        "---\n"
        "Company notes.\n"
    )
    schema = load_file_class(path)
    assert [f.name for f in schema.list_fields()] == ["Work", "majors", "Done"]
    assert schema.field_type("majors") == FieldType.list

    plain = tmp_path / "plain.md"
    plain.write_text("No frontmatter here.\n")
    assert len(load_file_class(plain)) == 0
