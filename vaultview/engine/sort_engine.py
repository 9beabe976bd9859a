"""
Multi-key stable sorting of records by typed field values.

Each value is normalized to a sort key according to the field's declared type. A
value that is absent or can't be read as that type is "missing", and missing values
always go after present ones, whichever the direction. Keys are applied from lowest
to highest priority with Python's stable sort, so later keys only break ties of
earlier ones and equal records keep their input order.
"""

import math
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from vaultview.config.logger import get_logger
from vaultview.model.records_model import Record
from vaultview.model.schema_model import FieldType
from vaultview.model.views_model import SortDirection, SortKey
from vaultview.schema.schema_registry import SchemaRegistry

log = get_logger(__name__)


class Missing(Exception):
    """The value can't be used as a sort key."""


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(_text(v) for v in value if v is not None)
    return str(value)


def text_key(value: Any) -> str:
    return _text(value)


def link_key(value: Any) -> str:
    """
    Links compare by their target text, so `[[Acme]]`, `[[Acme|ACME Inc]]` and an
    unquoted YAML `[[Acme]]` (which loads as a nested list) all sort as `Acme`.
    """
    while isinstance(value, (list, tuple)) and len(value) == 1:
        value = value[0]
    text = _text(value).strip()
    if text.startswith("[[") and text.endswith("]]"):
        text = text[2:-2]
    return text.split("|", 1)[0].strip()


def number_key(value: Any) -> float:
    if isinstance(value, bool):
        raise Missing()
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            raise Missing()
    else:
        raise Missing()
    if math.isnan(number):
        raise Missing()
    return number


def date_key(value: Any) -> datetime:
    """
    Dates compare as midnight of that day. Aware datetimes are normalized to UTC so
    they compare with naive ones.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            raise Missing()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise Missing()


def list_key(value: Any) -> Tuple[str, ...]:
    """
    Lists compare element by element on each element's text, a shorter prefix first.
    A single scalar counts as a one-element list.
    """
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value, key=_text) if isinstance(value, (set, frozenset)) else value
        return tuple(_text(v) for v in items if v is not None)
    return (_text(value),)


def boolean_key(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise Missing()


KEY_FUNCS: Dict[FieldType, Callable[[Any], Any]] = {
    FieldType.text: text_key,
    FieldType.link: link_key,
    FieldType.number: number_key,
    FieldType.date: date_key,
    FieldType.list: list_key,
    FieldType.boolean: boolean_key,
}


def infer_field_type(value: Any) -> FieldType:
    """
    The type family of a value whose field isn't in the schema.
    """
    if isinstance(value, bool):
        return FieldType.boolean
    if isinstance(value, (int, float)):
        return FieldType.number
    if isinstance(value, (date, datetime)):
        return FieldType.date
    if isinstance(value, (list, tuple, set, frozenset)):
        return FieldType.list
    return FieldType.text


# Order of type families when an unknown field holds mixed types.
_FAMILY_ORDER = [
    FieldType.boolean,
    FieldType.number,
    FieldType.date,
    FieldType.text,
    FieldType.list,
]


def untyped_key(value: Any) -> Tuple[int, Any]:
    field_type = infer_field_type(value)
    try:
        return (_FAMILY_ORDER.index(field_type), KEY_FUNCS[field_type](value))
    except Missing:
        return (_FAMILY_ORDER.index(FieldType.text), text_key(value))


def sort_value(value: Any, field_type: Optional[FieldType]) -> Optional[Any]:
    """
    The comparable key for a value, or None if the value counts as missing.
    """
    if value is None:
        return None
    try:
        if field_type is None:
            return untyped_key(value)
        return KEY_FUNCS[field_type](value)
    except Missing:
        return None


class SortEngine:
    def __init__(self, schema: Optional[SchemaRegistry] = None):
        self.schema = schema or SchemaRegistry([])

    def sort_by(self, records: List[Record], sort_key: SortKey) -> List[Record]:
        field_type = self.schema.field_type(sort_key.field)
        present: List[Tuple[Any, Record]] = []
        missing: List[Record] = []
        for record in records:
            key = sort_value(record.get(sort_key.field), field_type)
            if key is None:
                missing.append(record)
            else:
                present.append((key, record))

        present.sort(key=lambda pair: pair[0], reverse=sort_key.descending)
        return [record for _, record in present] + missing

    def apply(self, records: Sequence[Record], sort_keys: Sequence[SortKey]) -> List[Record]:
        result = list(records)
        for sort_key in reversed(sort_keys):
            result = self.sort_by(result, sort_key)
        if sort_keys:
            fields = ", ".join(str(k.field) for k in sort_keys)
            log.debug("Sorted %s records by %s", len(result), fields)
        return result


def apply(
    records: Sequence[Record],
    sort_keys: Sequence[SortKey],
    schema: Optional[SchemaRegistry] = None,
) -> List[Record]:
    return SortEngine(schema).apply(records, sort_keys)


## Tests


def _ids(records: List[Record]) -> List[str]:
    return [r.id for r in records]


def test_descending_missing_last():
    from vaultview.model.schema_model import Field

    schema = SchemaRegistry([Field("name", FieldType.text)])
    records = [
        Record("1", {"name": "Acme"}),
        Record("2", {"name": None}),
        Record("3", {"name": "Zeta"}),
    ]
    desc = apply(records, [SortKey("name", SortDirection.descending)], schema)
    assert [r.get("name") for r in desc] == ["Zeta", "Acme", None]
    asc = apply(records, [SortKey("name")], schema)
    assert [r.get("name") for r in asc] == ["Acme", "Zeta", None]


def test_multi_key_and_stability():
    from vaultview.model.schema_model import Field

    schema = SchemaRegistry([Field("Priority", FieldType.number), Field("name", FieldType.text)])
    records = [
        Record("a", {"Priority": 2, "name": "b"}),
        Record("b", {"Priority": "10", "name": "a"}),
        Record("c", {"Priority": 2, "name": "a"}),
        Record("d", {"name": "z"}),
        Record("e", {"Priority": 2, "name": "a"}),
    ]
    keys = [SortKey("Priority", SortDirection.descending), SortKey("name")]
    result = apply(records, keys, schema)
    assert _ids(result) == ["b", "c", "e", "a", "d"]
    assert _ids(apply(result, keys, schema)) == _ids(result)
    assert _ids(apply(records, [], schema)) == ["a", "b", "c", "d", "e"]


def test_typed_keys():
    assert sort_value("12", FieldType.number) == 12.0
    assert sort_value("n/a", FieldType.number) is None
    assert sort_value(True, FieldType.number) is None
    assert sort_value(date(2024, 1, 2), FieldType.date) == datetime(2024, 1, 2)
    assert sort_value("2024-01-02T10:00:00Z", FieldType.date) == datetime(2024, 1, 2, 10)
    assert sort_value("not a date", FieldType.date) is None
    assert sort_value(["b", "a"], FieldType.list) == ("b", "a")
    assert sort_value(["a"], FieldType.list) < sort_value(["a", "b"], FieldType.list)
    assert sort_value([["Acme"]], FieldType.link) == "Acme"
    assert sort_value("[[Acme|ACME Inc]]", FieldType.link) == "Acme"
    assert sort_value(False, FieldType.boolean) < sort_value(True, FieldType.boolean)


def test_unknown_fields_sort_by_type_family():
    records = [
        Record("1", {"x": "b"}),
        Record("2", {"x": 3}),
        Record("3", {"x": "a"}),
        Record("4", {"x": 1.5}),
        Record("5", {}),
    ]
    assert _ids(apply(records, [SortKey("x")])) == ["4", "2", "3", "1", "5"]
