"""
Commands for inspecting a vault's schema and records and for managing views.
"""

from pathlib import Path
from typing import Any, List, Optional

from rich.table import Table as RichTable
from rich.text import Text

from vaultview.commands.command_registry import vault_command
from vaultview.config.logger import get_console, get_logger
from vaultview.config.text_styles import COLOR_HEADING, COLOR_HINT, COLOR_KEY
from vaultview.engine.predicate_evaluator import validate_expression
from vaultview.engine.projection import cell_text, project
from vaultview.errors import InvalidInput
from vaultview.model.records_model import Record
from vaultview.model.table_model import Table
from vaultview.model.views_model import ColumnSpec, Predicate, SortDirection, SortKey, View
from vaultview.records.record_store import FILE_NAME_FIELD, RecordStore
from vaultview.schema.file_class import load_file_class
from vaultview.schema.schema_registry import SchemaRegistry
from vaultview.util.parse_key_vals import parse_bool
from vaultview.views.view_manager import ViewManager

log = get_logger(__name__)


## Option parsing


def as_list(value: Any) -> List[str]:
    """
    Options may be given once, repeated, or comma-separated.
    """
    if value is None or value is True:
        return []
    values = value if isinstance(value, list) else [value]
    return [part.strip() for v in values for part in str(v).split(",") if part.strip()]


def parse_columns(columns: Any, hidden: Any = None) -> List[ColumnSpec]:
    specs = [ColumnSpec(name, True, i) for i, name in enumerate(as_list(columns))]
    start = len(specs)
    specs += [ColumnSpec(name, False, start + i) for i, name in enumerate(as_list(hidden))]
    return specs


def parse_filters(filters: Any) -> List[Predicate]:
    """
    Filters are `field:expression`. Expressions may contain commas, so each filter is
    its own option.
    """
    if filters is None:
        return []
    predicates = []
    for f in filters if isinstance(filters, list) else [filters]:
        field, sep, expression = str(f).partition(":")
        if not sep or not field.strip() or not expression.strip():
            raise InvalidInput(f"Filter must be `field:expression`, got: `{f}`")
        predicates.append(Predicate(field.strip(), expression.strip()))
    return predicates


def parse_sort_keys(sort: Any) -> List[SortKey]:
    keys = []
    for item in as_list(sort):
        field, _, direction = item.partition(":")
        try:
            sort_direction = SortDirection.parse(direction) if direction else SortDirection.ascending
        except ValueError as e:
            raise InvalidInput(str(e))
        keys.append(SortKey(field.strip(), sort_direction))
    return keys


## Loading


def vault_path(vault: str) -> Path:
    path = Path(vault).expanduser().resolve()
    if not path.is_dir():
        raise InvalidInput(f"Vault directory not found: {path}")
    return path


def load_schema(vault_dir: Path, schema: Optional[str]) -> SchemaRegistry:
    if not schema:
        return SchemaRegistry([])
    path = Path(schema)
    if not path.is_absolute():
        path = vault_dir / path
    if not path.exists():
        raise InvalidInput(f"Schema file not found: {path}")
    return load_file_class(path)


## Output


def print_table(table: Table, title: Optional[str] = None) -> None:
    rich_table = RichTable(title=title, title_style=COLOR_HEADING, header_style=COLOR_KEY)
    for header in table.headers:
        rich_table.add_column(header)
    for row in table.rows:
        rich_table.add_row(*(cell_text(cell) for cell in row.cells))
    console = get_console()
    console.print(rich_table)
    console.print(Text(f"{len(table)} records", style=COLOR_HINT))


## Commands


@vault_command
def fields(schema: str, vault: str = ".") -> SchemaRegistry:
    """
    Show the fields defined by a file-class schema.
    """
    registry = load_schema(vault_path(vault), schema)
    rich_table = RichTable(title=schema, title_style=COLOR_HEADING, header_style=COLOR_KEY)
    for header in ("field", "type", "default"):
        rich_table.add_column(header)
    for f in registry.list_fields():
        rich_table.add_row(f.name, f.type.value, cell_text(f.default_value))
    get_console().print(rich_table)
    return registry


@vault_command
def records(
    vault: str = ".",
    folder: Optional[str] = None,
    file_class: Optional[str] = None,
    columns: Any = None,
) -> Table:
    """
    List the records of a vault, optionally restricted to a folder or file class,
    with the given columns.
    """
    store = RecordStore(vault_path(vault), folder=folder, file_class=file_class)
    specs = parse_columns(columns) or [ColumnSpec(FILE_NAME_FIELD)]
    table = project(store.load(), specs)
    print_table(table)
    return table


@vault_command
def views(vault: str = ".") -> List[str]:
    """
    List saved views, in creation order.
    """
    names = ViewManager.for_vault(vault_path(vault)).list()
    console = get_console()
    if not names:
        console.print(Text("No saved views.", style=COLOR_HINT))
    for name in names:
        console.print(name)
    return names


@vault_command
def show_view(
    name: str,
    vault: str = ".",
    folder: Optional[str] = None,
    file_class: Optional[str] = None,
    schema: Optional[str] = None,
) -> Table:
    """
    Compute and show the table for a saved view.
    """
    vault_dir = vault_path(vault)
    manager = ViewManager.for_vault(vault_dir, load_schema(vault_dir, schema))
    view = manager.load(name)
    loaded: List[Record] = RecordStore(vault_dir, folder=folder, file_class=file_class).load()
    table = manager.apply(view, loaded)
    print_table(table, title=view.name)
    return table


@vault_command
def save_view(
    name: str,
    columns: Any = None,
    hidden: Any = None,
    filter: Any = None,
    sort: Any = None,
    overwrite: Any = False,
    validate: Any = True,
    vault: str = ".",
) -> View:
    """
    Save a view. Columns and sort keys are comma-separated (`sort=Priority:desc,name`),
    and each filter is `field:expression`. Filters are checked for syntax errors
    unless `validate=false`.
    """
    predicates = parse_filters(filter)
    if parse_bool(validate):
        for predicate in predicates:
            validate_expression(predicate.expression)

    view = ViewManager.for_vault(vault_path(vault)).save(
        name,
        parse_columns(columns, hidden),
        predicates,
        parse_sort_keys(sort),
        overwrite=parse_bool(overwrite),
    )
    return view


@vault_command
def delete_view(name: str, vault: str = ".") -> None:
    """
    Delete a saved view.
    """
    ViewManager.for_vault(vault_path(vault)).delete(name)


## Tests


def test_option_parsing():
    assert parse_columns("name,website", hidden="notes") == [
        ColumnSpec("name", True, 0),
        ColumnSpec("website", True, 1),
        ColumnSpec("notes", False, 2),
    ]
    assert parse_filters(["majors:value?.includes('a, b') ?? false"]) == [
        Predicate("majors", "value?.includes('a, b') ?? false")
    ]
    assert parse_sort_keys("Priority:desc, name") == [
        SortKey("Priority", SortDirection.descending),
        SortKey("name", SortDirection.ascending),
    ]
    try:
        parse_filters("no expression")
        assert False
    except InvalidInput:
        pass
