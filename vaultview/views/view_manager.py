from pathlib import Path
from typing import List, Optional, Sequence

from vaultview.config.logger import get_logger
from vaultview.config.text_styles import EMOJI_SAVED
from vaultview.engine.filter_engine import FilterEngine
from vaultview.engine.projection import project
from vaultview.engine.sort_engine import SortEngine
from vaultview.errors import DuplicateNameError, InvalidInput, NotFoundError
from vaultview.model.records_model import Record
from vaultview.model.table_model import Table
from vaultview.model.views_model import ColumnSpec, Predicate, SortKey, View
from vaultview.schema.schema_registry import SchemaRegistry
from vaultview.views.view_store import ViewStore

log = get_logger(__name__)


class ViewManager:
    """
    Saves, loads and applies named views. Views are resolved against the schema and
    records only when applied, so a saved view keeps working as fields come and go.
    """

    def __init__(
        self,
        store: ViewStore,
        schema: Optional[SchemaRegistry] = None,
        filter_engine: Optional[FilterEngine] = None,
    ):
        self.store = store
        self.schema = schema or SchemaRegistry([])
        self.filter_engine = filter_engine or FilterEngine()

    @classmethod
    def for_vault(cls, vault_dir: Path, schema: Optional[SchemaRegistry] = None) -> "ViewManager":
        return cls(ViewStore.for_vault(vault_dir), schema)

    def save(
        self,
        name: str,
        columns: Sequence[ColumnSpec],
        filters: Sequence[Predicate],
        sort_keys: Sequence[SortKey],
        overwrite: bool = False,
    ) -> View:
        """
        Save a view. Raises DuplicateNameError if the name is taken, unless `overwrite`
        is set, in which case the view is replaced in its original position.
        """
        if not name or not name.strip():
            raise InvalidInput("View name must not be empty")

        view = View(
            name=name,
            columns=list(columns),
            filters=list(filters),
            sort_keys=list(sort_keys),
        )
        with self.store.persisted.lock:
            if not overwrite and self.store.get(name) is not None:
                raise DuplicateNameError(f"View already exists: `{name}`")
            self.store.put(view)

        log.message("%s Saved view: %s", EMOJI_SAVED, view)
        return view

    def load(self, name: str) -> View:
        view = self.store.get(name)
        if view is None:
            raise NotFoundError(f"View not found: `{name}`")
        return view

    def delete(self, name: str) -> None:
        if not self.store.remove(name):
            raise NotFoundError(f"View not found: `{name}`")
        log.message("%s Deleted view: `%s`", EMOJI_SAVED, name)

    def exists(self, name: str) -> bool:
        return self.store.get(name) is not None

    def list(self) -> List[str]:
        """Names of all saved views, in creation order."""
        return [view.name for view in self.store.read_all()]

    def apply(self, view: View, records: Sequence[Record]) -> Table:
        """
        Compute the table for a view: filter, then sort, then project the visible
        columns. Always recomputed from the given records.
        """
        filtered = self.filter_engine.apply(records, view.filters)
        ordered = SortEngine(self.schema).apply(filtered, view.sort_keys)
        table = project(ordered, view.visible_columns())
        log.info("Applied %s: %s of %s records", view, len(table), len(records))
        return table


## Tests


def test_save_load_delete(tmp_path: Path):
    manager = ViewManager.for_vault(tmp_path)
    columns = [ColumnSpec("name", True, 0), ColumnSpec("website", False, 1)]
    filters = [Predicate("majors", "if (value) {return value.includes('Computer Science')} else {return false}")]
    sort_keys = [SortKey.from_dict({"field": "Priority", "direction": "descending"})]

    saved = manager.save("CS companies", columns, filters, sort_keys)
    assert manager.load("CS companies") == saved
    assert manager.exists("CS companies")

    try:
        manager.save("CS companies", [], [], [])
        assert False
    except DuplicateNameError:
        pass
    assert manager.load("CS companies").columns == columns

    manager.save("Other", [], [], [])
    manager.save("CS companies", [ColumnSpec("name")], [], [], overwrite=True)
    assert manager.list() == ["CS companies", "Other"]
    assert manager.load("CS companies").filters == []

    manager.delete("Other")
    assert manager.list() == ["CS companies"]
    for action in (lambda: manager.load("Other"), lambda: manager.delete("Other")):
        try:
            action()
            assert False
        except NotFoundError:
            pass


def test_blank_names_rejected(tmp_path: Path):
    manager = ViewManager.for_vault(tmp_path)
    try:
        manager.save("  ", [], [], [])
        assert False
    except InvalidInput:
        pass
