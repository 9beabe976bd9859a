import functools
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from vaultview.config.logger import get_logger
from vaultview.config.settings import global_settings
from vaultview.file_storage.persisted_yaml import custom_key_sort, PersistedYaml
from vaultview.model.views_model import View

log = get_logger(__name__)

T = TypeVar("T")

VIEW_KEY_SORT = custom_key_sort(["name", "field", "columns", "filters", "sort_keys"])


def synchronized(method: Callable[..., T]) -> Callable[..., T]:
    @functools.wraps(method)
    def synchronized_method(self, *args: Any, **kwargs: Any) -> T:
        with self.persisted.lock:
            return method(self, *args, **kwargs)

    return synchronized_method


class ViewStore:
    """
    Durable storage for the views of one vault: a single YAML file holding a list of
    views in creation order.

    Entries that can't be read as views are skipped with a warning, and kept as-is on
    disk, so one bad entry neither hides nor destroys the others.
    """

    def __init__(self, path: Path):
        self.path = path
        self.persisted = PersistedYaml(path, init_value=[], key_sort=VIEW_KEY_SORT)

    @classmethod
    def for_vault(cls, vault_dir: Path, views_file: Optional[str] = None) -> "ViewStore":
        return cls(vault_dir / (views_file or global_settings().views_file))

    def _raw_entries(self) -> List[Any]:
        return self._as_entries(self.persisted.read())

    def _as_entries(self, entries: Any) -> List[Any]:
        if not isinstance(entries, list):
            log.warning("Ignoring views file that is not a list: %s", self.path)
            return []
        return entries

    @staticmethod
    def _parse(entry: Any) -> Optional[View]:
        try:
            return View.from_dict(entry)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            log.warning("Skipping malformed view entry: %r: %s", entry, e)
            return None

    @synchronized
    def read_all(self) -> List[View]:
        views = []
        for entry in self._raw_entries():
            view = self._parse(entry)
            if view:
                views.append(view)
        return views

    @synchronized
    def get(self, name: str) -> Optional[View]:
        for view in self.read_all():
            if view.name == name:
                return view
        return None

    @synchronized
    def put(self, view: View) -> None:
        """
        Insert a view, or replace the existing view of the same name in place.
        """
        new_entry: Dict[str, Any] = view.as_dict()

        def replace_or_append(value: Any) -> List[Any]:
            entries = self._as_entries(value)
            for i, entry in enumerate(entries):
                if isinstance(entry, dict) and entry.get("name") == view.name:
                    entries[i] = new_entry
                    break
            else:
                entries.append(new_entry)
            return entries

        self.persisted.update(replace_or_append)

    @synchronized
    def remove(self, name: str) -> bool:
        entries = self._raw_entries()
        kept = [e for e in entries if not (isinstance(e, dict) and e.get("name") == name)]
        if len(kept) == len(entries):
            return False
        self.persisted.set(kept)
        return True


## Tests


def test_view_store_roundtrip_and_order(tmp_path: Path):
    from vaultview.model.views_model import ColumnSpec, Predicate, SortDirection, SortKey

    store = ViewStore.for_vault(tmp_path)
    assert store.read_all() == []

    first = View(
        "CS companies",
        columns=[ColumnSpec("name", True, 0)],
        filters=[Predicate("majors", "value?.includes('Computer Science') ?? false")],
        sort_keys=[SortKey("Priority", SortDirection.descending)],
    )
    store.put(first)
    store.put(View("B view"))
    store.put(View("A view"))
    assert [v.name for v in store.read_all()] == ["CS companies", "B view", "A view"]
    assert store.get("CS companies") == first
    assert store.get("nope") is None

    store.put(View("B view", columns=[ColumnSpec("website")]))
    assert [v.name for v in store.read_all()] == ["CS companies", "B view", "A view"]
    assert store.get("B view").columns == [ColumnSpec("website")]  # type: ignore

    assert store.remove("B view")
    assert not store.remove("B view")
    assert [v.name for v in store.read_all()] == ["CS companies", "A view"]
    assert (tmp_path / ".vaultview" / "views.yml").exists()


def test_view_store_skips_malformed(tmp_path: Path):
    path = tmp_path / "views.yml"
    path.write_text("- name: good\n- columns: []\n- just a string\n")
    store = ViewStore(path)
    assert [v.name for v in store.read_all()] == ["good"]

    store.put(View("another"))
    assert [v.name for v in store.read_all()] == ["good", "another"]
    assert "just a string" in path.read_text()


def test_removed_views_file_means_no_views(tmp_path: Path):
    store = ViewStore.for_vault(tmp_path)
    store.put(View("a"))
    assert [v.name for v in store.read_all()] == ["a"]

    store.path.unlink()
    assert store.read_all() == []
    assert store.get("a") is None

    store.put(View("b"))
    assert [v.name for v in store.read_all()] == ["b"]
