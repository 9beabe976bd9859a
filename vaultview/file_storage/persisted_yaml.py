import copy
import threading
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from frontmatter_format import read_yaml_file, to_yaml_string
from strif import atomic_output_file

KeySort = Callable[[str], Tuple[float, str]]


def custom_key_sort(priority_keys: List[str]) -> KeySort:
    """
    Sort function for dict keys that puts the given keys first, in that order,
    followed by all other keys in natural order.
    """

    def sort_func(key: str) -> Tuple[float, str]:
        try:
            return (float(priority_keys.index(key)), key)
        except ValueError:
            return (float("inf"), key)

    return sort_func


class PersistedYaml:
    """
    Maintain simple data (such as a list of dicts) as a YAML file. Writes are atomic
    (temp file and rename) and serialized with a re-entrant lock, which is held for
    reads too, so in-process readers never see a half-applied update.
    """

    def __init__(self, filename: str | Path, init_value: Any, key_sort: Optional[KeySort] = None):
        self.filename = Path(filename)
        self.init_value = init_value
        self.key_sort = key_sort
        self.lock = threading.RLock()

    def read(self) -> Any:
        """
        Current value, or a copy of the initial value if the file doesn't exist yet or
        is empty.
        """
        with self.lock:
            if not self.filename.exists():
                return copy.deepcopy(self.init_value)
            value = read_yaml_file(str(self.filename))
            return copy.deepcopy(self.init_value) if value is None else value

    def set(self, value: Any):
        with self.lock:
            yaml_str = to_yaml_string(value, key_sort=self.key_sort)
            with atomic_output_file(str(self.filename), make_parents=True) as tmp_path:
                Path(tmp_path).write_text(yaml_str, encoding="utf-8")

    def update(self, func: Callable[[Any], Any]) -> Any:
        """
        Read, transform and write back the value as one step.
        """
        with self.lock:
            new_value = func(self.read())
            self.set(new_value)
            return new_value


## Tests


def test_persisted_yaml(tmp_path: Path):
    path = tmp_path / "nested" / "state.yml"
    persisted = PersistedYaml(path, init_value=[], key_sort=custom_key_sort(["name"]))
    assert persisted.read() == []
    assert not path.exists()

    persisted.set([{"value": 1, "name": "a"}])
    assert path.exists()
    assert path.read_text().lstrip("- ").startswith("name: a")

    persisted.update(lambda items: items + [{"name": "b"}])
    assert [d["name"] for d in persisted.read()] == ["a", "b"]
    assert list(path.parent.iterdir()) == [path]


def test_initial_value_is_not_shared(tmp_path: Path):
    path = tmp_path / "state.yml"
    persisted = PersistedYaml(path, init_value=[])
    persisted.update(lambda items: items + ["a"])
    persisted.read().append("not saved")

    path.unlink()
    assert persisted.read() == []
    assert persisted.init_value == []

    first = persisted.read()
    first.append("b")
    assert persisted.read() == []
