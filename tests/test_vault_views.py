"""
End-to-end tests over a small vault on disk: notes with frontmatter, a file-class
schema, and saved views.
"""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from textwrap import dedent

import pytest

from vaultview.commands import view_commands
from vaultview.engine.filter_engine import FilterEngine
from vaultview.errors import DuplicateNameError, InvalidPredicate, NotFoundError
from vaultview.main import main
from vaultview.model.schema_model import FieldType
from vaultview.model.views_model import ColumnSpec, Predicate, SortDirection, SortKey, View
from vaultview.records.record_store import RecordStore
from vaultview.schema.file_class import load_file_class
from vaultview.views.view_manager import ViewManager

CS_MAJOR = "if (value) {return value.includes('Computer Science')} else {return false}"

COMPANY_CLASS = dedent(
    """
    ---
    fields:
      - name: name
        type: Input
      - name: majors
        type: Multi
      - name: Priority
        type: Number
      - name: founded
        type: Date
      - name: website
        type: Input
    ---
    Company notes.
    """
).lstrip()


def write_note(path: Path, frontmatter: str, body: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{dedent(frontmatter).strip()}\n---\n{body}")


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    (tmp_path / "fileClasses").mkdir()
    (tmp_path / "fileClasses" / "Company.md").write_text(COMPANY_CLASS)
    companies = tmp_path / "companies"
    write_note(
        companies / "A.md",
        """
        fileClass: Company
        name: Acme
        majors: Computer Science
        Priority: 2
        founded: 2001-05-01
        """,
    )
    write_note(
        companies / "B.md",
        """
        fileClass: Company
        name:
        majors:
        Priority: 9
        """,
    )
    write_note(
        companies / "C.md",
        """
        fileClass: Company
        name: Zeta
        majors: Biology
        founded: 1999-12-31
        """,
    )
    write_note(tmp_path / "people" / "Pat.md", "fileClass: Person\nname: Pat\n")
    return tmp_path


def load_companies(vault: Path):
    return RecordStore(vault, folder="companies", file_class="Company").load()


def test_schema_from_file_class(vault: Path):
    schema = load_file_class(vault / "fileClasses" / "Company.md")
    assert [f.name for f in schema.list_fields()] == [
        "name",
        "majors",
        "Priority",
        "founded",
        "website",
    ]
    assert schema.field_type("majors") == FieldType.list
    assert schema.field_type("founded") == FieldType.date
    assert schema.get_field("nonexistent") is None


def test_cs_major_filter(vault: Path):
    records = load_companies(vault)
    assert [r.id for r in records] == ["companies/A.md", "companies/B.md", "companies/C.md"]

    result = FilterEngine().apply(records, [Predicate("majors", CS_MAJOR)])
    assert [r.id for r in result] == ["companies/A.md"]


def test_apply_view_end_to_end(vault: Path):
    schema = load_file_class(vault / "fileClasses" / "Company.md")
    manager = ViewManager.for_vault(vault, schema)
    view = manager.save(
        "By name",
        columns=[
            ColumnSpec("name", True, 0),
            ColumnSpec("nonexistent", True, 1),
            ColumnSpec("website", False, 2),
        ],
        filters=[],
        sort_keys=[SortKey("name", SortDirection.descending)],
    )
    table = manager.apply(view, load_companies(vault))
    assert table.headers == ["name", "nonexistent"]
    assert table.column("name") == ["Zeta", "Acme", None]
    assert table.column("nonexistent") == [None, None, None]

    by_date = View("By date", [ColumnSpec("name")], [], [SortKey("founded")])
    assert manager.apply(by_date, load_companies(vault)).record_ids == [
        "companies/C.md",
        "companies/A.md",
        "companies/B.md",
    ]

    by_priority = View(
        "By priority", [ColumnSpec("Priority")], [], [SortKey("Priority", SortDirection.descending)]
    )
    assert manager.apply(by_priority, load_companies(vault)).column("Priority") == [9, 2, None]


def test_faulting_filter_excludes_only_faulting_records(vault: Path):
    manager = ViewManager.for_vault(vault)
    starts_with = Predicate("name", "return value.startsWith('A') || value.startsWith('Z')")
    view = View("Starts with A or Z", [ColumnSpec("name")], [starts_with], [])
    table = manager.apply(view, load_companies(vault))
    assert table.record_ids == ["companies/A.md", "companies/C.md"]


def test_view_roundtrip_and_errors(vault: Path):
    manager = ViewManager.for_vault(vault)
    saved = manager.save(
        "CS companies",
        [ColumnSpec("name", True, 0), ColumnSpec("website", False, 1)],
        [Predicate("majors", CS_MAJOR)],
        [SortKey("Priority", SortDirection.descending), SortKey("name")],
    )

    # A fresh manager reads the view back from disk.
    reloaded = ViewManager.for_vault(vault).load("CS companies")
    assert reloaded == saved

    with pytest.raises(DuplicateNameError):
        manager.save("CS companies", [], [], [])
    with pytest.raises(NotFoundError):
        manager.load("missing")
    with pytest.raises(NotFoundError):
        manager.delete("missing")

    text = (vault / ".vaultview" / "views.yml").read_text()
    assert "direction: descending" in text
    assert "includes('Computer Science')" in text


def test_commands(vault: Path):
    v = str(vault)
    view = view_commands.save_view(
        "CS",
        columns="name,majors",
        filter=f"majors:{CS_MAJOR}",
        sort="Priority:desc",
        vault=v,
    )
    assert view.sort_keys == [SortKey("Priority", SortDirection.descending)]
    assert view_commands.views(vault=v) == ["CS"]

    table = view_commands.show_view(
        "CS", vault=v, folder="companies", schema="fileClasses/Company.md"
    )
    assert table.record_ids == ["companies/A.md"]
    assert table.column("majors") == ["Computer Science"]

    listed = view_commands.records(vault=v, file_class="Company", columns="name")
    assert listed.column("name") == ["Acme", None, "Zeta"]

    with pytest.raises(InvalidPredicate):
        view_commands.save_view("Bad", filter="majors:if (value", vault=v)
    view_commands.save_view("Bad", filter="majors:if (value", validate="false", vault=v)

    view_commands.delete_view("Bad", vault=v)
    assert view_commands.views(vault=v) == ["CS"]


def test_main(vault: Path, capsys: pytest.CaptureFixture[str]):
    v = f"vault={vault}"
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.startswith("vaultview ")

    assert main(["--help"]) == 0
    assert "save_view" in capsys.readouterr().out

    args = ["columns=name,Priority", "sort=Priority:desc", v]
    assert main(["save_view", "Priority first", *args]) == 0
    assert main(["save_view", "Priority first", v]) == 1
    assert main(["save_view", "Priority first", "columns=name", "--overwrite", v]) == 0
    assert main(["show_view", "Priority first", "folder=companies", v]) == 0
    assert main(["show_view", "nope", v]) == 1
    assert main(["no_such_command", v]) == 1
    assert main(["views", "log_level=loud", v]) == 2
    assert main(["views", "unexpected", "extra", v]) == 1
    assert main(["delete_view", "Priority first", v]) == 0
    assert ViewManager.for_vault(vault).list() == []


def test_concurrent_saves_and_loads(tmp_path: Path):
    writer = ViewManager.for_vault(tmp_path)
    versions = [
        View(
            "shared",
            [ColumnSpec(f"col{i}_{j}", j % 2 == 0, j) for j in range(20)],
            [Predicate("name", f"value === 'version {i}'")],
            [SortKey(f"key{i}", SortDirection.descending)],
        )
        for i in range(8)
    ]

    def save(view: View) -> View:
        return writer.save(view.name, view.columns, view.filters, view.sort_keys, overwrite=True)

    save(versions[0])

    def write_all() -> None:
        for _ in range(5):
            for view in versions:
                save(view)

    def save_and_delete() -> None:
        for i in range(20):
            writer.save(f"scratch {i}", [], [], [])
            writer.delete(f"scratch {i}")

    def read_all(manager: ViewManager) -> int:
        loads = 0
        for _ in range(40):
            assert manager.load("shared") in versions
            assert "shared" in manager.list()
            loads += 1
        return loads

    # Readers share the writer's lock, or use their own manager and see only whole files.
    readers = [writer, writer, ViewManager.for_vault(tmp_path), ViewManager.for_vault(tmp_path)]
    with ThreadPoolExecutor(max_workers=6) as executor:
        futures = [executor.submit(write_all), executor.submit(save_and_delete)]
        futures += [executor.submit(read_all, manager) for manager in readers]
        results = [future.result() for future in futures]

    assert results[2:] == [40, 40, 40, 40]
    assert writer.list() == ["shared"]
    assert writer.load("shared") == versions[-1]
