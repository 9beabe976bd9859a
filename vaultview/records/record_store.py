import os
from pathlib import Path
from typing import Iterable, List, Optional

from frontmatter_format import fmf_read_frontmatter, FmFormatError

from vaultview.config.logger import get_logger
from vaultview.config.settings import global_settings
from vaultview.errors import FileFormatError, InvalidInput
from vaultview.model.records_model import Record

log = get_logger(__name__)


FILE_CLASS_KEY = "fileClass"

FILE_NAME_FIELD = "file.name"
"""Virtual field holding the note's name without its suffix, unless the note sets it."""


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def walk_notes(start_path: Path, suffix: str) -> Iterable[Path]:
    """
    Yield note files under `start_path` in sorted path order, skipping hidden files
    and directories.
    """
    for dirname, dirnames, filenames in os.walk(start_path):
        dirnames[:] = sorted(d for d in dirnames if not is_hidden(d))
        for filename in sorted(filenames):
            if not is_hidden(filename) and filename.endswith(suffix):
                yield Path(dirname) / filename


def has_file_class(metadata: dict, file_class: str) -> bool:
    declared = metadata.get(FILE_CLASS_KEY)
    if isinstance(declared, list):
        return file_class in declared
    return declared == file_class


class RecordStore:
    """
    Read-only access to the notes of a vault, as records.

    Each load reads the notes afresh and returns a new list, so callers always work
    on a snapshot. Nothing here ever writes to the vault.
    """

    def __init__(
        self,
        vault_dir: Path | str,
        folder: Optional[str] = None,
        file_class: Optional[str] = None,
    ):
        self.vault_dir = Path(vault_dir).resolve()
        self.folder = folder
        self.file_class = file_class
        if not self.vault_dir.is_dir():
            raise InvalidInput(f"Vault directory not found: {self.vault_dir}")

    @property
    def start_path(self) -> Path:
        return self.vault_dir / self.folder if self.folder else self.vault_dir

    def read_record(self, path: Path) -> Record:
        try:
            metadata = fmf_read_frontmatter(path) or {}
        except (FmFormatError, UnicodeDecodeError) as e:
            raise FileFormatError(f"Could not read frontmatter: {e}")

        record_id = path.relative_to(self.vault_dir).as_posix()
        values = dict(metadata)
        values.setdefault(FILE_NAME_FIELD, path.stem)
        return Record(id=record_id, values=values)

    def load(self) -> List[Record]:
        """
        All matching records, in path order. Notes with unreadable frontmatter are
        skipped with a warning.
        """
        start_path = self.start_path
        if not start_path.is_dir():
            log.warning("Folder not found in vault, so no records: %s", start_path)
            return []

        records: List[Record] = []
        skipped = 0
        for path in walk_notes(start_path, global_settings().note_suffix):
            try:
                record = self.read_record(path)
            except FileFormatError as e:
                log.warning("Skipping note %s: %s", path, e)
                skipped += 1
                continue
            if self.file_class and not has_file_class(dict(record.values), self.file_class):
                continue
            records.append(record)

        log.info(
            "Loaded %s records from %s (%s skipped)",
            len(records),
            start_path,
            skipped,
        )
        return records


## Tests


def test_record_store_reads_partial_notes(tmp_path):
    companies = tmp_path / "companies"
    companies.mkdir()
    (companies / "Acme.md").write_text(
        "---\nfileClass: company\nPriority: High\nmajors:\n  - Computer Science\n---\nNotes\n"
    )
    (companies / "Zeta.md").write_text("---\nfileClass: company\nPriority:\n---\n")
    (companies / "Loose.md").write_text("No frontmatter.\n")
    (tmp_path / ".vaultview").mkdir()
    (tmp_path / ".vaultview" / "hidden.md").write_text("---\nfileClass: company\n---\n")
    (tmp_path / "readme.txt").write_text("not a note")

    records = RecordStore(tmp_path).load()
    assert [r.id for r in records] == [
        "companies/Acme.md",
        "companies/Loose.md",
        "companies/Zeta.md",
    ]
    acme = records[0]
    assert acme.get("majors") == ["Computer Science"]
    assert acme.get(FILE_NAME_FIELD) == "Acme"
    assert records[2].get("Priority") is None

    only_companies = RecordStore(tmp_path, folder="companies", file_class="company").load()
    assert [r.id for r in only_companies] == ["companies/Acme.md", "companies/Zeta.md"]


def test_record_store_skips_bad_frontmatter(tmp_path):
    (tmp_path / "good.md").write_text("---\nname: Good\n---\n")
    (tmp_path / "bad.md").write_text("---\nname: [unclosed\n---\n")
    records = RecordStore(tmp_path).load()
    assert [r.id for r in records] == ["good.md"]
