import threading
from contextlib import contextmanager
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING

from pydantic.dataclasses import dataclass


APP_NAME = "vaultview"

DOT_DIR = ".vaultview"

VIEWS_FILE = f"{DOT_DIR}/views.yml"

NOTE_SUFFIX = ".md"


class LogLevel(Enum):
    debug = DEBUG
    info = INFO
    warning = WARNING
    message = WARNING  # Same as warning, just for important console messages.
    error = ERROR

    @classmethod
    def parse(cls, level_str: str):
        canon_name = level_str.strip().lower()
        if canon_name == "warn":
            canon_name = "warning"
        try:
            return cls[canon_name]
        except KeyError:
            raise ValueError(
                f"Invalid log level: `{level_str}`. Valid options are: {', '.join(f'`{name}`' for name in cls.__members__)}"
            )

    def __str__(self):
        return self.name


@dataclass
class Settings:
    console_log_level: LogLevel
    """The log level for console-based logging."""

    file_log_level: LogLevel
    """The log level for file-based logging."""

    views_file: str
    """Where saved views live, relative to the vault root."""

    note_suffix: str
    """File suffix of notes read as records."""

    predicate_workers: int
    """Threads used to evaluate predicates across records. 0 means evaluate inline."""

    expression_cache_size: int
    """How many parsed predicate expressions to keep."""


# Initial default settings.
_settings = Settings(
    console_log_level=LogLevel.warning,
    file_log_level=LogLevel.info,
    views_file=VIEWS_FILE,
    note_suffix=NOTE_SUFFIX,
    predicate_workers=0,
    expression_cache_size=512,
)


def global_settings() -> Settings:
    """
    Read access to global settings.
    """
    return _settings


_settings_lock = threading.RLock()


@contextmanager
def update_global_settings():
    """
    Context manager for thread-safe updates to global settings.
    """
    with _settings_lock:
        yield _settings


## Tests


def test_log_level_parse():
    assert LogLevel.parse("WARN") == LogLevel.warning
    assert LogLevel.parse(" debug ") == LogLevel.debug
    try:
        LogLevel.parse("loud")
        assert False
    except ValueError as e:
        assert "loud" in str(e)
