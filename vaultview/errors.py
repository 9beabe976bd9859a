"""
Unified hierarchy of error types. These inherit from standard errors like
ValueError and FileExistsError but are more fine-grained.
"""

from typing import Tuple, Type


class VaultViewError(ValueError):
    """Base class for vaultview runtime errors."""

    pass


class UnexpectedError(VaultViewError):
    """For unexpected errors or runtime check failures."""

    pass


class SelfExplanatoryError(VaultViewError):
    """Common errors that arise from 'normal' problems that are largely self-explanatory,
    i.e., no stack trace should be necessary when reporting to the user."""

    pass


class InvalidInput(SelfExplanatoryError):
    """Raised when the wrong kind of input is given to a command or operation."""

    pass


class InvalidCommand(InvalidInput):
    """Raised when a command is not valid."""

    pass


class DuplicateNameError(InvalidInput, FileExistsError):
    """Raised when saving a view under a name that is already taken."""

    pass


class NotFoundError(InvalidInput, LookupError):
    """Raised when a named view does not exist."""

    pass


class InvalidSchema(InvalidInput):
    """Raised when a schema definition is inconsistent, e.g. has duplicate field names."""

    pass


class InvalidPredicate(InvalidInput):
    """Raised when a predicate expression can't be parsed (only on explicit validation)."""

    pass


class SkippableError(SelfExplanatoryError):
    """Errors that are skippable and shouldn't abort the entire operation."""

    pass


class PredicateFault(SkippableError):
    """
    Raised inside the predicate evaluator when an expression fails to parse, throws,
    or returns a non-boolean. Never propagates past the evaluator.
    """

    pass


class FileFormatError(SkippableError):
    """Raised when a note's content format is invalid."""

    pass


NONFATAL_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    SelfExplanatoryError,
    FileNotFoundError,
    IOError,
)
"""Exceptions that are not fatal and usually don't merit a full stack trace."""


def is_fatal(exception: Exception) -> bool:
    for e in NONFATAL_EXCEPTIONS:
        if isinstance(exception, e):
            return False
    return True


## Tests


def test_error_hierarchy():
    assert isinstance(DuplicateNameError("x"), FileExistsError)
    assert isinstance(NotFoundError("x"), LookupError)
    assert isinstance(PredicateFault("x"), SkippableError)
    assert not is_fatal(NotFoundError("missing"))
    assert not is_fatal(FileNotFoundError("gone"))
    assert is_fatal(UnexpectedError("boom"))
    assert is_fatal(KeyError("k"))
