import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from cachetools import LRUCache
from strif import abbrev_str

from vaultview.config.logger import get_logger
from vaultview.config.settings import global_settings
from vaultview.errors import InvalidPredicate, PredicateFault
from vaultview.expressions.expr_errors import ExpressionRuntimeError, ExpressionSyntaxError
from vaultview.expressions.expr_interpreter import run_program
from vaultview.expressions.expr_nodes import Program
from vaultview.expressions.expr_parser import parse_program
from vaultview.expressions.expr_values import to_string, type_of

log = get_logger(__name__)


class PredicateResult(Enum):
    match = "match"
    no_match = "no_match"
    faulted = "faulted"


@dataclass(frozen=True)
class BadSyntax:
    """A cached syntax error. Only the details are kept, not the exception itself."""

    message: str
    pos: int


class PredicateEvaluator:
    """
    Runs predicate expressions against single field values. Faults of any kind (bad
    syntax, runtime errors, non-boolean results) are contained here: they are logged
    and count as a non-match, so one bad expression or odd value never stops the
    evaluation of other records.

    Parsed programs are kept in an LRU cache keyed by source, so applying one filter
    across many records parses it once. Safe to share across threads.
    """

    def __init__(self, cache_size: Optional[int] = None):
        if cache_size is None:
            cache_size = global_settings().expression_cache_size
        self.cache: LRUCache[str, Program | BadSyntax] = LRUCache(
            maxsize=max(cache_size, 1)
        )
        self.lock = threading.Lock()

    def parse(self, expression: str) -> Program:
        with self.lock:
            cached = self.cache.get(expression)
        if cached is None:
            try:
                cached = parse_program(expression)
            except ExpressionSyntaxError as e:
                # Remember bad syntax too, so it's parsed once, not once per record.
                cached = BadSyntax(e.message, e.pos)
            with self.lock:
                self.cache[expression] = cached
        if isinstance(cached, BadSyntax):
            raise ExpressionSyntaxError(cached.message, cached.pos)
        return cached

    def run(self, expression: str, value: Any) -> bool:
        """
        Run the expression and return its boolean result. Raises PredicateFault.
        """
        result = run_program(self.parse(expression), value)
        if not isinstance(result, bool):
            raise ExpressionRuntimeError(
                f"Predicate must return true or false, got {type_of(result)} {abbrev_str(to_string(result), 40)}"
            )
        return result

    def check(self, expression: str, value: Any) -> PredicateResult:
        try:
            return PredicateResult.match if self.run(expression, value) else PredicateResult.no_match
        except PredicateFault as e:
            log.debug(
                "Predicate faulted: %s: %s", abbrev_str(expression, 80, indicator="…"), e
            )
        except Exception as e:
            # Anything else (e.g. RecursionError from pathological nesting) is still
            # this expression's fault and must not escape.
            log.debug(
                "Predicate failed unexpectedly: %s: %r",
                abbrev_str(expression, 80, indicator="…"),
                e,
            )
        return PredicateResult.faulted

    def evaluate(self, expression: str, value: Any) -> bool:
        return self.check(expression, value) is PredicateResult.match

    def validate_expression(self, expression: str) -> None:
        """
        Check that an expression parses. Raises InvalidPredicate if not.
        """
        try:
            self.parse(expression)
        except ExpressionSyntaxError as e:
            raise InvalidPredicate(f"Invalid predicate expression: {e}") from e


_default_evaluator: Optional[PredicateEvaluator] = None
_default_lock = threading.Lock()


def default_evaluator() -> PredicateEvaluator:
    global _default_evaluator
    with _default_lock:
        if _default_evaluator is None:
            _default_evaluator = PredicateEvaluator()
        return _default_evaluator


def evaluate(expression: str, value: Any) -> bool:
    """
    Evaluate a predicate expression against a single value, which may be None. Never
    raises: any fault is logged at debug level and counts as False.
    """
    return default_evaluator().evaluate(expression, value)


def check(expression: str, value: Any) -> PredicateResult:
    return default_evaluator().check(expression, value)


def validate_expression(expression: str) -> None:
    default_evaluator().validate_expression(expression)


## Tests

CS_MAJOR = "if (value) {return value.includes('Computer Science')} else {return false}"


def test_evaluate_standard_shape():
    assert evaluate(CS_MAJOR, "Computer Science")
    assert not evaluate(CS_MAJOR, None)
    assert not evaluate(CS_MAJOR, "Biology")


def test_faults_are_contained():
    assert check("return value.includes('x')", None) is PredicateResult.faulted
    assert check("if (value", "x") is PredicateResult.faulted
    assert check("return 'yes'", "x") is PredicateResult.faulted
    assert check("if (value) { return true }", None) is PredicateResult.faulted
    assert check("nope()", 1) is PredicateResult.faulted
    assert check("!" * 5000 + "value", True) is PredicateResult.faulted
    assert check("value === null", None) is PredicateResult.match
    assert check("value > 3", 1) is PredicateResult.no_match


def test_parse_cache():
    evaluator = PredicateEvaluator(cache_size=2)
    assert evaluator.evaluate("value > 1", 2)
    assert evaluator.parse("value > 1") is evaluator.parse("value > 1")
    assert not evaluator.evaluate("value >", 2)
    assert not evaluator.evaluate("value >", 3)
    assert len(evaluator.cache) == 2


def test_validate_expression():
    validate_expression(CS_MAJOR)
    try:
        validate_expression("return (value")
        assert False
    except InvalidPredicate as e:
        assert "Invalid predicate" in str(e)


def test_cached_syntax_errors_are_raised_fresh():
    evaluator = PredicateEvaluator()
    errors = []
    for _ in range(3):
        try:
            evaluator.parse("if (value")
            assert False
        except ExpressionSyntaxError as e:
            errors.append(e)
    assert len({id(e) for e in errors}) == 3
    assert all(str(e) == str(errors[0]) for e in errors)

    for _ in range(200):
        assert not evaluator.evaluate("if (value", 1)
    cached = evaluator.cache["if (value"]
    assert isinstance(cached, BadSyntax)
    assert not isinstance(cached, BaseException)
