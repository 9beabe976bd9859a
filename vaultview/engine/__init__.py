from vaultview.engine.filter_engine import FilterEngine
from vaultview.engine.predicate_evaluator import (
    check,
    evaluate,
    PredicateEvaluator,
    PredicateResult,
    validate_expression,
)
from vaultview.engine.projection import cell_text, project
from vaultview.engine.sort_engine import SortEngine

__all__ = [
    "check",
    "cell_text",
    "evaluate",
    "FilterEngine",
    "PredicateEvaluator",
    "PredicateResult",
    "project",
    "SortEngine",
    "validate_expression",
]
