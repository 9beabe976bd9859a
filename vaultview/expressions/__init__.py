from vaultview.expressions.expr_errors import ExpressionRuntimeError, ExpressionSyntaxError
from vaultview.expressions.expr_interpreter import run_program
from vaultview.expressions.expr_parser import parse_program
from vaultview.expressions.expr_values import truthy, UNDEFINED

__all__ = [
    "ExpressionRuntimeError",
    "ExpressionSyntaxError",
    "parse_program",
    "run_program",
    "truthy",
    "UNDEFINED",
]
