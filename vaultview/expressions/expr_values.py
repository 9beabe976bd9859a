"""
Value semantics for predicate expressions. Expressions are written in a JavaScript
style, so truthiness, equality, and arithmetic follow JavaScript rules rather than
Python's. Values are plain Python objects: None is `null`, `UNDEFINED` is
`undefined`, lists are arrays and dicts are objects.
"""

import math
from datetime import date, datetime, time
from typing import Any, Callable, Dict


class Undefined:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "undefined"

    def __bool__(self):
        return False


UNDEFINED = Undefined()


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class BuiltinFunction:
    """A native function callable from expressions, e.g. `Number(x)`."""

    def __init__(self, name: str, func: Callable[..., Any]):
        self.name = name
        self.func = func

    def __call__(self, *args: Any) -> Any:
        return self.func(*args)

    def __repr__(self):
        return f"function {self.name}() {{ [native code] }}"


class Namespace:
    """A read-only global object holding builtin functions, e.g. `Array`."""

    def __init__(self, name: str, members: Dict[str, Any]):
        self.name = name
        self.members = members

    def __repr__(self):
        return f"[object {self.name}]"


def to_expr_value(value: Any) -> Any:
    """
    Convert a record value into an expression value. Always builds new containers, so
    nothing an expression does can reach back into the record. Dates become ISO
    strings.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if is_number(value):
        return value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_expr_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_expr_value(v) for v in value]
    return str(value)


def truthy(value: Any) -> bool:
    if is_nullish(value) or value is False:
        return False
    if is_number(value):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def type_of(value: Any) -> str:
    if value is UNDEFINED:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if callable(value):
        return "function"
    return "object"


def format_number(value: float | int) -> str:
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
    return str(value)


def to_string(value: Any) -> str:
    if value is None:
        return "null"
    if value is UNDEFINED:
        return "undefined"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return ",".join("" if is_nullish(v) else to_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return repr(value)


def to_number(value: Any) -> float | int:
    if value is None or value is False:
        return 0
    if value is True:
        return 1
    if value is UNDEFINED:
        return math.nan
    if is_number(value):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = float(text)
        except ValueError:
            return math.nan
        return int(number) if number.is_integer() and "." not in text and "e" not in text.lower() else number
    if isinstance(value, list):
        return to_number(to_string(value))
    return math.nan


def strict_equals(a: Any, b: Any) -> bool:
    if is_number(a) and is_number(b):
        return a == b
    if isinstance(a, (list, dict)) or isinstance(b, (list, dict)):
        return a is b
    if type(a) is not type(b):
        return False
    return a == b


def same_value_zero(a: Any, b: Any) -> bool:
    """Equality used by `includes`: like `===` except NaN matches NaN."""
    if is_number(a) and is_number(b) and math.isnan(a) and math.isnan(b):
        return True
    return strict_equals(a, b)


def loose_equals(a: Any, b: Any) -> bool:
    if is_nullish(a) or is_nullish(b):
        return is_nullish(a) and is_nullish(b)
    if isinstance(a, bool) or isinstance(b, bool):
        return to_number(a) == to_number(b) if not (isinstance(a, bool) and isinstance(b, bool)) else a is b
    if is_number(a) and isinstance(b, str) or isinstance(a, str) and is_number(b):
        return to_number(a) == to_number(b)
    if isinstance(a, list) and not isinstance(b, (list, dict)):
        return loose_equals(to_string(a), b)
    if isinstance(b, list) and not isinstance(a, (list, dict)):
        return loose_equals(a, to_string(b))
    return strict_equals(a, b)


def add(a: Any, b: Any) -> Any:
    if isinstance(a, (str, list, dict)) or isinstance(b, (str, list, dict)):
        return to_string(a) + to_string(b)
    return to_number(a) + to_number(b)


def divide(a: Any, b: Any) -> float | int:
    x, y = to_number(a), to_number(b)
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1, y)
    result = x / y
    return int(result) if result.is_integer() and not isinstance(x, float) and not isinstance(y, float) else result


def modulo(a: Any, b: Any) -> float | int:
    x, y = to_number(a), to_number(b)
    if y == 0 or math.isnan(x) or math.isnan(y) or math.isinf(x):
        return math.nan
    if math.isinf(y):
        return x
    result = math.fmod(x, y)
    return int(result) if isinstance(x, int) and isinstance(y, int) else result


def compare(op: str, a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        x: Any = a
        y: Any = b
    else:
        x, y = to_number(a), to_number(b)
        if math.isnan(x) or math.isnan(y):
            return False
    if op == "<":
        return x < y
    if op == "<=":
        return x <= y
    if op == ">":
        return x > y
    return x >= y


def _number(*args: Any) -> float | int:
    return to_number(args[0]) if args else 0


def _string(*args: Any) -> str:
    return to_string(args[0]) if args else ""


def _boolean(*args: Any) -> bool:
    return truthy(args[0]) if args else False


def _is_array(*args: Any) -> bool:
    return bool(args) and isinstance(args[0], list)


GLOBALS: Dict[str, Any] = {
    "Number": BuiltinFunction("Number", _number),
    "String": BuiltinFunction("String", _string),
    "Boolean": BuiltinFunction("Boolean", _boolean),
    "Array": Namespace("Array", {"isArray": BuiltinFunction("isArray", _is_array)}),
    "NaN": math.nan,
    "Infinity": math.inf,
}
"""The only names visible to an expression besides `value` and its own locals."""


## Tests


def test_truthiness():
    assert not truthy(None) and not truthy(UNDEFINED) and not truthy("")
    assert not truthy(0) and not truthy(math.nan) and not truthy(False)
    assert truthy([]) and truthy({}) and truthy("0") and truthy(-1)


def test_equality():
    assert loose_equals(None, UNDEFINED)
    assert not strict_equals(None, UNDEFINED)
    assert loose_equals(1, "1") and not strict_equals(1, "1")
    assert loose_equals(True, 1) and not strict_equals(True, 1)
    assert strict_equals(1, 1.0)
    assert not strict_equals(math.nan, math.nan)
    assert same_value_zero(math.nan, math.nan)
    items = [1]
    assert strict_equals(items, items) and not strict_equals([1], [1])


def test_arithmetic_and_strings():
    assert add(1, 2) == 3
    assert add("a", 1) == "a1"
    assert add([1, 2], "x") == "1,2x"
    assert to_string(2.0) == "2"
    assert to_number(" 42 ") == 42
    assert math.isnan(to_number("abc"))
    assert divide(7, 2) == 3.5 and divide(6, 3) == 2
    assert divide(1, 0) == math.inf and math.isnan(divide(0, 0))
    assert modulo(-7, 3) == -1
    assert compare("<", "apple", "banana")
    assert not compare("<", 1, "x")


def test_to_expr_value_copies():
    source = {"tags": ["a"], "when": date(2025, 3, 1)}
    converted = to_expr_value(source)
    converted["tags"].append("b")
    assert source["tags"] == ["a"]
    assert converted["when"] == "2025-03-01"
