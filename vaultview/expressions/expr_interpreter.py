"""
Tree-walking interpreter for predicate expressions.

The only names an expression can see are `value`, its own locals, and a handful of
builtins (`Number`, `String`, `Boolean`, `Array.isArray`). There is no access to
Python objects, attributes or I/O, and the language has no loops, so every
evaluation terminates. Methods are limited to a fixed set on strings and arrays.
"""

import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from vaultview.expressions.expr_errors import ExpressionRuntimeError
from vaultview.expressions.expr_nodes import (
    Arrow,
    ArrayLiteral,
    Assign,
    Binary,
    Block,
    Call,
    Chain,
    Conditional,
    Declare,
    Empty,
    Expr,
    ExprStatement,
    If,
    Index,
    Literal,
    Logical,
    Member,
    Name,
    Program,
    Return,
    Statement,
    Unary,
)
from vaultview.expressions.expr_values import (
    add,
    BuiltinFunction,
    compare,
    divide,
    GLOBALS,
    is_nullish,
    is_number,
    loose_equals,
    modulo,
    Namespace,
    same_value_zero,
    strict_equals,
    to_expr_value,
    to_number,
    to_string,
    truthy,
    type_of,
    UNDEFINED,
)

MAX_CALL_DEPTH = 32

MAX_STEPS = 200_000
"""Most expression evaluations allowed in one run, so wide recursion can't run away."""


class Scope:
    def __init__(self, parent: Optional["Scope"] = None):
        self.parent = parent
        self.vars: Dict[str, Any] = {}
        self.consts: set = set()

    def find(self, name: str) -> Optional["Scope"]:
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.vars:
                return scope
            scope = scope.parent
        return None

    def lookup(self, name: str) -> Any:
        scope = self.find(name)
        if scope is not None:
            return scope.vars[name]
        if name in GLOBALS:
            return GLOBALS[name]
        raise ExpressionRuntimeError(f"{name} is not defined")

    def declare(self, kind: str, name: str, value: Any):
        if name in self.vars and (kind != "var" or name in self.consts):
            raise ExpressionRuntimeError(f"Identifier '{name}' has already been declared")
        self.vars[name] = value
        if kind == "const":
            self.consts.add(name)

    def assign(self, name: str, value: Any):
        scope = self.find(name)
        if scope is None:
            raise ExpressionRuntimeError(f"{name} is not defined")
        if name in scope.consts:
            raise ExpressionRuntimeError("Assignment to constant variable")
        scope.vars[name] = value


class ArrowFunction:
    def __init__(self, interpreter: "Interpreter", node: Arrow, scope: Scope):
        self.interpreter = interpreter
        self.node = node
        self.scope = scope

    def __call__(self, *args: Any) -> Any:
        return self.interpreter.call_arrow(self, args)

    def __repr__(self):
        return f"({', '.join(self.node.params)}) => ..."


def _describe(obj: Any) -> str:
    return type_of(obj) if not is_nullish(obj) else to_string(obj)


def _to_int(value: Any, default: int = 0) -> int:
    if value is UNDEFINED:
        return default
    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 2**31 if number > 0 else -(2**31)
    return int(number)


def _slice(seq: Any, args: List[Any]) -> Any:
    start = _to_int(args[0]) if args else 0
    end = _to_int(args[1], len(seq)) if len(args) > 1 else len(seq)
    return seq[start:end]


def _arg(args: List[Any], i: int) -> Any:
    return args[i] if len(args) > i else UNDEFINED


## String methods


def _split(s: str, args: List[Any]) -> List[str]:
    sep = _arg(args, 0)
    if sep is UNDEFINED:
        parts = [s]
    elif to_string(sep) == "":
        parts = list(s)
    else:
        parts = s.split(to_string(sep))
    if len(args) > 1 and _arg(args, 1) is not UNDEFINED:
        parts = parts[: max(_to_int(args[1]), 0)]
    return parts


StringMethod = Callable[["Interpreter", str, List[Any]], Any]

STRING_METHODS: Dict[str, StringMethod] = {
    "includes": lambda _, s, a: to_string(_arg(a, 0)) in s[max(_to_int(_arg(a, 1)), 0) :],
    "startsWith": lambda _, s, a: s[max(_to_int(_arg(a, 1)), 0) :].startswith(to_string(_arg(a, 0))),
    "endsWith": lambda _, s, a: s[: _to_int(_arg(a, 1), len(s))].endswith(to_string(_arg(a, 0))),
    "indexOf": lambda _, s, a: s.find(to_string(_arg(a, 0)), max(_to_int(_arg(a, 1)), 0)),
    "toLowerCase": lambda _, s, a: s.lower(),
    "toUpperCase": lambda _, s, a: s.upper(),
    "trim": lambda _, s, a: s.strip(),
    "trimStart": lambda _, s, a: s.lstrip(),
    "trimEnd": lambda _, s, a: s.rstrip(),
    "split": lambda _, s, a: _split(s, a),
    "slice": lambda _, s, a: _slice(s, a),
    "replace": lambda _, s, a: s.replace(to_string(_arg(a, 0)), to_string(_arg(a, 1)), 1),
    "toString": lambda _, s, a: s,
}


## Array methods


def _callback(interp: "Interpreter", items: List[Any], args: List[Any], name: str):
    fn = _arg(args, 0)
    if not callable(fn):
        raise ExpressionRuntimeError(f"{_describe(fn)} is not a function (in {name})")
    for i, item in enumerate(list(items)):
        yield item, interp.call(fn, [item, i, items])


def _push(items: List[Any], args: List[Any]) -> int:
    items.extend(args)
    return len(items)


ListMethod = Callable[["Interpreter", List[Any], List[Any]], Any]

LIST_METHODS: Dict[str, ListMethod] = {
    "includes": lambda _, xs, a: any(same_value_zero(x, _arg(a, 0)) for x in xs),
    "indexOf": lambda _, xs, a: next((i for i, x in enumerate(xs) if strict_equals(x, _arg(a, 0))), -1),
    "join": lambda _, xs, a: (to_string(a[0]) if a and a[0] is not UNDEFINED else ",").join(
        "" if is_nullish(x) else to_string(x) for x in xs
    ),
    "slice": lambda _, xs, a: _slice(xs, a),
    "concat": lambda _, xs, a: xs + [y for x in a for y in (x if isinstance(x, list) else [x])],
    "some": lambda i, xs, a: any(truthy(r) for _, r in _callback(i, xs, a, "some")),
    "every": lambda i, xs, a: all(truthy(r) for _, r in _callback(i, xs, a, "every")),
    "filter": lambda i, xs, a: [x for x, r in _callback(i, xs, a, "filter") if truthy(r)],
    "map": lambda i, xs, a: [r for _, r in _callback(i, xs, a, "map")],
    "find": lambda i, xs, a: next((x for x, r in _callback(i, xs, a, "find") if truthy(r)), UNDEFINED),
    "push": lambda _, xs, a: _push(xs, a),
    "toString": lambda _, xs, a: to_string(xs),
}


class Interpreter:
    """
    Runs one parsed Program. An interpreter is cheap and holds per-run state only,
    so use a fresh one for each evaluation.
    """

    def __init__(self, max_steps: int = MAX_STEPS):
        self.call_depth = 0
        self.steps = 0
        self.max_steps = max_steps

    def run(self, program: Program, value: Any) -> Any:
        """
        Run the program with `value` bound. Returns the program's result, which is
        `UNDEFINED` if it finishes without returning.
        """
        scope = Scope()
        scope.declare("let", "value", to_expr_value(value))
        if program.is_bare_expression:
            return self.eval(program.body[0].expr, scope)  # type: ignore
        returned, result = self.exec_statements(program.body, scope)
        return result if returned else UNDEFINED

    ## Statements

    def exec_statements(self, body: Sequence[Statement], scope: Scope) -> Tuple[bool, Any]:
        for stmt in body:
            returned, result = self.exec(stmt, scope)
            if returned:
                return True, result
        return False, None

    def exec(self, stmt: Statement, scope: Scope) -> Tuple[bool, Any]:
        if isinstance(stmt, Return):
            return True, self.eval(stmt.value, scope) if stmt.value is not None else UNDEFINED
        if isinstance(stmt, If):
            if truthy(self.eval(stmt.test, scope)):
                return self.exec(stmt.consequent, scope)
            if stmt.alternate is not None:
                return self.exec(stmt.alternate, scope)
            return False, None
        if isinstance(stmt, Block):
            return self.exec_statements(stmt.body, Scope(scope))
        if isinstance(stmt, Declare):
            value = self.eval(stmt.value, scope) if stmt.value is not None else UNDEFINED
            scope.declare(stmt.kind, stmt.name, value)
            return False, None
        if isinstance(stmt, ExprStatement):
            self.eval(stmt.expr, scope)
            return False, None
        if isinstance(stmt, Empty):
            return False, None
        raise ExpressionRuntimeError(f"Unsupported statement: {type(stmt).__name__}")

    ## Expressions

    def eval(self, expr: Expr, scope: Scope) -> Any:
        self.steps += 1
        if self.steps > self.max_steps:
            raise ExpressionRuntimeError("Expression took too many steps to evaluate")
        if isinstance(expr, Literal):
            return expr.value
        if isinstance(expr, Name):
            return scope.lookup(expr.name)
        if isinstance(expr, Chain):
            return self.eval_chain(expr, scope)
        if isinstance(expr, Logical):
            left = self.eval(expr.left, scope)
            if expr.op == "&&":
                return self.eval(expr.right, scope) if truthy(left) else left
            if expr.op == "||":
                return left if truthy(left) else self.eval(expr.right, scope)
            return self.eval(expr.right, scope) if is_nullish(left) else left
        if isinstance(expr, Binary):
            left = self.eval(expr.left, scope)
            return self.eval_binary(expr.op, left, self.eval(expr.right, scope))
        if isinstance(expr, Unary):
            return self.eval_unary(expr, scope)
        if isinstance(expr, Conditional):
            branch = expr.consequent if truthy(self.eval(expr.test, scope)) else expr.alternate
            return self.eval(branch, scope)
        if isinstance(expr, ArrayLiteral):
            return [self.eval(e, scope) for e in expr.elements]
        if isinstance(expr, Arrow):
            return ArrowFunction(self, expr, scope)
        if isinstance(expr, Assign):
            value = self.eval(expr.value, scope)
            scope.assign(expr.name, value)
            return value
        raise ExpressionRuntimeError(f"Unsupported expression: {type(expr).__name__}")

    def eval_unary(self, expr: Unary, scope: Scope) -> Any:
        if expr.op == "typeof":
            if isinstance(expr.operand, Name) and scope.find(expr.operand.name) is None:
                if expr.operand.name not in GLOBALS:
                    return "undefined"
            return type_of(self.eval(expr.operand, scope))
        operand = self.eval(expr.operand, scope)
        if expr.op == "!":
            return not truthy(operand)
        if expr.op == "-":
            return -to_number(operand)
        return to_number(operand)

    def eval_binary(self, op: str, left: Any, right: Any) -> Any:
        if op == "+":
            return add(left, right)
        if op == "-":
            return to_number(left) - to_number(right)
        if op == "*":
            return to_number(left) * to_number(right)
        if op == "/":
            return divide(left, right)
        if op == "%":
            return modulo(left, right)
        if op == "===":
            return strict_equals(left, right)
        if op == "!==":
            return not strict_equals(left, right)
        if op == "==":
            return loose_equals(left, right)
        if op == "!=":
            return not loose_equals(left, right)
        return compare(op, left, right)

    def eval_chain(self, expr: Chain, scope: Scope) -> Any:
        current = self.eval(expr.base, scope)
        links = expr.links
        i = 0
        while i < len(links):
            link = links[i]
            if link.optional and is_nullish(current):
                return UNDEFINED
            next_link = links[i + 1] if i + 1 < len(links) else None
            if isinstance(link, Member) and isinstance(next_link, Call) and not next_link.optional:
                args = [self.eval(a, scope) for a in next_link.args]
                current = self.call_method(current, link.name, args)
                i += 2
                continue
            if isinstance(link, Member):
                current = self.get_property(current, link.name)
            elif isinstance(link, Index):
                current = self.get_property(current, self.eval(link.index, scope))
            elif isinstance(link, Call):
                current = self.call(current, [self.eval(a, scope) for a in link.args])
            i += 1
        return current

    ## Objects and calls

    def get_property(self, obj: Any, key: Any) -> Any:
        name = key if isinstance(key, str) else to_string(key)
        if is_nullish(obj):
            raise ExpressionRuntimeError(
                f"Cannot read properties of {to_string(obj)} (reading '{name}')"
            )
        if isinstance(obj, (str, list)):
            if name == "length":
                return len(obj)
            if name.isdigit():
                i = int(name)
                return obj[i] if i < len(obj) else UNDEFINED
            methods = STRING_METHODS if isinstance(obj, str) else LIST_METHODS
            if name in methods:
                return BuiltinFunction(name, lambda *args: self.call_method(obj, name, list(args)))
            return UNDEFINED
        if isinstance(obj, dict):
            return obj.get(name, UNDEFINED)
        if isinstance(obj, Namespace):
            return obj.members.get(name, UNDEFINED)
        return UNDEFINED

    def call_method(self, obj: Any, name: str, args: List[Any]) -> Any:
        if is_nullish(obj):
            raise ExpressionRuntimeError(
                f"Cannot read properties of {to_string(obj)} (reading '{name}')"
            )
        if isinstance(obj, str) and name in STRING_METHODS:
            return STRING_METHODS[name](self, obj, args)
        if isinstance(obj, list) and name in LIST_METHODS:
            return LIST_METHODS[name](self, obj, args)
        if name == "toString" and (is_number(obj) or isinstance(obj, bool)):
            return to_string(obj)
        fn = self.get_property(obj, name)
        if not callable(fn):
            raise ExpressionRuntimeError(f"{_describe(obj)}.{name} is not a function")
        return self.call(fn, args)

    def call(self, fn: Any, args: List[Any]) -> Any:
        if isinstance(fn, (ArrowFunction, BuiltinFunction)):
            return fn(*args)
        raise ExpressionRuntimeError(f"{_describe(fn)} is not a function")

    def call_arrow(self, fn: ArrowFunction, args: Sequence[Any]) -> Any:
        self.call_depth += 1
        try:
            if self.call_depth > MAX_CALL_DEPTH:
                raise ExpressionRuntimeError("Maximum call depth exceeded")
            scope = Scope(fn.scope)
            for i, param in enumerate(fn.node.params):
                scope.declare("let", param, args[i] if i < len(args) else UNDEFINED)
            if isinstance(fn.node.body, Block):
                returned, result = self.exec_statements(fn.node.body.body, scope)
                return result if returned else UNDEFINED
            return self.eval(fn.node.body, scope)
        finally:
            self.call_depth -= 1


def run_program(program: Program, value: Any) -> Any:
    return Interpreter().run(program, value)


## Tests


def _run(source: str, value: Any = None) -> Any:
    from vaultview.expressions.expr_parser import parse_program

    return run_program(parse_program(source), value)


def test_standard_predicate_shape():
    source = "if (value) {return value.includes('Computer Science')} else {return false}"
    assert _run(source, "Computer Science and Engineering") is True
    assert _run(source, "Biology") is False
    assert _run(source, None) is False
    assert _run(source, ["Computer Science", "Math"]) is True


def test_null_member_access_faults():
    try:
        _run("return value.includes('x')", None)
        assert False
    except ExpressionRuntimeError as e:
        assert "null" in str(e)
    assert _run("value?.includes('x')", None) is UNDEFINED
    assert _run("value?.includes('x') ?? false", None) is False


def test_bare_expressions_and_operators():
    assert _run("value > 100 && value % 2 === 0", 251) is False
    assert _run("value > 100 && value % 2 === 0", 200) is True
    assert _run("value.length", ["a", "b"]) == 2
    assert _run("typeof value", None) == "object"
    assert _run("typeof missing === 'undefined'") is True
    assert _run("value == undefined", None) is True
    assert _run("value ? 'yes' : 'no'", "") == "no"
    assert _run("-value + 1", "3") == -2
    assert _run("value.name + ' Inc'", {"name": "Acme"}) == "Acme Inc"
    assert _run("value['size']", {"size": 10}) == 10
    assert _run("value[1]", "abc") == "b"
    assert _run("value.nope", {"a": 1}) is UNDEFINED


def test_string_and_list_methods():
    assert _run("value.toLowerCase().startsWith('acme')", "ACME Corp") is True
    assert _run("value.trim().split(',').length", " a,b,c ") == 3
    assert _run("value.some(m => m.endsWith('Science'))", ["Biology", "Computer Science"]) is True
    assert _run("value.every(x => x > 1)", [2, 3]) is True
    assert _run("value.filter(x => x !== 'b').join('-')", ["a", "b", "c"]) == "a-c"
    assert _run("value.map((x, i) => x * i)", [5, 5, 5]) == [0, 5, 10]
    assert _run("value.find(x => x.startsWith('C'))", ["Biology", "Chem"]) == "Chem"
    assert _run("value.indexOf('b')", ["a", "b"]) == 1
    assert _run("Array.isArray(value) && value.includes(2)", [1, 2]) is True
    assert _run("Number(value) >= 10", "12") is True
    assert _run("String(value).includes('1')", 12) is True


def test_locals_and_blocks():
    source = """
    const wanted = ['Biology', 'Chemistry'];
    let hits = 0
    if (!value) return false
    hits = value.filter(m => wanted.includes(m)).length
    return hits >= 2
    """
    assert _run(source, ["Biology", "Chemistry", "Art"]) is True
    assert _run(source, ["Biology"]) is False
    assert _run(source, None) is False


def test_no_leaks_and_no_escape():
    record_value = ["a"]
    assert _run("value.push('b') === 2", record_value) is True
    assert record_value == ["a"]
    for source in ["open('x')", "value.__class__", "__import__('os')"]:
        try:
            result = _run(source, "text")
            assert result is UNDEFINED
        except ExpressionRuntimeError:
            pass


def test_runaway_recursion_is_bounded():
    try:
        _run("const f = x => f(x); return f(1)")
        assert False
    except ExpressionRuntimeError as e:
        assert "depth" in str(e)


def test_missing_return_is_undefined():
    assert _run("if (value) { return true }", None) is UNDEFINED
    try:
        _run("const x = 1; x = 2")
        assert False
    except ExpressionRuntimeError:
        pass


def test_wide_recursion_is_bounded():
    from vaultview.expressions.expr_parser import parse_program

    source = "const f = n => n > 0 ? f(n - 1).concat(f(n - 1)) : [1]; return f(30).length > 0"
    try:
        _run(source)
        assert False
    except ExpressionRuntimeError as e:
        assert "too many steps" in str(e)

    assert Interpreter(max_steps=3).run(parse_program("value + 1"), 1) == 2
    try:
        Interpreter(max_steps=2).run(parse_program("value + 1"), 1)
        assert False
    except ExpressionRuntimeError:
        pass
