"""
Parser for predicate expressions.

The grammar is a small, loop-free subset of JavaScript: `if`/`else`, `return`,
blocks, `const`/`let`/`var`, and expressions with the usual operator precedence,
optional chaining and arrow functions. Semicolons are optional.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

import regex
from lark import Lark, Token, Transformer, v_args
from lark.exceptions import (
    LarkError,
    UnexpectedCharacters,
    UnexpectedEOF,
    UnexpectedInput,
    UnexpectedToken,
    VisitError,
)

from vaultview.expressions.expr_errors import ExpressionSyntaxError
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
    Link,
    Literal,
    Logical,
    Member,
    Name,
    Program,
    Return,
    Statement,
    Unary,
)
from vaultview.expressions.expr_values import UNDEFINED

GRAMMAR = r"""

    program: statement*

    ?statement: block
        | "if" "(" expr ")" statement ["else" statement]    -> if_stmt
        | "return" [expr]                                   -> return_stmt
        | (CONST | LET | VAR) NAME ["=" expr]               -> declare
        | ";"                                               -> empty
        | expr                                              -> expr_stmt

    block: "{" statement* "}"

    // Assignment and arrow functions bind loosest.
    ?expr: conditional
        | NAME "=" expr                 -> assign
        | arrow

    arrow: NAME "=>" arrow_body         -> arrow_one
        | group "=>" arrow_body

    ?arrow_body: block | expr

    ?conditional: coalesce
        | coalesce "?" expr ":" expr    -> ternary

    ?coalesce: or_test
        | coalesce "??" or_test         -> coalesce_op

    ?or_test: and_test
        | or_test "||" and_test         -> or_op

    ?and_test: equality
        | and_test "&&" equality        -> and_op

    ?equality: comparison
        | equality EQ_OP comparison     -> binary

    ?comparison: sum
        | comparison COMP_OP sum        -> binary

    ?sum: product
        | sum (PLUS | MINUS) product    -> binary

    ?product: unary
        | product MUL_OP unary          -> binary

    ?unary: chain
        | (BANG | PLUS | MINUS | TYPEOF) unary  -> unary_op

    ?chain: atom
        | chain "." NAME                        -> member
        | chain _OPT_DOT NAME                   -> optional_member
        | chain "[" expr "]"                    -> index
        | chain _OPT_DOT "[" expr "]"           -> optional_index
        | chain "(" [args] ")"                  -> call
        | chain _OPT_DOT "(" [args] ")"         -> optional_call

    ?atom: NUMBER                       -> number
        | STRING                        -> string
        | "true"                        -> true
        | "false"                       -> false
        | "null"                        -> null
        | "undefined"                   -> undefined
        | NAME                          -> name
        | "[" [args] "]"                -> array
        | group                         -> paren

    // Either a parenthesized expression or the parameters of an arrow function.
    group: "(" [args] ")"

    args: expr ("," expr)*

    CONST: "const"
    LET: "let"
    VAR: "var"
    TYPEOF: "typeof"

    EQ_OP: "===" | "!==" | "==" | "!="
    COMP_OP: "<=" | ">=" | "<" | ">"
    MUL_OP: "*" | "/" | "%"
    PLUS: "+"
    MINUS: "-"
    BANG: "!"

    // `a?.5:1` is a conditional, not optional chaining.
    _OPT_DOT: /\?\.(?!\d)/

    NAME: /[\p{L}_$][\p{L}\p{N}_$]*/
    NUMBER: /(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?/
    STRING: /'(?:[^'\\\n]|\\.)*'|"(?:[^"\\\n]|\\.)*"/

    COMMENT: /\/\/[^\n]*/ | /\/\*[\s\S]*?\*\//

    %ignore /\s+/
    %ignore COMMENT

"""

_escape_re = regex.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", regex.DOTALL)

_simple_escapes = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def unescape(body: str) -> str:
    def replace(match: regex.Match) -> str:
        esc = match.group(1)
        if esc.startswith("u{"):
            return chr(int(esc[2:-1], 16))
        if esc.startswith("u") and len(esc) == 5:
            return chr(int(esc[1:], 16))
        if esc.startswith("x") and len(esc) == 3:
            return chr(int(esc[1:], 16))
        return _simple_escapes.get(esc, esc)

    return _escape_re.sub(replace, body)


def number_value(text: str) -> int | float:
    number = float(text)
    if number.is_integer() and text.isdigit():
        return int(number)
    return number


@dataclass(frozen=True)
class Group:
    """Contents of parentheses, before we know if they're an expression or parameters."""

    items: List[Expr]


def without_empty(statements: List[Statement]) -> List[Statement]:
    return [s for s in statements if not isinstance(s, Empty)]


def extend_chain(base: Expr, link: Link) -> Chain:
    if isinstance(base, Chain):
        return Chain(base.base, base.links + [link])
    return Chain(base, [link])


class ExpressionTransformer(Transformer):
    """Turns the parse tree into expression nodes."""

    ## Statements

    def program(self, statements):
        return without_empty(statements)

    def block(self, statements):
        return Block(without_empty(statements))

    @v_args(inline=True)
    def if_stmt(self, test, consequent, alternate):
        return If(test, consequent, alternate)

    @v_args(inline=True)
    def return_stmt(self, value):
        return Return(value)

    @v_args(inline=True)
    def declare(self, kind: Token, name: Token, value: Optional[Expr]):
        if kind == "const" and value is None:
            raise ExpressionSyntaxError("Missing initializer in const declaration", name.start_pos)
        return Declare(str(kind), str(name), value)

    def empty(self, _children):
        return Empty()

    @v_args(inline=True)
    def expr_stmt(self, expr):
        return ExprStatement(expr)

    ## Expressions

    @v_args(inline=True)
    def assign(self, name: Token, value):
        return Assign(str(name), value)

    @v_args(inline=True)
    def arrow_one(self, param: Token, body):
        return Arrow([str(param)], body)

    @v_args(inline=True)
    def arrow(self, group: Group, body):
        params = []
        for item in group.items:
            if not isinstance(item, Name):
                raise ExpressionSyntaxError("Arrow function parameters must be names")
            params.append(item.name)
        return Arrow(params, body)

    @v_args(inline=True)
    def ternary(self, test, consequent, alternate):
        return Conditional(test, consequent, alternate)

    @v_args(inline=True)
    def coalesce_op(self, left, right):
        return Logical("??", left, right)

    @v_args(inline=True)
    def or_op(self, left, right):
        return Logical("||", left, right)

    @v_args(inline=True)
    def and_op(self, left, right):
        return Logical("&&", left, right)

    @v_args(inline=True)
    def binary(self, left, op: Token, right):
        return Binary(str(op), left, right)

    @v_args(inline=True)
    def unary_op(self, op: Token, operand):
        return Unary(str(op), operand)

    @v_args(inline=True)
    def member(self, base, name: Token):
        return extend_chain(base, Member(str(name)))

    @v_args(inline=True)
    def optional_member(self, base, name: Token):
        return extend_chain(base, Member(str(name), optional=True))

    @v_args(inline=True)
    def index(self, base, index):
        return extend_chain(base, Index(index))

    @v_args(inline=True)
    def optional_index(self, base, index):
        return extend_chain(base, Index(index, optional=True))

    @v_args(inline=True)
    def call(self, base, args):
        return extend_chain(base, Call(args or []))

    @v_args(inline=True)
    def optional_call(self, base, args):
        return extend_chain(base, Call(args or [], optional=True))

    @v_args(inline=True)
    def number(self, token: Token):
        return Literal(number_value(str(token)))

    @v_args(inline=True)
    def string(self, token: Token):
        return Literal(unescape(str(token)[1:-1]))

    def true(self, _children):
        return Literal(True)

    def false(self, _children):
        return Literal(False)

    def null(self, _children):
        return Literal(None)

    def undefined(self, _children):
        return Literal(UNDEFINED)

    @v_args(inline=True)
    def name(self, token: Token):
        return Name(str(token), token.start_pos)

    @v_args(inline=True)
    def array(self, items):
        return ArrayLiteral(items or [])

    @v_args(inline=True)
    def group(self, items):
        return Group(items or [])

    @v_args(inline=True)
    def paren(self, group: Group):
        if len(group.items) != 1:
            raise ExpressionSyntaxError("Expected one expression in parentheses")
        inner = group.items[0]
        # Optional chaining stops at parentheses, so keep a parenthesized chain whole.
        if isinstance(inner, Chain):
            return Chain(inner)
        return inner

    def args(self, items):
        return list(items)


parser = Lark(GRAMMAR, start="program", parser="lalr", regex=True)


def syntax_error(e: UnexpectedInput) -> ExpressionSyntaxError:
    if isinstance(e, UnexpectedEOF):
        return ExpressionSyntaxError("Unexpected end of expression")
    if isinstance(e, UnexpectedCharacters):
        return ExpressionSyntaxError(f"Unexpected character {e.char!r}", e.pos_in_stream)
    if isinstance(e, UnexpectedToken):
        if e.token.type == "$END":
            return ExpressionSyntaxError("Unexpected end of expression")
        return ExpressionSyntaxError(f"Unexpected `{e.token}`", e.pos_in_stream or 0)
    return ExpressionSyntaxError(str(e))


def parse_program(source: str) -> Program:
    """
    Parse expression source into a Program. Raises ExpressionSyntaxError.
    """
    try:
        tree = parser.parse(source)
        body: Any = ExpressionTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, ExpressionSyntaxError):
            raise e.orig_exc from None
        if isinstance(e.orig_exc, RecursionError):
            raise ExpressionSyntaxError("Expression is nested too deeply") from None
        raise ExpressionSyntaxError(str(e.orig_exc)) from e
    except UnexpectedInput as e:
        raise syntax_error(e) from None
    except LarkError as e:
        raise ExpressionSyntaxError(str(e)) from e
    except RecursionError:
        raise ExpressionSyntaxError("Expression is nested too deeply") from None

    if not body:
        raise ExpressionSyntaxError("Empty expression")
    return Program(body=body, source=source)


## Tests


def test_parse_standard_predicate_shape():
    program = parse_program(
        "if (value) {return value.includes('Computer Science')} else {return false}"
    )
    assert len(program.body) == 1
    stmt = program.body[0]
    assert isinstance(stmt, If)
    assert stmt.test == Name("value", 4)
    assert isinstance(stmt.consequent, Block)
    ret = stmt.consequent.body[0]
    assert isinstance(ret, Return)
    assert ret.value == Chain(
        Name("value", 19),
        [Member("includes"), Call([Literal("Computer Science")])],
    )
    assert stmt.alternate == Block([Return(Literal(False))])


def test_parse_precedence():
    program = parse_program("1 + 2 * 3 < 10 && !done || x ?? y")
    assert program.is_bare_expression
    expr = program.body[0].expr  # type: ignore
    assert isinstance(expr, Logical) and expr.op == "??"
    left = expr.left
    assert isinstance(left, Logical) and left.op == "||"
    conj = left.left
    assert isinstance(conj, Logical) and conj.op == "&&"
    assert conj.left == Binary(
        "<", Binary("+", Literal(1), Binary("*", Literal(2), Literal(3))), Literal(10)
    )
    assert conj.right == Unary("!", Name("done", 19))


def test_parse_literals_and_comments():
    program = parse_program('a?.b !== 1.5e2 // trailing\n&& "q\\"x\\u0041" ?? x ? .5 : 3')
    expr = program.body[0].expr  # type: ignore
    assert isinstance(expr, Conditional)
    assert expr.consequent == Literal(0.5)
    assert expr.alternate == Literal(3) and isinstance(expr.alternate.value, int)
    coalesce = expr.test
    assert isinstance(coalesce, Logical) and coalesce.op == "??"
    conj = coalesce.left
    assert isinstance(conj, Logical) and conj.op == "&&"
    assert conj.right == Literal('q"xA')
    assert conj.left == Binary(
        "!==", Chain(Name("a", 0), [Member("b", optional=True)]), Literal(150.0)
    )


def test_parse_multiline_and_arrows():
    program = parse_program(
        """
        const wanted = ['Biology', 'Chemistry'];
        if (!Array.isArray(value)) return false
        /* any of them */
        return value.some(m => wanted.includes(m))
        """
    )
    assert [type(s) for s in program.body] == [Declare, If, Return]
    ret = program.body[2]
    assert isinstance(ret, Return) and isinstance(ret.value, Chain)
    call = ret.value.links[1]
    assert isinstance(call, Call) and isinstance(call.args[0], Arrow)
    assert call.args[0].params == ["m"]

    pair = parse_program("value.map((x, i) => x * i)").body[0].expr  # type: ignore
    assert pair.links[1].args[0].params == ["x", "i"]


def test_parentheses_keep_chains_whole():
    expr = parse_program("(value?.a).b").body[0].expr  # type: ignore
    assert isinstance(expr, Chain)
    assert expr.links == [Member("b")]
    assert expr.base == Chain(Name("value", 1), [Member("a", optional=True)])


def test_parse_errors():
    bad_sources = [
        "",
        ";",
        "if (value",
        "return value.",
        "for (;;) {}",
        "value +",
        "a.b = 1",
        "{",
        "(a, b)",
        "(a + 1) => a",
        "const x",
        "value # 1",
    ]
    for bad in bad_sources:
        try:
            parse_program(bad)
            assert False, bad
        except ExpressionSyntaxError:
            pass


def test_syntax_error_positions():
    try:
        parse_program("value # 1")
        assert False
    except ExpressionSyntaxError as e:
        assert e.pos == 6
