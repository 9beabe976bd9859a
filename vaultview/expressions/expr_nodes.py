"""
Syntax tree for predicate expressions.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Union


## Expressions


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    name: str
    pos: int = -1


@dataclass(frozen=True)
class ArrayLiteral:
    elements: List["Expr"]


@dataclass(frozen=True)
class Unary:
    op: str
    operand: "Expr"


@dataclass(frozen=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Logical:
    """Short-circuiting `&&`, `||` and `??`."""

    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True)
class Conditional:
    test: "Expr"
    consequent: "Expr"
    alternate: "Expr"


@dataclass(frozen=True)
class Assign:
    name: str
    value: "Expr"


@dataclass(frozen=True)
class Arrow:
    params: List[str]
    body: Union["Expr", "Block"]


@dataclass(frozen=True)
class Member:
    """`.name` access. `optional` marks `?.name`."""

    name: str
    optional: bool = False


@dataclass(frozen=True)
class Index:
    index: "Expr"
    optional: bool = False


@dataclass(frozen=True)
class Call:
    args: List["Expr"]
    optional: bool = False


Link = Union[Member, Index, Call]


@dataclass(frozen=True)
class Chain:
    """
    A base expression followed by member accesses, indexing and calls, e.g.
    `value?.tags.includes('x')`. If an optional link meets null or undefined, the
    whole chain is undefined.
    """

    base: "Expr"
    links: List[Link] = field(default_factory=list)


Expr = Union[Literal, Name, ArrayLiteral, Unary, Binary, Logical, Conditional, Assign, Arrow, Chain]


## Statements


@dataclass(frozen=True)
class ExprStatement:
    expr: Expr


@dataclass(frozen=True)
class Declare:
    kind: str
    name: str
    value: Optional[Expr]


@dataclass(frozen=True)
class Return:
    value: Optional[Expr]


@dataclass(frozen=True)
class If:
    test: Expr
    consequent: "Statement"
    alternate: Optional["Statement"] = None


@dataclass(frozen=True)
class Block:
    body: List["Statement"]


@dataclass(frozen=True)
class Empty:
    pass


Statement = Union[ExprStatement, Declare, Return, If, Block, Empty]


@dataclass(frozen=True)
class Program:
    body: List[Statement]
    source: str = ""

    @property
    def is_bare_expression(self) -> bool:
        """A program that is a single expression evaluates to that expression."""
        return len(self.body) == 1 and isinstance(self.body[0], ExprStatement)
