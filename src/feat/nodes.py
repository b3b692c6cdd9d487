"""Type-domain nodes.

A configuration declares, for every parameter of the function under test,
a type shape (``int``, ``list(dict(int:str(ab)))``, ...) together with the
values each level of that shape may take. This module defines the tree
that records both.

Each node is one of a closed set of variants:

- IntNode, FloatNode, BoolNode: primitive leaves. Their domains are the
  literal values the leaf may take (BoolNode uses 0 and 1).
- StrNode: a leaf with a fixed alphabet. Its domains are string lengths.
- ListNode, TupleNode, SetNode: one child (the element type). Their
  domains are container sizes.
- DictNode: two children (key and value types). Its domains are sizes.

Every node carries two domains: ``exhaustive`` (values combined for full
combinatorial coverage) and ``random`` (values sampled from when drawing
random test cases). Domains are stored as sorted tuples without
duplicates, so that anything derived from them is deterministic.

Nodes are frozen: the parser builds a bare shape first and then derives
new nodes carrying domains with ``attrs.evolve``. Code that walks the
tree dispatches with ``match`` over the variants.
"""

from typing import Any

from attrs import define, field


type Domain = tuple[Any, ...]


def as_domain(values: Any) -> Domain:
    """Normalise an iterable of domain values to a sorted, de-duplicated tuple."""
    return tuple(sorted(set(values)))


@define(frozen=True)
class IntNode:
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class FloatNode:
    exhaustive: tuple[float, ...] = field(default=(), converter=as_domain)
    random: tuple[float, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class BoolNode:
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class StrNode:
    """A string leaf.

    The alphabet comes from the type declaration and is kept in the order
    it was written. The domains are lengths of strings over that alphabet.
    """

    alphabet: tuple[str, ...] = field(default=(), converter=lambda s: tuple(dict.fromkeys(s)))
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class ListNode:
    child: "TypeNode"
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class TupleNode:
    child: "TypeNode"
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class SetNode:
    child: "TypeNode"
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


@define(frozen=True)
class DictNode:
    key: "TypeNode"
    value: "TypeNode"
    exhaustive: tuple[int, ...] = field(default=(), converter=as_domain)
    random: tuple[int, ...] = field(default=(), converter=as_domain)


type TypeNode = (
    IntNode
    | FloatNode
    | BoolNode
    | StrNode
    | ListNode
    | TupleNode
    | SetNode
    | DictNode
)


# Declaration keyword for each variant, as written in configuration files.
KEYWORDS: dict[type, str] = {
    IntNode: "int",
    FloatNode: "float",
    BoolNode: "bool",
    StrNode: "str",
    ListNode: "list",
    TupleNode: "tuple",
    SetNode: "set",
    DictNode: "dict",
}


def children(node: TypeNode) -> tuple[TypeNode, ...]:
    match node:
        case ListNode(child=child) | TupleNode(child=child) | SetNode(child=child):
            return (child,)
        case DictNode(key=key, value=value):
            return (key, value)
        case _:
            return ()


def describe(node: TypeNode) -> str:
    """Render the type declaration that would parse to this node's shape."""
    match node:
        case StrNode(alphabet=alphabet):
            return f"str({''.join(alphabet)})"
        case ListNode(child=child) | TupleNode(child=child) | SetNode(child=child):
            return f"{KEYWORDS[type(node)]}({describe(child)})"
        case DictNode(key=key, value=value):
            return f"dict({describe(key)}:{describe(value)})"
        case _:
            return KEYWORDS[type(node)]


def is_hashable(node: TypeNode) -> bool:
    """Whether values of this shape can be set elements or dict keys."""
    match node:
        case TupleNode(child=child):
            return is_hashable(child)
        case ListNode() | SetNode() | DictNode():
            return False
        case _:
            return True
