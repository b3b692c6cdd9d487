"""Parsing of configuration documents into type-domain trees.

A configuration document is a JSON object::

    {
        "fname": "add",
        "types": ["int", "list(str(ab))"],
        "exhaustive domain": ["0~2", "0~1(0~2)"],
        "random domain": ["-10~10", "0~5(0~4)"],
        "num random": 20
    }

There are two small grammars involved. Type declarations::

    decl := "int" | "float" | "bool"
          | "str" | "str(" alphabet ")"
          | ("list" | "tuple" | "set") "(" decl ")"
          | "dict(" decl ":" decl ")"

and domain declarations, which mirror the shape of the type they belong
to::

    domain := values                        (int, float, bool leaves)
            | sizes                         (str)
            | sizes "(" domain ")"          (list, tuple, set)
            | sizes "(" domain ":" domain ")"   (dict)
    values := "" | int "~" int | literal ("," literal)*

Both are parsed by recursive descent over a cursor. Any problem raises a
subclass of InvalidConfigError immediately; nothing partially parsed is
ever returned.
"""

import json
import math
import string
from collections.abc import Callable, Sequence
from typing import Any, Literal

import attrs
from attrs import define, field

from feat.nodes import (
    BoolNode,
    DictNode,
    FloatNode,
    IntNode,
    ListNode,
    SetNode,
    StrNode,
    TupleNode,
    TypeNode,
    describe,
    is_hashable,
)


class InvalidConfigError(Exception):
    """Base class for every problem with a configuration document."""


class MalformedDocumentError(InvalidConfigError):
    pass


class MissingFieldError(InvalidConfigError):
    pass


class UnexpectedFieldError(InvalidConfigError):
    pass


class LengthMismatchError(InvalidConfigError):
    pass


class TypeDeclarationError(InvalidConfigError):
    """A type declaration uses an unknown token or is structurally malformed."""


class DomainSyntaxError(InvalidConfigError):
    pass


class InvalidRandomCountError(InvalidConfigError):
    pass


class BoundsError(InvalidConfigError):
    """A range is reversed or its bounds are not integers."""


class NegativeSizeError(InvalidConfigError):
    pass


class BoolDomainError(InvalidConfigError):
    pass


FNAME = "fname"
TYPES = "types"
EXHAUSTIVE_DOMAIN = "exhaustive domain"
RANDOM_DOMAIN = "random domain"
NUM_RANDOM = "num random"

REQUIRED_KEYS = (FNAME, TYPES, EXHAUSTIVE_DOMAIN, RANDOM_DOMAIN, NUM_RANDOM)

# Alphabet used by a bare ``str`` declaration.
DEFAULT_ALPHABET = string.ascii_lowercase

type DomainField = Literal["exhaustive", "random"]


@define(frozen=True)
class ConfigFile:
    """A parsed configuration: the function under test and its parameters."""

    fname: str
    nodes: tuple[TypeNode, ...] = field(converter=tuple)
    num_random: int


class _Cursor:
    """A position in a declaration string, shared by both grammars."""

    def __init__(self, text: str, error: type[InvalidConfigError]):
        self.text = text
        self.index = 0
        self.error = error

    def fail(self, message: str) -> InvalidConfigError:
        return self.error(f"{message} at position {self.index} in {self.text!r}")

    def skip_whitespace(self) -> None:
        while self.index < len(self.text) and self.text[self.index].isspace():
            self.index += 1

    def at_end(self) -> bool:
        self.skip_whitespace()
        return self.index >= len(self.text)

    def peek(self) -> str:
        self.skip_whitespace()
        return self.text[self.index : self.index + 1]

    def expect(self, token: str) -> None:
        if self.peek() != token:
            found = repr(self.peek()) if self.peek() else "end of input"
            raise self.fail(f"Expected {token!r} but found {found}")
        self.index += 1

    def read_until(self, stops: str) -> str:
        start = self.index
        while self.index < len(self.text) and self.text[self.index] not in stops:
            self.index += 1
        return self.text[start : self.index]

    def read_word(self) -> str:
        self.skip_whitespace()
        start = self.index
        while self.index < len(self.text) and self.text[self.index].isalpha():
            self.index += 1
        return self.text[start : self.index]


# Type declarations


def parse_types(declaration: str) -> TypeNode:
    """Parse a type declaration into a node tree with empty domains.

    Raises TypeDeclarationError if the declaration is not recognised.
    """
    cursor = _Cursor(declaration, TypeDeclarationError)
    node = _parse_declaration(cursor)
    if not cursor.at_end():
        raise cursor.fail("Unexpected trailing text")
    return node


def _parse_declaration(cursor: _Cursor) -> TypeNode:
    word = cursor.read_word()
    match word:
        case "int":
            return IntNode()
        case "float":
            return FloatNode()
        case "bool":
            return BoolNode()
        case "str":
            if cursor.peek() != "(":
                return StrNode(alphabet=DEFAULT_ALPHABET)
            cursor.expect("(")
            alphabet = cursor.read_until(")")
            cursor.expect(")")
            return StrNode(alphabet=alphabet)
        case "list" | "tuple" | "set":
            cursor.expect("(")
            child = _parse_declaration(cursor)
            cursor.expect(")")
            if word == "list":
                return ListNode(child=child)
            elif word == "tuple":
                return TupleNode(child=child)
            if not is_hashable(child):
                raise cursor.fail(
                    f"Set elements must be hashable, but {describe(child)} is not"
                )
            return SetNode(child=child)
        case "dict":
            cursor.expect("(")
            key = _parse_declaration(cursor)
            cursor.expect(":")
            value = _parse_declaration(cursor)
            cursor.expect(")")
            if not is_hashable(key):
                raise cursor.fail(
                    f"Dict keys must be hashable, but {describe(key)} is not"
                )
            return DictNode(key=key, value=value)
        case "":
            found = repr(cursor.peek()) if cursor.peek() else "end of input"
            raise cursor.fail(f"Expected a type but found {found}")
        case _:
            cursor.index -= len(word)
            raise cursor.fail(f"Unrecognised type {word!r}")


# Domain declarations


def parse_domain(node: TypeNode, declaration: str, which: DomainField) -> TypeNode:
    """Return a copy of ``node`` whose ``which`` domains are set from ``declaration``.

    The declaration is parsed recursively alongside the node, so every
    level of the tree receives its own domain. Domains other than
    ``which`` are left as they were.
    """
    cursor = _Cursor(declaration, DomainSyntaxError)
    result = _parse_node_domain(node, cursor, which)
    if not cursor.at_end():
        raise cursor.fail("Unexpected trailing text")
    return result


def _parse_node_domain(node: TypeNode, cursor: _Cursor, which: DomainField) -> TypeNode:
    spec = cursor.read_until("():")
    match node:
        case IntNode():
            values = _parse_values(spec, _int_literal)
        case FloatNode():
            values = _parse_values(spec, _float_literal, float)
        case BoolNode():
            values = _parse_values(spec, _bool_literal)
            _check_bool_values(values, spec)
        case _:
            values = _parse_sizes(spec)

    match node:
        case ListNode(child=child) | TupleNode(child=child) | SetNode(child=child):
            cursor.expect("(")
            child = _parse_node_domain(child, cursor, which)
            cursor.expect(")")
            return attrs.evolve(node, child=child, **{which: values})
        case DictNode(key=key, value=value):
            cursor.expect("(")
            key = _parse_node_domain(key, cursor, which)
            cursor.expect(":")
            value = _parse_node_domain(value, cursor, which)
            cursor.expect(")")
            return attrs.evolve(node, key=key, value=value, **{which: values})
        case _:
            if cursor.peek() == "(":
                raise cursor.fail(
                    f"A {describe(node)} domain cannot have a parenthesised part"
                )
            return attrs.evolve(node, **{which: values})


def _clean(spec: str) -> str:
    spec = spec.replace('"', "").strip()
    if spec.startswith("[") and spec.endswith("]"):
        spec = spec[1:-1].strip()
    return spec


def parse_range(spec: str) -> range:
    """Parse an inclusive ``start~stop`` range of integers."""
    bounds = spec.split("~")
    if len(bounds) != 2:
        raise BoundsError(f"Range {spec!r} must have exactly one '~'")
    try:
        start, stop = (int(b.strip()) for b in bounds)
    except ValueError:
        raise BoundsError(f"Range {spec!r} must have integer bounds") from None
    if start > stop:
        raise BoundsError(f"Range {spec!r} has start greater than stop")
    return range(start, stop + 1)


def _parse_values(
    spec: str,
    literal: Callable[[str], Any],
    convert: Callable[[int], Any] = int,
) -> list[Any]:
    spec = _clean(spec)
    if not spec:
        return []
    if "~" in spec:
        return [convert(i) for i in parse_range(spec)]
    values = []
    for item in spec.split(","):
        item = item.strip()
        if not item:
            raise DomainSyntaxError(f"Empty value in domain {spec!r}")
        values.append(literal(item))
    return values


def _int_literal(item: str) -> int:
    try:
        return int(item)
    except ValueError:
        raise DomainSyntaxError(
            f"Non-integer value {item!r} found where an integer was expected"
        ) from None


def _float_literal(item: str) -> float:
    try:
        value = float(item)
    except ValueError:
        raise DomainSyntaxError(f"Invalid value {item!r} in float domain") from None
    if not math.isfinite(value):
        raise DomainSyntaxError(f"Float domain value {item!r} must be finite")
    return value


def _bool_literal(item: str) -> int:
    value = _int_literal(item)
    if value not in (0, 1):
        raise BoolDomainError(f"Invalid value {item!r} in bool domain: must be 0 or 1")
    return value


def _check_bool_values(values: list[int], spec: str) -> None:
    # Ranges bypass _bool_literal, so check them here.
    if any(v not in (0, 1) for v in values):
        raise BoolDomainError(f"Bool domain {spec.strip()!r} must only contain 0 and 1")


def _size_literal(item: str) -> int:
    value = _int_literal(item)
    if value < 0:
        raise NegativeSizeError(f"Negative size {value} in domain")
    return value


def _parse_sizes(spec: str) -> list[int]:
    sizes = _parse_values(spec, _size_literal)
    if sizes and sizes[0] < 0:
        raise NegativeSizeError(f"Negative size in domain {spec.strip()!r}")
    return sizes


# Documents


def parse_type_domains(
    types: Sequence[str],
    exhaustive: Sequence[str],
    random: Sequence[str],
) -> list[TypeNode]:
    """Parse parallel lists of type and domain declarations into root nodes."""
    if not (len(types) == len(exhaustive) == len(random)):
        raise LengthMismatchError(
            f"Number of types ({len(types)}) does not match number of exhaustive "
            f"domains ({len(exhaustive)}) and random domains ({len(random)})"
        )
    nodes = []
    for i, (declaration, ex, ran) in enumerate(zip(types, exhaustive, random)):
        try:
            node = parse_types(declaration)
            node = parse_domain(node, ex, "exhaustive")
            node = parse_domain(node, ran, "random")
        except InvalidConfigError as e:
            raise type(e)(f"Parameter {i} ({declaration!r}): {e}") from e
        nodes.append(node)
    return nodes


def parse_num_random(value: Any) -> int:
    # bool is a subclass of int, but true/false is not a count.
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidRandomCountError(
            f"{NUM_RANDOM!r} must be an integer, got {value!r}"
        )
    if value < 0:
        raise InvalidRandomCountError(f"{NUM_RANDOM!r} must not be negative, got {value}")
    return value


def _string_list(document: dict[str, Any], key: str) -> list[str]:
    value = document[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedDocumentError(f"{key!r} must be an array of strings")
    return value


def parse(contents: str) -> ConfigFile:
    """Parse the text of a configuration document."""
    try:
        document = json.loads(contents)
    except json.JSONDecodeError as e:
        raise MalformedDocumentError(f"Configuration is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise MalformedDocumentError("Configuration must be a JSON object")

    missing = [key for key in REQUIRED_KEYS if key not in document]
    if missing:
        raise MissingFieldError(f"Configuration is missing {', '.join(map(repr, missing))}")
    extra = sorted(key for key in document if key not in REQUIRED_KEYS)
    if extra:
        raise UnexpectedFieldError(
            f"Configuration has unexpected {', '.join(map(repr, extra))}"
        )

    fname = document[FNAME]
    if not isinstance(fname, str) or not fname.isidentifier():
        raise MalformedDocumentError(f"{FNAME!r} must be a function name, got {fname!r}")

    num_random = parse_num_random(document[NUM_RANDOM])
    nodes = parse_type_domains(
        _string_list(document, TYPES),
        _string_list(document, EXHAUSTIVE_DOMAIN),
        _string_list(document, RANDOM_DOMAIN),
    )
    return ConfigFile(fname=fname, nodes=nodes, num_random=num_random)


def load_config(path: str) -> ConfigFile:
    with open(path, encoding="utf-8") as reader:
        return parse(reader.read())
