"""Test cases and structural comparison of concrete values.

Concrete values are ordinary Python objects (lists, tuples, sets, dicts,
strings and numbers), which are not all hashable. ``freeze`` maps any of
them to a hashable canonical key that captures exactly the equality we
care about:

- lists and tuples compare element by element, in order, and a list
  never equals a tuple;
- sets compare by membership, dicts by key regardless of insertion order;
- ``True`` and ``1`` are different values;
- ints and floats compare numerically, with no tolerance, and every NaN
  equals every other NaN;
- anything else is compared by its repr. Objects whose repr is the default
  ``<Foo object at 0x...>`` include an address, so two such results never
  compare equal, even from identical implementations.
"""

import math
from collections.abc import Hashable
from typing import Any

from attrs import Factory, define, field


@define(frozen=True)
class OpaqueValue:
    """A value with no structural encoding, represented by its repr."""

    text: str


def freeze(value: Any) -> Hashable:
    match value:
        case None:
            return ("none",)
        case bool():
            return ("bool", value)
        case float() if math.isnan(value):
            return ("number", "nan")
        case int() | float():
            return ("number", value)
        case str():
            return ("str", value)
        case list():
            return ("list", tuple(map(freeze, value)))
        case tuple():
            return ("tuple", tuple(map(freeze, value)))
        case set() | frozenset():
            return ("set", frozenset(map(freeze, value)))
        case dict():
            return ("dict", frozenset((freeze(k), freeze(v)) for k, v in value.items()))
        case OpaqueValue(text=text):
            return ("opaque", text)
        case _:
            return ("opaque", repr(value))


def values_equal(left: Any, right: Any) -> bool:
    return freeze(left) == freeze(right)


@define(frozen=True, repr=False)
class TestCase:
    """One concrete argument tuple for the function under test.

    Test cases are equal and hash equal exactly when their arguments are
    structurally equal, so collections of them de-duplicate naturally.
    """

    __test__ = False

    args: tuple[Any, ...] = field(converter=tuple, eq=False)
    key: Hashable = field(
        init=False, default=Factory(lambda self: freeze(self.args), takes_self=True)
    )

    def call_repr(self, fname: str) -> str:
        return f"{fname}({', '.join(map(repr, self.args))})"

    def __repr__(self) -> str:
        return f"TestCase{self.args!r}"
