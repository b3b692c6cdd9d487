"""Generation of the base test set from a parsed configuration.

The base test set is the union of two parts:

1. The exhaustive part: the cartesian product, across all parameters, of
   every value each parameter's exhaustive domains can produce.
2. The random part: exactly ``num_random`` test cases built by drawing
   every parameter independently from its random domains.

Duplicates are collapsed, keeping the first occurrence, so the exhaustive
part always comes first and in a deterministic order.
"""

from collections.abc import Iterable, Sequence
from itertools import combinations, combinations_with_replacement, product
from random import Random
from typing import Any

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
)
from feat.testcase import TestCase, freeze


class GenerationError(Exception):
    pass


class EmptyDomainError(GenerationError):
    """A value had to be drawn from a random domain with nothing in it."""


def unique(values: Iterable[Any]) -> list[Any]:
    """Drop structurally duplicate values, keeping the first of each."""
    seen = set()
    result = []
    for v in values:
        key = freeze(v)
        if key not in seen:
            seen.add(key)
            result.append(v)
    return result


def exhaustive_values(node: TypeNode) -> list[Any]:
    """Every value obtainable from the exhaustive domains of ``node`` and its children."""
    match node:
        case IntNode(exhaustive=domain) | FloatNode(exhaustive=domain):
            return list(domain)
        case BoolNode(exhaustive=domain):
            return [bool(v) for v in domain]
        case StrNode(alphabet=alphabet, exhaustive=lengths):
            return [
                "".join(chars) for n in lengths for chars in product(alphabet, repeat=n)
            ]
        case ListNode(child=child, exhaustive=sizes):
            elements = exhaustive_values(child)
            return [list(c) for n in sizes for c in product(elements, repeat=n)]
        case TupleNode(child=child, exhaustive=sizes):
            elements = exhaustive_values(child)
            return [tuple(c) for n in sizes for c in product(elements, repeat=n)]
        case SetNode(child=child, exhaustive=sizes):
            # Filling n slots with repeated elements gives a smaller set, so
            # combinations with replacement reach every set a full product would.
            elements = unique(exhaustive_values(child))
            return unique(
                set(c)
                for n in sizes
                for c in combinations_with_replacement(elements, n)
            )
        case DictNode(key=key, value=value, exhaustive=sizes):
            keys = unique(exhaustive_values(key))
            values = exhaustive_values(value)
            return [
                dict(zip(ks, vs))
                for n in sizes
                for ks in combinations(keys, n)
                for vs in product(values, repeat=n)
            ]
        case _:
            raise TypeError(f"Unknown node {node!r}")


def _draw(domain: Sequence[Any], node: TypeNode, rnd: Random) -> Any:
    if not domain:
        raise EmptyDomainError(
            f"The random domain of {describe(node)} is empty, but a value "
            "must be drawn from it"
        )
    return rnd.choice(domain)


def random_value(node: TypeNode, rnd: Random) -> Any:
    """Draw one value for ``node``, sampling every child slot independently."""
    match node:
        case IntNode(random=domain) | FloatNode(random=domain):
            return _draw(domain, node, rnd)
        case BoolNode(random=domain):
            return bool(_draw(domain, node, rnd))
        case StrNode(alphabet=alphabet, random=lengths):
            n = _draw(lengths, node, rnd)
            if n and not alphabet:
                raise EmptyDomainError(
                    f"Cannot draw a string of length {n} from {describe(node)}, "
                    "which has an empty alphabet"
                )
            return "".join(rnd.choice(alphabet) for _ in range(n))
        case ListNode(child=child, random=sizes):
            return [random_value(child, rnd) for _ in range(_draw(sizes, node, rnd))]
        case TupleNode(child=child, random=sizes):
            return tuple(
                random_value(child, rnd) for _ in range(_draw(sizes, node, rnd))
            )
        case SetNode(child=child, random=sizes):
            return {random_value(child, rnd) for _ in range(_draw(sizes, node, rnd))}
        case DictNode(key=key, value=value, random=sizes):
            return {
                random_value(key, rnd): random_value(value, rnd)
                for _ in range(_draw(sizes, node, rnd))
            }
        case _:
            raise TypeError(f"Unknown node {node!r}")


@define
class BaseSetGenerator:
    nodes: tuple[TypeNode, ...] = field(converter=tuple)
    num_random: int
    random: Random = field(factory=lambda: Random(0))

    def gen_exhaustive(self) -> list[TestCase]:
        per_parameter = [exhaustive_values(node) for node in self.nodes]
        return [TestCase(args) for args in product(*per_parameter)]

    def gen_random(self) -> list[TestCase]:
        return [
            TestCase(random_value(node, self.random) for node in self.nodes)
            for _ in range(self.num_random)
        ]

    def gen_base_set(self, exhaustive: Sequence[TestCase] | None = None) -> list[TestCase]:
        """The exhaustive part followed by the random part, without duplicates.

        ``exhaustive`` may be passed in when the caller has already generated it.
        """
        if exhaustive is None:
            exhaustive = self.gen_exhaustive()
        return list(dict.fromkeys([*exhaustive, *self.gen_random()]))
