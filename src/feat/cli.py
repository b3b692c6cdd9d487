"""CLI utilities and types for feat."""

import os
from enum import Enum
from typing import Any

import click

from feat.runner import Implementation, discover_implementations


class EnumChoice[EnumType: Enum](click.Choice):
    """A click Choice whose values are the members of an Enum."""

    def __init__(self, enum: type[EnumType]) -> None:
        self.enum = enum
        self.__values = {e.name: e for e in enum}
        super().__init__([e.name for e in enum])

    def convert(self, value: Any, param: Any, ctx: Any) -> EnumType:
        if isinstance(value, self.enum):
            return value
        return self.__values[super().convert(value, param, ctx)]


def validate_solution(ctx: Any, param: Any, value: str) -> Implementation:
    if not value.endswith(".py"):
        raise click.BadParameter(f"{value}: reference implementation must be a .py file")
    return Implementation.from_path(value)


def find_candidates(directory: str, solution: Implementation) -> list[Implementation]:
    """The candidate implementations in ``directory``, minus the reference."""
    candidates = discover_implementations(directory, exclude=[solution.path])
    if not candidates:
        raise click.UsageError(f"No candidate implementations (*.py) found in {directory}")
    return candidates


def default_parallelism(parallelism: int) -> int:
    if parallelism <= 0:
        return os.cpu_count() or 1
    return parallelism
