"""Structural descriptions of inductive types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from reprgen.kernel.ast import Ctor, Ind, Term, mk_app
from reprgen.kernel.telescope import Telescope


class Finiteness(Enum):
    INDUCTIVE = "inductive"
    RECORD = "record"
    COINDUCTIVE = "coinductive"


@dataclass(frozen=True)
class ConstructorDescriptor:
    """
    A constructor label and its argument telescope.

    Argument types are scoped over the inductive's parameters followed by the
    earlier arguments. ``result_indices`` are scoped over parameters and all
    arguments.
    """

    name: str
    args: Telescope = field(default_factory=Telescope.empty)
    result_indices: tuple[Term, ...] = ()

    @property
    def arity(self) -> int:
        return len(self.args)


@dataclass(frozen=True)
class TypeDescriptor:
    """
    Read-only description of one inductive type.

    ``params`` are closed telescope entries; ``indices`` are scoped over the
    parameters then earlier indices. ``mutual`` names every type of the
    mutual group this type was declared in; empty means declared alone.
    """

    name: str
    params: Telescope = field(default_factory=Telescope.empty)
    indices: Telescope = field(default_factory=Telescope.empty)
    constructors: tuple[ConstructorDescriptor, ...] = ()
    finiteness: Finiteness = Finiteness.INDUCTIVE
    mutual: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        labels = [c.name for c in self.constructors]
        if len(set(labels)) != len(labels):
            raise ValueError(
                "Constructor names must be distinct:\n"
                f"  inductive = {self.name}\n"
                f"  constructors = {labels}"
            )
        for c in self.constructors:
            if len(c.result_indices) not in (0, len(self.indices)):
                raise ValueError(
                    "Constructor result indices must match inductive index arity:\n"
                    f"  ctor = {c.name}\n"
                    f"  expected arity = {len(self.indices)}\n"
                    f"  found arity = {len(c.result_indices)}"
                )

    @property
    def mutual_group_size(self) -> int:
        return max(len(self.mutual), 1)

    @property
    def head(self) -> Ind:
        return Ind(self.name)

    def family(self, params: Sequence[Term]) -> Term:
        """The type family ``I params``, still expecting the indices."""
        return mk_app(self.head, *params)

    def occurs_in(self, term: Term) -> bool:
        return term.contains(lambda t: t == self.head)

    def constructor(self, name: str) -> ConstructorDescriptor:
        for c in self.constructors:
            if c.name == name:
                return c
        raise KeyError(f"{self.name} has no constructor {name!r}")

    def ctor_term(self, i: int) -> Ctor:
        return Ctor(self.constructors[i].name, self.name)
