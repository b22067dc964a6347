"""Telescopes: ordered argument declarations whose types may depend on earlier ones."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, overload

from reprgen.kernel.ast import Term


@dataclass(frozen=True)
class ArgDecl:
    """A named telescope entry; ``name`` is only a hint for fresh naming."""

    name: str
    ty: Term


@dataclass(frozen=True)
class Telescope(Sequence[ArgDecl]):
    """
    Entries ordered outermost -> innermost.

    The type of entry ``i`` is written in index view under the binders of the
    telescope's outer scope followed by entries ``0 .. i-1``; the most recent
    entry is ``BVar(0)``.
    """

    entries: tuple[ArgDecl, ...] = ()

    @classmethod
    def empty(cls) -> Telescope:
        return cls()

    @classmethod
    def from_pairs(cls, *pairs: tuple[str, Term]) -> Telescope:
        return cls(tuple(ArgDecl(name, ty) for name, ty in pairs))

    def __len__(self) -> int:
        return len(self.entries)

    @overload
    def __getitem__(self, i: int) -> ArgDecl: ...
    @overload
    def __getitem__(self, s: slice) -> Telescope: ...

    def __getitem__(self, idx: int | slice) -> ArgDecl | Telescope:
        # a prefix keeps its scoping; other slices are only for inspection
        if isinstance(idx, slice):
            return Telescope(self.entries[idx])
        return self.entries[idx]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(decl.name for decl in self.entries)

    def instantiate_outer(self, actuals: Sequence[Term]) -> Telescope:
        """
        Substitute ``actuals`` for the outer scope of the telescope.

        ``actuals`` are ordered outermost -> innermost and must be closed
        with respect to the telescope's own binders.
        """
        subs = tuple(reversed(actuals))
        return Telescope(
            tuple(
                ArgDecl(d.name, d.ty.subst_range(subs, i))
                for i, d in enumerate(self.entries)
            )
        )
