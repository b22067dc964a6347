"""Named binder contexts and builders for well-scoped compound terms."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from reprgen.kernel.ast import (
    Branch,
    Case,
    FVar,
    Fix,
    FixDef,
    Lam,
    Let,
    Motive,
    Pi,
    Term,
)
from reprgen.kernel.telescope import ArgDecl


@dataclass(frozen=True)
class LocalDecl:
    """Context entry: a named binder, its type and an optional let-value."""

    name: str
    ty: Term
    value: Term | None = None


def fresh_name(taken: Iterable[str], base: str = "x") -> str:
    """Return ``base`` or ``base`` with the smallest numeric suffix not in ``taken``."""

    taken = set(taken)
    candidate = base
    suffix = 0
    while candidate in taken:
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


@dataclass(frozen=True)
class NamedContext:
    """
    Ordered, capture-avoiding context of named binders.

    Representation:
        ``decls`` is ordered outermost -> innermost, i.e. insertion order is
        binder nesting order. Declared types and values are named terms that
        may mention the names of earlier entries as ``FVar``.

    Invariant:
        Names are pairwise distinct; every extension allocates a fresh name.

    Builders:
        ``mk_pis``/``mk_lams``/``mk_lets``/``mk_fix``/``mk_case`` close a named
        body over some of the context's names, abstracting each name to the
        de Bruijn index of the binder that introduces it.
    """

    decls: tuple[LocalDecl, ...] = ()

    def __len__(self) -> int:
        return len(self.decls)

    def __iter__(self) -> Iterator[LocalDecl]:
        return iter(self.decls)

    def __contains__(self, name: object) -> bool:
        return any(d.name == name for d in self.decls)

    def names(self) -> tuple[str, ...]:
        return tuple(d.name for d in self.decls)

    # ---- extending the context ----
    def fresh_name(self, hint: str) -> str:
        return fresh_name(self.names(), hint or "x")

    def push(
        self, hint: str, ty: Term, value: Term | None = None
    ) -> tuple[str, NamedContext]:
        """Append a binder under a fresh name derived from ``hint``."""
        name = self.fresh_name(hint)
        return name, NamedContext(self.decls + (LocalDecl(name, ty, value),))

    def push_telescope(
        self, entries: Iterable[ArgDecl], actuals: Sequence[Term] = ()
    ) -> tuple[tuple[str, ...], NamedContext]:
        """
        Push every entry of an index-view telescope.

        Entry types are scoped over ``actuals`` (outermost first) followed by
        the entries already pushed; each is instantiated with those terms so
        the stored type is a named term.
        """
        ctx = self
        names: list[str] = []
        for entry in entries:
            scope = (*actuals, *(FVar(n) for n in names))
            ty = entry.ty.subst_range(tuple(reversed(scope)))
            name, ctx = ctx.push(entry.name, ty)
            names.append(name)
        return tuple(names), ctx

    # ---- lookup ----
    def decl(self, name: str) -> LocalDecl:
        for d in self.decls:
            if d.name == name:
                return d
        raise KeyError(f"Unknown local name {name!r}")

    def type_of(self, name: str) -> Term:
        return self.decl(name).ty

    def lookup(self, name: str) -> tuple[Term, int]:
        """
        Return the declared type of ``name`` and its de Bruijn index.

        The index is measured from the end of the context, so the innermost
        entry has index 0.
        """
        for pos, d in enumerate(self.decls):
            if d.name == name:
                return d.ty, len(self.decls) - pos - 1
        raise KeyError(f"Unknown local name {name!r}")

    # ---- builders ----
    def _close(
        self, names: Sequence[str], body: Term, mk: Callable[[LocalDecl, Term], Term]
    ) -> Term:
        for name in reversed(names):
            body = mk(self.decl(name), body.abstract((name,)))
        return body

    def mk_pis(self, names: Sequence[str], return_ty: Term) -> Term:
        """Right-nested Pi chain binding ``names`` outermost -> innermost."""
        return self._close(
            names, return_ty, lambda d, body: Pi(d.ty, body, name=d.name)
        )

    def mk_lams(self, names: Sequence[str], body: Term) -> Term:
        """Right-nested lambda chain binding ``names`` outermost -> innermost."""
        return self._close(names, body, lambda d, b: Lam(d.ty, b, name=d.name))

    def mk_lets(self, names: Sequence[str], body: Term) -> Term:
        """Nested let-bindings; every name must carry a value in the context."""

        def mk(d: LocalDecl, b: Term) -> Term:
            if d.value is None:
                raise ValueError(f"Local {d.name!r} has no value to let-bind")
            return Let(d.ty, d.value, b, name=d.name)

        return self._close(names, body, mk)

    def mk_fix(self, self_name: str, rec_arg: int, body: Term) -> Fix:
        """
        Single-member fixpoint whose body refers to itself through ``self_name``.

        Inside the resulting ``Fix`` the self reference is a bound index.
        """
        d = self.decl(self_name)
        return Fix((FixDef(d.name, d.ty, body.abstract((self_name,)), rec_arg),))

    @staticmethod
    def mk_case(
        inductive: str,
        scrutinee: Term,
        motive_names: Sequence[str],
        motive_body: Term,
        branches: Iterable[tuple[str, Sequence[str], Term]],
    ) -> Case:
        """
        Assemble a ``Case``; every branch is abstracted over its own names.

        Args:
            inductive: Name of the scrutinee's inductive type.
            scrutinee: Named term being dispatched on.
            motive_names: Names bound by the motive (indices, then scrutinee).
            motive_body: Named return type, may mention ``motive_names``.
            branches: ``(ctor, arg_names, body)`` triples in constructor order.
        """
        return Case(
            inductive,
            scrutinee,
            Motive(tuple(motive_names), _bind_all(motive_names, motive_body)),
            tuple(
                Branch(ctor, tuple(names), _bind_all(names, body))
                for ctor, names, body in branches
            ),
        )


def _bind_all(names: Sequence[str], body: Term) -> Term:
    # last name is innermost, i.e. BVar(0)
    return body.abstract(tuple(reversed(names)))
