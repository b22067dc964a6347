"""Locally nameless abstract syntax tree nodes."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace, Field
from functools import cache
from typing import Any, Callable, ClassVar, Sequence, TypeVar

A = TypeVar("A")


def _map_term_values(value: Any, f: Callable[[Term], Term]) -> Any:
    if isinstance(value, Term):
        return f(value)
    if isinstance(value, tuple):
        return tuple(_map_term_values(v, f) for v in value)
    return value


def _lift_n(lift: Callable[[A], A], n: int, acc: A) -> A:
    for _ in range(n):
        acc = lift(acc)
    return acc


def _succ(k: int) -> int:
    return k + 1


@dataclass(frozen=True, kw_only=True)
class TermFieldMeta:
    binder_count: int = 0


def meta(f: Field) -> TermFieldMeta:
    return f.metadata.get("") or TermFieldMeta()


@dataclass(frozen=True)
class Term:
    """Base class for all terms."""

    is_terminal: ClassVar[bool] = False

    @classmethod
    @cache
    def _child_fields(cls) -> tuple[Field, ...]:
        return () if cls.is_terminal else fields(cls)

    # --- Structural maps ------------------------------------------------------
    def map_one(self, f: Callable[[Term], Term]) -> Term:
        """Apply ``f`` to every immediate child term, keeping this node's shape."""
        return self.map_one_with_binders(lambda acc: acc, lambda _acc, t: f(t), None)

    def map_one_with_binders(
        self, lift: Callable[[A], A], f: Callable[[A, Term], Term], acc: A
    ) -> Term:
        """
        Like ``map_one`` but threads ``acc`` into ``f``.

        A child sitting under ``n`` binders of this node receives ``lift``
        applied ``n`` times to ``acc``; the remaining children receive ``acc``.
        """
        updates = {}
        for fld in self._child_fields():
            child_acc = _lift_n(lift, meta(fld).binder_count, acc)
            updates[fld.name] = _map_term_values(
                getattr(self, fld.name), lambda t, a=child_acc: f(a, t)
            )
        # noinspection PyArgumentList
        return replace(self, **updates) if updates else self

    # --- De Bruijn ------------------------------------------------------------
    def shift(self, by: int, cutoff: int = 0) -> Term:
        """Shift loose bound indices at or above ``cutoff``."""
        return self.map_one_with_binders(_succ, lambda c, t: t.shift(by, c), cutoff)

    def subst_range(self, subs: Sequence[Term], k: int = 0) -> Term:
        """
        Simultaneously substitute ``subs[i]`` for ``BVar(k + i)``.

        Loose indices above the substituted range drop by ``len(subs)``.
        """
        return self.map_one_with_binders(_succ, lambda j, t: t.subst_range(subs, j), k)

    def abstract(self, names: Sequence[str], k: int = 0) -> Term:
        """Turn ``FVar(names[i])`` into ``BVar(k + i)`` (named -> indexed)."""
        return self.map_one_with_binders(_succ, lambda j, t: t.abstract(names, j), k)

    def instantiate(self, names: Sequence[str], k: int = 0) -> Term:
        """Turn ``BVar(k + i)`` into ``FVar(names[i])`` (indexed -> named)."""
        return self.subst_range(tuple(FVar(n) for n in names), k)

    # --- Folds ----------------------------------------------------------------
    def loose_bvar_range(self) -> int:
        """One more than the largest loose bound index, or 0 for closed terms."""
        ranges: list[int] = []

        def visit(depth: int, t: Term) -> Term:
            ranges.append(t.loose_bvar_range() - depth)
            return t

        self.map_one_with_binders(_succ, visit, 0)
        return max([0, *ranges])

    def free_names(self) -> frozenset[str]:
        names: set[str] = set()

        def visit(t: Term) -> Term:
            names.update(t.free_names())
            return t

        self.map_one(visit)
        return frozenset(names)

    def contains(self, pred: Callable[[Term], bool]) -> bool:
        """Return ``True`` if ``pred`` holds for this term or any subterm."""
        if pred(self):
            return True
        found = False

        def visit(t: Term) -> Term:
            nonlocal found
            found = found or t.contains(pred)
            return t

        self.map_one(visit)
        return found

    def holes(self) -> tuple[Hole, ...]:
        found: list[Hole] = []

        def visit(t: Term) -> Term:
            found.extend(t.holes())
            return t

        if isinstance(self, Hole):
            found.append(self)
        self.map_one(visit)
        return tuple(found)

    # --- Display --------------------------------------------------------------
    def __str__(self) -> str:
        # Deferred import avoids cycles when pretty-printing dataclass reprs.
        from reprgen.kernel.pretty import pretty

        return pretty(self)


@dataclass(frozen=True)
class BVar(Term):
    """De Bruijn variable pointing to the binder at ``k``."""

    k: int
    is_terminal: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.k < 0:
            raise ValueError("De Bruijn indices must be non-negative")

    def shift(self, by: int, cutoff: int = 0) -> Term:
        return BVar(self.k + by if self.k >= cutoff else self.k)

    def subst_range(self, subs: Sequence[Term], k: int = 0) -> Term:
        if self.k < k:
            return self
        if self.k < k + len(subs):
            return subs[self.k - k].shift(k)
        return BVar(self.k - len(subs))

    def loose_bvar_range(self) -> int:
        return self.k + 1


@dataclass(frozen=True)
class FVar(Term):
    """Free variable referring to a named context entry."""

    name: str
    is_terminal: ClassVar[bool] = True

    def abstract(self, names: Sequence[str], k: int = 0) -> Term:
        for i, name in enumerate(names):
            if name == self.name:
                return BVar(k + i)
        return self

    def free_names(self) -> frozenset[str]:
        return frozenset((self.name,))


@dataclass(frozen=True)
class Univ(Term):
    """A universe ``Type(level)``."""

    level: int = 0
    is_terminal: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if self.level < 0:
            raise ValueError("Universe level must be non-negative")


@dataclass(frozen=True)
class Const(Term):
    """Reference to a global declaration."""

    name: str
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Ind(Term):
    """Reference to an inductive type by name."""

    name: str
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Ctor(Term):
    """Reference to a constructor of ``inductive``."""

    name: str
    inductive: str
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Lit(Term):
    """Opaque literal: number, string or array of literals."""

    value: int | float | str | tuple
    is_terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class App(Term):
    """Application of ``func`` to an ordered argument tuple."""

    func: Term
    args: tuple[Term, ...]


@dataclass(frozen=True)
class Pi(Term):
    """Dependent function type (Pi-type)."""

    arg_ty: Term
    return_ty: Term = field(metadata={"": TermFieldMeta(binder_count=1)})
    name: str = "_"


@dataclass(frozen=True)
class Lam(Term):
    """Dependent lambda term with an argument type and body."""

    arg_ty: Term
    body: Term = field(metadata={"": TermFieldMeta(binder_count=1)})
    name: str = "_"


@dataclass(frozen=True)
class Let(Term):
    """
    let name : arg_ty := value; body

    `body` is under one binder (name at BVar(0)).
    """

    arg_ty: Term
    value: Term
    body: Term = field(metadata={"": TermFieldMeta(binder_count=1)})
    name: str = "_"


@dataclass(frozen=True)
class Hole(Term):
    """Existential placeholder of type ``ty``, filled in by elaboration."""

    hid: int
    ty: Term


@dataclass(frozen=True)
class Proj(Term):
    """Projection of field ``index`` out of a record value of ``inductive``."""

    inductive: str
    index: int
    struct: Term


@dataclass(frozen=True)
class Motive:
    """Return type of a ``Case``, under binders for the indices and scrutinee."""

    names: tuple[str, ...]
    body: Term


@dataclass(frozen=True)
class Branch:
    """One ``Case`` alternative; ``body`` binds the constructor's arguments."""

    ctor: str
    names: tuple[str, ...]
    body: Term


@dataclass(frozen=True)
class Case(Term):
    """Pattern dispatch on a value of ``inductive``."""

    inductive: str
    scrutinee: Term
    motive: Motive
    branches: tuple[Branch, ...]

    def map_one_with_binders(
        self, lift: Callable[[A], A], f: Callable[[A, Term], Term], acc: A
    ) -> Term:
        motive = Motive(
            self.motive.names,
            f(_lift_n(lift, len(self.motive.names), acc), self.motive.body),
        )
        branches = tuple(
            replace(b, body=f(_lift_n(lift, len(b.names), acc), b.body))
            for b in self.branches
        )
        return Case(self.inductive, f(acc, self.scrutinee), motive, branches)


@dataclass(frozen=True)
class FixDef:
    """
    One member of a fixpoint group.

    ``rec_arg`` is the position of the structurally decreasing argument.
    """

    name: str
    ty: Term
    body: Term
    rec_arg: int


@dataclass(frozen=True)
class Fix(Term):
    """
    Mutually bound (co)fixpoint group, selecting member ``index``.

    Every body sees all members: ``defs[i]`` is ``BVar(len(defs) - 1 - i)``
    at the top of each body.
    """

    defs: tuple[FixDef, ...]
    index: int = 0
    coinductive: bool = False

    def map_one_with_binders(
        self, lift: Callable[[A], A], f: Callable[[A, Term], Term], acc: A
    ) -> Term:
        body_acc = _lift_n(lift, len(self.defs), acc)
        defs = tuple(
            replace(d, ty=f(acc, d.ty), body=f(body_acc, d.body)) for d in self.defs
        )
        return Fix(defs, self.index, self.coinductive)


def mk_app(fn: Term, *args: Term) -> Term:
    """Apply ``args`` to ``fn``, flattening into a single ``App`` node.

    Args:
        fn: Function being applied.
        *args: Arguments to apply, ordered left-to-right.

    Returns:
        ``fn`` itself when no arguments are given, otherwise one ``App`` whose
        argument tuple extends any arguments ``fn`` was already applied to.
    """
    if not args:
        return fn
    if isinstance(fn, App):
        return App(fn.func, fn.args + args)
    return App(fn, args)


def decompose_app(term: Term) -> tuple[Term, tuple[Term, ...]]:
    """Split an application into its head and argument tuple."""
    head, args = term, ()
    while isinstance(head, App):
        head, args = head.func, head.args + args
    return head, args
