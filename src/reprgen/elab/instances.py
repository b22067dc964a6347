"""Instance search: filling capability holes with concrete dictionaries."""

from __future__ import annotations

import logging
from typing import Sequence

from reprgen.errors import PlaceholderUnresolved
from reprgen.kernel.ast import (
    Branch,
    Case,
    Const,
    FVar,
    Fix,
    FixDef,
    Hole,
    Ind,
    Lam,
    Let,
    Motive,
    Pi,
    Term,
    decompose_app,
    mk_app,
)
from reprgen.kernel.context import NamedContext
from reprgen.kernel.env import Environment
from reprgen.prelude import REPR, REPR_AT, REPR_CLASS, repr_class

logger = logging.getLogger(__name__)


def _dict_family(ty: Term) -> Term | None:
    """``F`` when ``ty`` is ``Repr F``, else ``None``."""
    head, args = decompose_app(ty)
    if head == REPR and len(args) == 1:
        return args[0]
    return None


def _open(body: Term, names: Sequence[str]) -> Term:
    # names ordered outermost -> innermost
    return body.instantiate(tuple(reversed(names)))


def _close(body: Term, names: Sequence[str]) -> Term:
    return body.abstract(tuple(reversed(names)))


class InstanceResolver:
    """
    Resolves ``Hole(_, Repr T)`` placeholders in a closed term.

    Binders are opened with fresh names while walking the term so that every
    dictionary in scope is a named local that can be matched syntactically;
    the result is closed again on the way out.
    """

    def __init__(self, env: Environment) -> None:
        self.env = env

    # ---- search ----
    def synthesize(self, target: Term, ctx: NamedContext = NamedContext()) -> Term:
        """Build a dictionary term of type ``Repr target``."""
        goal = repr_class(target)
        for decl in reversed(ctx.decls):
            if decl.ty == goal:
                return FVar(decl.name)

        head, args = decompose_app(target)
        if isinstance(head, Ind):
            for decl in reversed(ctx.decls):
                family = _dict_family(decl.ty)
                if family is None:
                    continue
                fam_head, fam_args = decompose_app(family)
                k = len(fam_args)
                if fam_head == head and len(args) > k and args[:k] == fam_args:
                    return self._specialize(FVar(decl.name), head.name, fam_args, args[k:])

        if not isinstance(head, (Ind, Const)):
            raise PlaceholderUnresolved(f"No Repr dictionary in scope for {target}")
        inst = self.env.find_instance(REPR_CLASS, head.name)
        if inst is None or len(args) < inst.n_params:
            raise PlaceholderUnresolved(f"No Repr instance for {target}", head.name)
        params = args[: inst.n_params]
        dicts = [
            self.synthesize(p, ctx)
            for p, wants_dict in zip(params, inst.dict_params)
            if wants_dict
        ]
        d = mk_app(Const(inst.name), *params, *dicts)
        logger.debug("instance %s used for %s", inst.name, target)
        return self._specialize(d, head.name, params, args[inst.n_params :])

    def _specialize(
        self,
        d: Term,
        inductive: str,
        params: Sequence[Term],
        indices: Sequence[Term],
    ) -> Term:
        """Fix the index arguments of a family dictionary one at a time."""
        if not indices:
            return d
        index_tys = self.env.lookup_inductive(inductive).indices.instantiate_outer(params)
        for j, index in enumerate(indices):
            index_ty = index_tys[j].ty.subst_range(tuple(reversed(indices[:j])))
            family = mk_app(Ind(inductive), *params, *indices[:j])
            d = mk_app(REPR_AT, index_ty, family, d, index)
        return d

    # ---- traversal ----
    def resolve(self, term: Term, ctx: NamedContext = NamedContext()) -> Term:
        match term:
            case Hole(hid, ty):
                family = _dict_family(ty)
                if family is None:
                    raise PlaceholderUnresolved(f"Placeholder ?{hid} is not a Repr hole")
                solution = self.synthesize(family, ctx)
                logger.debug("?%d := %s", hid, solution)
                return solution
            case Pi(arg_ty, body, name):
                arg = self.resolve(arg_ty, ctx)
                x, inner = ctx.push(name, arg)
                return Pi(arg, _close(self.resolve(_open(body, (x,)), inner), (x,)), name)
            case Lam(arg_ty, body, name):
                arg = self.resolve(arg_ty, ctx)
                x, inner = ctx.push(name, arg)
                return Lam(arg, _close(self.resolve(_open(body, (x,)), inner), (x,)), name)
            case Let(arg_ty, value, body, name):
                arg = self.resolve(arg_ty, ctx)
                val = self.resolve(value, ctx)
                x, inner = ctx.push(name, arg, val)
                opened = self.resolve(_open(body, (x,)), inner)
                return Let(arg, val, _close(opened, (x,)), name)
            case Fix(defs, index, coinductive):
                tys = [self.resolve(d.ty, ctx) for d in defs]
                inner = ctx
                names: list[str] = []
                for d, ty in zip(defs, tys):
                    x, inner = inner.push(d.name, ty)
                    names.append(x)
                resolved = tuple(
                    FixDef(
                        d.name,
                        ty,
                        _close(self.resolve(_open(d.body, names), inner), names),
                        d.rec_arg,
                    )
                    for d, ty in zip(defs, tys)
                )
                return Fix(resolved, index, coinductive)
            case Case():
                return self._resolve_case(term, ctx)
        return term.map_one(lambda t: self.resolve(t, ctx))

    def _resolve_case(self, case: Case, ctx: NamedContext) -> Case:
        scrutinee = self.resolve(case.scrutinee, ctx)
        if not case.motive.body.holes() and not any(b.body.holes() for b in case.branches):
            return Case(case.inductive, scrutinee, case.motive, case.branches)

        desc = self.env.lookup_inductive(case.inductive)
        if not isinstance(scrutinee, FVar):
            raise PlaceholderUnresolved(
                "Cannot resolve placeholders under a case on a compound scrutinee",
                case.inductive,
            )
        params = decompose_app(ctx.type_of(scrutinee.name))[1][: len(desc.params)]

        indices, mctx = ctx.push_telescope(desc.indices, params)
        subject, mctx = mctx.push("x", mk_app(desc.family(params), *map(FVar, indices)))
        motive_names = (*indices, subject)
        motive_body = _close(
            self.resolve(_open(case.motive.body, motive_names), mctx), motive_names
        )

        branches = []
        for branch in case.branches:
            ctor = desc.constructor(branch.ctor)
            names, bctx = ctx.push_telescope(ctor.args, params)
            body = _close(self.resolve(_open(branch.body, names), bctx), names)
            branches.append(Branch(branch.ctor, branch.names, body))
        return Case(
            case.inductive,
            scrutinee,
            Motive(case.motive.names, motive_body),
            tuple(branches),
        )


def check_closed(term: Term) -> None:
    """Reject terms with holes, free names or loose bound indices."""
    holes = term.holes()
    if holes:
        ids = ", ".join(f"?{h.hid}" for h in holes)
        raise PlaceholderUnresolved(f"Unresolved placeholders remain: {ids}")
    names = term.free_names()
    if names:
        raise ValueError(f"Term mentions free names {sorted(names)}:\n  term = {term}")
    if term.loose_bvar_range():
        raise ValueError(f"Term has loose bound indices:\n  term = {term}")


def resolve_holes(env: Environment, term: Term) -> Term:
    """Fill every capability hole in the closed ``term``; all or nothing."""
    resolved = InstanceResolver(env).resolve(term)
    check_closed(resolved)
    return resolved


def synthesize(env: Environment, ty: Term) -> Term:
    """Dictionary term for the closed type ``ty``."""
    return InstanceResolver(env).synthesize(ty)
