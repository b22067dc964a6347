"""Synthesis of ``Repr`` instances from type descriptors."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from reprgen.config import ARG_PREC, DEFAULT_CONFIG, DeriveConfig
from reprgen.errors import UnsupportedShape
from reprgen.kernel.ast import (
    FVar,
    Hole,
    Lit,
    Term,
    Univ,
    decompose_app,
    mk_app,
)
from reprgen.kernel.context import NamedContext
from reprgen.kernel.inductive import (
    ConstructorDescriptor,
    Finiteness,
    TypeDescriptor,
)
from reprgen.prelude import (
    CTOR_APP,
    DOC,
    NAT,
    REPR_MK,
    doc_list,
    repr_class,
    repr_field,
)

logger = logging.getLogger(__name__)

SUPPORTED_FINITENESS = (Finiteness.INDUCTIVE, Finiteness.RECORD)


@dataclass(frozen=True)
class FunctionDescriptor:
    """The raw rendering function: its type, its body and whether it is a ``Fix``."""

    ty: Term
    body: Term
    is_fix: bool


@dataclass(frozen=True)
class Derivation:
    """
    Result of one derivation.

    ``instance_value`` still contains the open capability holes listed in
    ``holes``; elaboration resolves them before registration.
    """

    descriptor: TypeDescriptor
    function: FunctionDescriptor
    instance_name: str
    instance_ty: Term
    instance_value: Term
    dict_params: tuple[bool, ...]
    holes: tuple[Hole, ...]


@dataclass(frozen=True)
class Signature:
    """Names allocated for the raw function's arguments, in binding order."""

    ctx: NamedContext
    params: tuple[str, ...]
    indices: tuple[str, ...]
    dicts: tuple[str, ...]
    prec: str
    subject: str

    @property
    def names(self) -> tuple[str, ...]:
        return (*self.params, *self.indices, *self.dicts, self.prec, self.subject)

    def param_vars(self) -> tuple[Term, ...]:
        return tuple(FVar(p) for p in self.params)

    def dict_vars(self) -> tuple[Term, ...]:
        return tuple(FVar(d) for d in self.dicts)


def validate(desc: TypeDescriptor) -> None:
    if desc.finiteness not in SUPPORTED_FINITENESS:
        raise UnsupportedShape(
            f"Cannot derive Repr for a {desc.finiteness.value} type", desc.name
        )
    if desc.mutual_group_size > 1:
        raise UnsupportedShape(
            f"Cannot derive Repr for a mutual family of {desc.mutual_group_size} types",
            desc.name,
        )


def needs_dict(param_ty: Term) -> bool:
    """Only parameters ranging over a universe get a ``Repr`` dictionary."""
    return isinstance(param_ty, Univ)


def is_recursive(desc: TypeDescriptor) -> bool:
    return any(desc.occurs_in(arg.ty) for c in desc.constructors for arg in c.args)


def allocate_signature(desc: TypeDescriptor) -> Signature:
    ctx = NamedContext()
    params, ctx = ctx.push_telescope(desc.params)
    param_vars = tuple(FVar(p) for p in params)
    indices, ctx = ctx.push_telescope(desc.indices, param_vars)
    dicts: list[str] = []
    for p in params:
        if needs_dict(ctx.type_of(p)):
            d, ctx = ctx.push(f"inst_{p}", repr_class(FVar(p)))
            dicts.append(d)
    prec, ctx = ctx.push("prec", NAT)
    subject_ty = mk_app(desc.family(param_vars), *(FVar(i) for i in indices))
    subject, ctx = ctx.push("x", subject_ty)
    return Signature(ctx, params, indices, tuple(dicts), prec, subject)


class _Deriver:
    """Builds the raw function and its instance for one descriptor."""

    def __init__(self, desc: TypeDescriptor, config: DeriveConfig) -> None:
        self.desc = desc
        self.config = config
        self._hole_ids = itertools.count()

    def _hole(self, ty: Term) -> Hole:
        return Hole(next(self._hole_ids), repr_class(ty))

    def self_capability(
        self, sig: Signature, ctx: NamedContext, self_name: str
    ) -> tuple[str, NamedContext]:
        """
        Let-bind ``rec_inst : Repr (I params)`` built from the self reference.

        Its field re-applies the fixpoint to the enclosing parameters and
        dictionaries, leaving the indices, precedence and subject abstract.
        """
        family = self.desc.family(sig.param_vars())
        indices, eta_ctx = ctx.push_telescope(self.desc.indices, sig.param_vars())
        prec, eta_ctx = eta_ctx.push("prec", NAT)
        subject, eta_ctx = eta_ctx.push("x", mk_app(family, *map(FVar, indices)))
        eta_names = (*indices, prec, subject)
        call = mk_app(
            FVar(self_name),
            *sig.param_vars(),
            *(FVar(i) for i in indices),
            *sig.dict_vars(),
            FVar(prec),
            FVar(subject),
        )
        value = mk_app(REPR_MK, family, eta_ctx.mk_lams(eta_names, call))
        return ctx.push("rec_inst", repr_class(family), value)

    def render_arg(
        self, sig: Signature, ctx: NamedContext, name: str, self_cap: str | None
    ) -> Term:
        """``(d).0 idx… ARG_PREC name`` for the argument ``name``."""
        ty = ctx.type_of(name)
        head, args = decompose_app(ty)
        p = len(sig.params)
        if (
            self_cap is not None
            and head == self.desc.head
            and args[:p] == sig.param_vars()
        ):
            return repr_field(FVar(self_cap), *args[p:], Lit(ARG_PREC), FVar(name))
        return repr_field(self._hole(ty), Lit(ARG_PREC), FVar(name))

    def branch(
        self,
        sig: Signature,
        ctx: NamedContext,
        ctor: ConstructorDescriptor,
        self_cap: str | None,
    ) -> tuple[str, tuple[str, ...], Term]:
        arg_names, bctx = ctx.push_telescope(ctor.args, sig.param_vars())
        docs = [self.render_arg(sig, bctx, a, self_cap) for a in arg_names]
        body = mk_app(CTOR_APP, Lit(ctor.name), FVar(sig.prec), doc_list(docs))
        return ctor.name, arg_names, body

    def dispatch(
        self, sig: Signature, ctx: NamedContext, self_cap: str | None
    ) -> Term:
        desc = self.desc
        family = desc.family(sig.param_vars())
        indices, mctx = ctx.push_telescope(desc.indices, sig.param_vars())
        subject, _ = mctx.push("x", mk_app(family, *map(FVar, indices)))
        motive_names = (*indices, subject)
        branches = [self.branch(sig, ctx, c, self_cap) for c in desc.constructors]
        return NamedContext.mk_case(
            desc.name, FVar(sig.subject), motive_names, DOC, branches
        )

    def raw_function(self, sig: Signature) -> FunctionDescriptor:
        fn_ty = sig.ctx.mk_pis(sig.names, DOC)
        if not is_recursive(self.desc):
            body = sig.ctx.mk_lams(sig.names, self.dispatch(sig, sig.ctx, None))
            return FunctionDescriptor(fn_ty, body, is_fix=False)

        self_name, ctx = sig.ctx.push("rec", fn_ty)
        cap, ctx = self.self_capability(sig, ctx, self_name)
        body = ctx.mk_lets((cap,), self.dispatch(sig, ctx, cap))
        fix = ctx.mk_fix(self_name, len(sig.names) - 1, ctx.mk_lams(sig.names, body))
        return FunctionDescriptor(fn_ty, fix, is_fix=True)

    def package(self, sig: Signature, fn: FunctionDescriptor) -> tuple[Term, Term]:
        """Wrap ``fn`` as ``λ params dicts. Repr.mk (I params) (λ indices prec x. fn …)``."""
        ctx = sig.ctx
        family = self.desc.family(sig.param_vars())
        field_names = (*sig.indices, sig.prec, sig.subject)
        call = mk_app(fn.body, *(FVar(n) for n in sig.names))
        value = mk_app(REPR_MK, family, ctx.mk_lams(field_names, call))
        outer = (*sig.params, *sig.dicts)
        return ctx.mk_pis(outer, repr_class(family)), ctx.mk_lams(outer, value)

    def run(self) -> Derivation:
        sig = allocate_signature(self.desc)
        fn = self.raw_function(sig)
        inst_ty, inst_value = self.package(sig, fn)
        dict_params = tuple(needs_dict(sig.ctx.type_of(p)) for p in sig.params)
        return Derivation(
            descriptor=self.desc,
            function=fn,
            instance_name=self.config.instance_name(self.desc.name),
            instance_ty=inst_ty,
            instance_value=inst_value,
            dict_params=dict_params,
            holes=inst_value.holes(),
        )


def derive_repr(
    desc: TypeDescriptor, config: DeriveConfig = DEFAULT_CONFIG
) -> Derivation:
    """Synthesize the rendering function for ``desc`` and package it as an instance."""

    validate(desc)
    derivation = _Deriver(desc, config).run()
    logger.debug(
        "derived %s (fixpoint=%s, open holes=%d): %s",
        derivation.instance_name,
        derivation.function.is_fix,
        len(derivation.holes),
        derivation.function.body,
    )
    return derivation
