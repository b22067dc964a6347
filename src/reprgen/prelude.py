"""Builtin constants, the ``Repr`` class and a starting environment."""

from __future__ import annotations

import json
from types import MappingProxyType
from typing import Sequence

from reprgen.config import APP_PREC, HANG_INDENT
from reprgen.doc import Doc, group, join, line, nest, paren, text
from reprgen.kernel.ast import BVar, Const, FVar, Pi, Proj, Term, Univ, mk_app
from reprgen.kernel.context import NamedContext
from reprgen.kernel.env import Environment, GlobalDecl, InstanceDecl

REPR_CLASS = "Repr"

DOC = Const("Doc")
DOC_LIST = Const("DocList")
DOC_NIL = Const("DocList.nil")
DOC_CONS = Const("DocList.cons")
NAT = Const("Nat")
INT = Const("Int")
STRING = Const("String")

REPR = Const(REPR_CLASS)
REPR_MK = Const("Repr.mk")
REPR_AT = Const("Repr.at")
CTOR_APP = Const("Repr.ctorApp")


def repr_class(family: Term) -> Term:
    """The dictionary type ``Repr family``."""
    return mk_app(REPR, family)


def repr_field(dictionary: Term, *args: Term) -> Term:
    """Project the rendering function out of ``dictionary`` and apply it."""
    return mk_app(Proj(REPR_CLASS, 0, dictionary), *args)


def doc_list(docs: Sequence[Term]) -> Term:
    result: Term = DOC_NIL
    for d in reversed(docs):
        result = mk_app(DOC_CONS, d, result)
    return result


def render_ctor_app(label: str, prec: int, args: Sequence[Doc]) -> Doc:
    """
    Render a constructor applied to already-rendered arguments.

    A nullary constructor is its bare label. Otherwise the label and the
    arguments are grouped with single spaces, continuation lines hang
    ``HANG_INDENT`` columns in, and the whole is parenthesized when ``prec``
    exceeds ``APP_PREC``.
    """
    if not args:
        return text(label)
    body = group(nest(HANG_INDENT, join(line(), [text(label), *args])))
    return paren(body) if prec > APP_PREC else body


def render_nat(_prec: int, n: int) -> Doc:
    return text(str(n))


def render_int(prec: int, n: int) -> Doc:
    if n < 0 and prec > APP_PREC:
        return paren(text(str(n)))
    return text(str(n))


def render_string(_prec: int, s: str) -> Doc:
    return text(json.dumps(s, ensure_ascii=False))


def _repr_at() -> tuple[Term, Term]:
    """``Repr.at I F d i : Repr (F i)`` fixes the first index of a family dictionary."""
    ctx = NamedContext()
    idx_ty, ctx = ctx.push("I", Univ(0))
    fam, ctx = ctx.push("F", Pi(FVar(idx_ty), Univ(0)))
    d, ctx = ctx.push("d", repr_class(FVar(fam)))
    i, ctx = ctx.push("i", FVar(idx_ty))
    names = (idx_ty, fam, d, i)
    fam_at_i = mk_app(FVar(fam), FVar(i))
    value = mk_app(REPR_MK, fam_at_i, repr_field(FVar(d), FVar(i)))
    return ctx.mk_pis(names, repr_class(fam_at_i)), ctx.mk_lams(names, value)


def _render_ty(ty: Term) -> Term:
    # ty must be closed
    return Pi(NAT, Pi(ty, DOC))


def _leaf_instance(name: str, target: Const, render: Const) -> tuple[InstanceDecl, GlobalDecl]:
    inst = InstanceDecl(name, REPR_CLASS, target.name)
    return inst, GlobalDecl(repr_class(target), mk_app(REPR_MK, target, render))


def builtin_environment() -> Environment:
    """Environment holding the primitive types, the ``Repr`` class and leaf instances."""

    type0 = Univ(0)
    at_ty, at_value = _repr_at()
    env = Environment(
        globals=MappingProxyType(
            {
                DOC.name: GlobalDecl(type0),
                DOC_LIST.name: GlobalDecl(type0),
                DOC_NIL.name: GlobalDecl(DOC_LIST),
                DOC_CONS.name: GlobalDecl(Pi(DOC, Pi(DOC_LIST, DOC_LIST))),
                NAT.name: GlobalDecl(type0),
                INT.name: GlobalDecl(type0),
                STRING.name: GlobalDecl(type0),
                REPR.name: GlobalDecl(Pi(type0, Univ(1))),
                REPR_MK.name: GlobalDecl(
                    Pi(type0, Pi(Pi(NAT, Pi(BVar(1), DOC)), repr_class(BVar(1))), name="A")
                ),
                REPR_AT.name: GlobalDecl(at_ty, at_value),
                CTOR_APP.name: GlobalDecl(Pi(STRING, Pi(NAT, Pi(DOC_LIST, DOC)))),
                "Nat.repr": GlobalDecl(_render_ty(NAT)),
                "Int.repr": GlobalDecl(_render_ty(INT)),
                "String.repr": GlobalDecl(_render_ty(STRING)),
            }
        )
    )
    for name, target in (("repr_Nat", NAT), ("repr_Int", INT), ("repr_String", STRING)):
        inst, decl = _leaf_instance(name, target, Const(f"{target.name}.repr"))
        env = env.add_instance(inst, decl)
    return env
