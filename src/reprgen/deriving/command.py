"""Entry points: ``deriving Repr for I`` and rendering through a registered instance."""

from __future__ import annotations

import logging

from reprgen.config import DEFAULT_CONFIG, MIN_PREC, DeriveConfig, Locality
from reprgen.deriving.repr import derive_repr
from reprgen.doc import Doc
from reprgen.elab.instances import resolve_holes, synthesize
from reprgen.errors import DuplicateInstance
from reprgen.eval import Evaluator
from reprgen.kernel.ast import Lit, Term
from reprgen.kernel.env import Environment, GlobalDecl, InstanceDecl
from reprgen.prelude import REPR_CLASS, repr_field

logger = logging.getLogger(__name__)


def derive_instance(
    env: Environment,
    type_name: str,
    locality: Locality | None = None,
    config: DeriveConfig = DEFAULT_CONFIG,
) -> tuple[Environment, InstanceDecl]:
    """
    Derive, elaborate and register ``Repr`` for the inductive ``type_name``.

    Either the instance is registered in the returned environment or an error
    is raised and ``env`` is left as it was; nothing partial is ever added.
    """
    desc = env.lookup_inductive(type_name)
    name = config.instance_name(desc.name)
    if name in env.globals or env.has_instance_named(name):
        raise DuplicateInstance(f"Instance {name!r} is already declared", desc.name)

    derivation = derive_repr(desc, config)
    value = resolve_holes(env, derivation.instance_value)

    inst = InstanceDecl(
        name=name,
        class_name=REPR_CLASS,
        target=desc.name,
        dict_params=derivation.dict_params,
        locality=config.locality if locality is None else locality,
    )
    new_env = env.add_instance(inst, GlobalDecl(derivation.instance_ty, value))
    logger.info(
        "registered %s (%s) for %s with %d resolved placeholder(s)",
        inst.name,
        inst.locality.value,
        desc.name,
        len(derivation.holes),
    )
    return new_env, inst


def render_value(
    env: Environment, value: Term, ty: Term, prec: int = MIN_PREC
) -> Doc:
    """Evaluate ``Repr.repr`` at ``ty`` on ``value`` down to a document."""
    dictionary = synthesize(env, ty)
    call = repr_field(dictionary, Lit(prec), value)
    evaluator = Evaluator(env)
    doc = evaluator.eval(call)
    if not isinstance(doc, Doc):
        raise TypeError(f"Rendering {ty} did not produce a document: {doc!r}")
    return doc


def repr_string(
    env: Environment,
    value: Term,
    ty: Term,
    prec: int = MIN_PREC,
    width: int | None = None,
    config: DeriveConfig = DEFAULT_CONFIG,
) -> str:
    """Render ``value : ty`` to a string at ``width`` columns, else ``config.width``."""
    doc = render_value(env, value, ty, prec)
    return doc.render(config.width if width is None else width)
