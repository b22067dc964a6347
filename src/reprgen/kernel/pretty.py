"""Pretty-printing utilities for terms."""

from __future__ import annotations

from reprgen.kernel.ast import (
    App,
    BVar,
    Case,
    Const,
    Ctor,
    Fix,
    FVar,
    Hole,
    Ind,
    Lam,
    Let,
    Lit,
    Pi,
    Proj,
    Term,
    Univ,
)
from reprgen.kernel.context import fresh_name

ATOM_PREC = 3
APP_PREC = 2
PI_PREC = 1
LAM_PREC = 0


def _uses_var(term: Term, target: int) -> bool:
    """Return ``True`` if ``BVar(target)`` appears loose in ``term``."""

    if isinstance(term, BVar):
        return term.k == target
    found = False

    def visit(depth: int, t: Term) -> Term:
        nonlocal found
        found = found or _uses_var(t, depth)
        return t

    term.map_one_with_binders(lambda d: d + 1, visit, target)
    return found


def _maybe_paren(
    text: str, child_prec: int, parent_prec: int, *, allow_equal: bool
) -> str:
    if child_prec < parent_prec or (child_prec == parent_prec and not allow_equal):
        return f"({text})"
    return text


def _binder(hint: str, env: list[str]) -> str:
    return fresh_name(env, "x" if hint == "_" else hint)


def pretty(term: Term) -> str:
    """Return a human-friendly string for ``term``."""

    def fmt(t: Term, env: list[str]) -> tuple[str, int]:
        match t:
            case BVar(k):
                name = env[k] if k < len(env) else f"#{k}"
                return name, ATOM_PREC

            case FVar(name) | Const(name) | Ind(name) | Ctor(name):
                return name, ATOM_PREC

            case Univ(level):
                return ("Type" if level == 0 else f"Type{level}"), ATOM_PREC

            case Lit(value):
                return (repr(value) if isinstance(value, str) else str(value)), ATOM_PREC

            case Hole(hid):
                return f"?{hid}", ATOM_PREC

            case Proj(_, index, struct):
                struct_text, struct_prec = fmt(struct, env)
                disp = _maybe_paren(struct_text, struct_prec, ATOM_PREC, allow_equal=True)
                return f"{disp}.{index}", ATOM_PREC

            case App(f, args):
                func_text, func_prec = fmt(f, env)
                parts = [_maybe_paren(func_text, func_prec, APP_PREC, allow_equal=True)]
                for a in args:
                    arg_text, arg_prec = fmt(a, env)
                    parts.append(
                        _maybe_paren(arg_text, arg_prec, APP_PREC, allow_equal=False)
                    )
                return " ".join(parts), APP_PREC

            case Lam(arg_ty, body, hint):
                binder = _binder(hint, env)
                arg_text, arg_prec = fmt(arg_ty, env)
                body_text, _ = fmt(body, [binder, *env])
                arg_disp = _maybe_paren(arg_text, arg_prec, PI_PREC, allow_equal=False)
                return f"\\{binder} : {arg_disp}. {body_text}", LAM_PREC

            case Pi(arg_ty, body, hint):
                dependent = _uses_var(body, 0)
                binder = _binder(hint, env) if dependent else fresh_name(env, "_")
                arg_text, arg_prec = fmt(arg_ty, env)
                body_text, body_prec = fmt(body, [binder, *env])
                arg_disp = _maybe_paren(arg_text, arg_prec, PI_PREC, allow_equal=False)
                body_disp = _maybe_paren(body_text, body_prec, PI_PREC, allow_equal=True)
                if not dependent:
                    return f"{arg_disp} -> {body_disp}", PI_PREC
                return f"Pi {binder} : {arg_disp}. {body_disp}", PI_PREC

            case Let(arg_ty, value, body, hint):
                binder = _binder(hint, env)
                arg_text, arg_prec = fmt(arg_ty, env)
                value_text, _ = fmt(value, env)
                body_text, _ = fmt(body, [binder, *env])
                arg_disp = _maybe_paren(arg_text, arg_prec, PI_PREC, allow_equal=False)
                return (
                    f"let {binder} : {arg_disp} := {value_text}; {body_text}",
                    LAM_PREC,
                )

            case Case(_, scrutinee, motive, branches):
                scrutinee_text, _ = fmt(scrutinee, env)
                motive_env = list(env)
                for hint in motive.names:
                    motive_env.insert(0, _binder(hint, motive_env))
                motive_text, _ = fmt(motive.body, motive_env)
                alts = []
                for branch in branches:
                    branch_env = list(env)
                    for hint in branch.names:
                        branch_env.insert(0, _binder(hint, branch_env))
                    body_text, _ = fmt(branch.body, branch_env)
                    pattern = " ".join([branch.ctor, *reversed(branch_env[: len(branch.names)])])
                    alts.append(f"{pattern} => {body_text}")
                binders = " ".join(reversed(motive_env[: len(motive.names)]))
                return (
                    f"case {scrutinee_text} as {binders} return {motive_text} "
                    f"of {{{' | '.join(alts)}}}",
                    LAM_PREC,
                )

            case Fix(defs, index):
                fix_env = list(env)
                for d in defs:
                    fix_env.insert(0, _binder(d.name, fix_env))
                bodies = []
                for i, d in enumerate(defs):
                    ty_text, _ = fmt(d.ty, env)
                    body_text, _ = fmt(d.body, fix_env)
                    name = fix_env[len(defs) - 1 - i]
                    bodies.append(f"{name} : {ty_text} := {body_text}")
                keyword = "cofix" if t.coinductive else "fix"
                chosen = fix_env[len(defs) - 1 - index]
                return f"{keyword} {' with '.join(bodies)} for {chosen}", LAM_PREC

        raise TypeError(f"Cannot pretty-print unknown term: {t!r}")

    return fmt(term, [])[0]
