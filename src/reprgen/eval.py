"""Call-by-value evaluation of closed terms."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from reprgen.errors import EvalError, PlaceholderUnresolved
from reprgen.kernel.ast import (
    App,
    Branch,
    BVar,
    Case,
    Const,
    Ctor,
    Fix,
    FixDef,
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
from reprgen.kernel.env import Environment
from reprgen.prelude import (
    render_ctor_app,
    render_int,
    render_nat,
    render_string,
)

Value = Any


class TypeValue:
    """Types are erased to a single value."""

    def __repr__(self) -> str:
        return "TYPE"


TYPE = TypeValue()


@dataclass(frozen=True)
class Closure:
    body: Term
    env: tuple[Value, ...]


@dataclass(frozen=True)
class FixValue:
    defs: tuple[FixDef, ...]
    index: int
    env: tuple[Value, ...]


@dataclass(frozen=True)
class CtorValue:
    """A fully applied constructor; parameters are not stored."""

    inductive: str
    name: str
    args: tuple[Value, ...] = ()


@dataclass(frozen=True)
class DictValue:
    fields: tuple[Value, ...]


@dataclass(frozen=True)
class Prim:
    arity: int
    fn: Callable[..., Value]


@dataclass(frozen=True)
class Partial:
    """A constructor or primitive still waiting for arguments."""

    head: Ctor | Prim
    needed: int
    args: tuple[Value, ...] = ()


PRIMITIVES: dict[str, Prim] = {
    "DocList.nil": Prim(0, lambda: ()),
    "DocList.cons": Prim(2, lambda d, ds: (d, *ds)),
    "Repr.ctorApp": Prim(3, render_ctor_app),
    "Repr.mk": Prim(2, lambda _family, fn: DictValue((fn,))),
    "Nat.repr": Prim(2, render_nat),
    "Int.repr": Prim(2, render_int),
    "String.repr": Prim(2, render_string),
}


def _is_type_former(ty: Term) -> bool:
    while isinstance(ty, Pi):
        ty = ty.return_ty
    return isinstance(ty, Univ)


Env = tuple[Value, ...]


# Continuation frames; evaluation runs on an explicit stack of these.


@dataclass(frozen=True)
class _Args:
    """Function value arrives; evaluate ``args[i:]`` and apply them in turn."""

    args: tuple[Term, ...]
    i: int
    local: Env


@dataclass(frozen=True)
class _Arg:
    """Value of ``args[i]`` arrives; apply ``fn`` to it."""

    fn: Value
    args: tuple[Term, ...]
    i: int
    local: Env


@dataclass(frozen=True)
class _ApplyTo:
    """An unfolded fixpoint arrives; apply it to ``arg``."""

    arg: Value


@dataclass(frozen=True)
class _LetBody:
    body: Term
    local: Env


@dataclass(frozen=True)
class _Project:
    index: int


@dataclass(frozen=True)
class _Match:
    inductive: str
    branches: tuple[Branch, ...]
    local: Env


Frame = _Args | _Arg | _ApplyTo | _LetBody | _Project | _Match

# Either a term still to evaluate in an environment, or None when the
# accompanying value is already known.
Todo = tuple[Term, Env] | None


@dataclass
class Evaluator:
    env: Environment
    _globals: dict[str, Value] = field(default_factory=dict)

    # ---- globals ----
    def _global(self, name: str) -> Value:
        if name in self._globals:
            return self._globals[name]
        prim = PRIMITIVES.get(name)
        if prim is not None:
            value = self._saturate(Partial(prim, prim.arity))
        else:
            decl = self.env.lookup_global(name)
            if decl.value is not None:
                value = self.eval(decl.value)
            elif _is_type_former(decl.ty):
                value = TYPE
            else:
                raise EvalError(f"Global {name!r} has no value to evaluate")
        self._globals[name] = value
        return value

    # ---- application ----
    def _saturate(self, p: Partial) -> Value:
        if len(p.args) < p.needed:
            return p
        match p.head:
            case Prim(_, fn):
                return fn(*p.args)
            case Ctor(name, inductive):
                n_params = len(self.env.lookup_inductive(inductive).params)
                return CtorValue(inductive, name, p.args[n_params:])
        raise EvalError(f"Cannot saturate {p.head!r}")

    def _apply(self, f: Value, arg: Value, stack: list[Frame]) -> tuple[Todo, Value]:
        match f:
            case Closure(body, env):
                return (body, (arg, *env)), None
            case FixValue(defs, index, env):
                # unfold, then apply whatever the member's body evaluates to
                n = len(defs)
                group = tuple(FixValue(defs, i, env) for i in reversed(range(n)))
                stack.append(_ApplyTo(arg))
                return (defs[index].body, group + env), None
            case Partial(head, needed, args):
                return None, self._saturate(Partial(head, needed, (*args, arg)))
            case TypeValue():
                return None, TYPE
        raise EvalError(f"Cannot apply non-function value {f!r}")

    def apply(self, f: Value, arg: Value) -> Value:
        stack: list[Frame] = []
        todo, value = self._apply(f, arg, stack)
        return self._run(todo, value, stack)

    # ---- evaluation ----
    def _leaf(self, term: Term, local: Env) -> Value:
        """Terms whose value needs no further evaluation steps."""
        match term:
            case BVar(k):
                if k >= len(local):
                    raise EvalError(f"Unbound index {k} in closed evaluation")
                return local[k]
            case FVar(name):
                raise EvalError(f"Cannot evaluate open term mentioning {name!r}")
            case Hole(hid):
                raise PlaceholderUnresolved(f"Placeholder ?{hid} reached evaluation")
            case Univ() | Pi() | Ind():
                return TYPE
            case Lit(value):
                return value
            case Const(name):
                return self._global(name)
            case Ctor(name, inductive):
                desc = self.env.lookup_inductive(inductive)
                needed = len(desc.params) + desc.constructor(name).arity
                return self._saturate(Partial(term, needed))
            case Lam(_, body):
                return Closure(body, local)
            case Fix(defs, index):
                return FixValue(defs, index, local)
        raise EvalError(f"Cannot evaluate unknown term: {term!r}")

    @staticmethod
    def _project(value: Value, index: int) -> Value:
        match value:
            case DictValue(fields) | CtorValue(args=fields):
                return fields[index]
        raise EvalError(f"Cannot project out of {value!r}")

    @staticmethod
    def _select(
        inductive: str, branches: tuple[Branch, ...], scrut: Value, local: Env
    ) -> tuple[Term, Env]:
        if not isinstance(scrut, CtorValue) or scrut.inductive != inductive:
            raise EvalError(
                "Case scrutinee is not a constructor of the matched type:\n"
                f"  inductive = {inductive}\n"
                f"  value = {scrut!r}"
            )
        for branch in branches:
            if branch.ctor == scrut.name:
                return branch.body, (*reversed(scrut.args), *local)
        raise EvalError(f"No branch for constructor {scrut.name!r}")

    def _run(self, todo: Todo, value: Value, stack: list[Frame]) -> Value:
        while True:
            if todo is not None:
                term, local = todo
                todo = None
                match term:
                    case App(func, args):
                        stack.append(_Args(args, 0, local))
                        todo = (func, local)
                    case Let(_, bound, body):
                        stack.append(_LetBody(body, local))
                        todo = (bound, local)
                    case Proj(_, index, struct):
                        stack.append(_Project(index))
                        todo = (struct, local)
                    case Case(inductive, scrutinee, _, branches):
                        stack.append(_Match(inductive, branches, local))
                        todo = (scrutinee, local)
                    case _:
                        value = self._leaf(term, local)
                continue

            if not stack:
                return value
            match stack.pop():
                case _Args(args, i, local):
                    if i < len(args):
                        stack.append(_Arg(value, args, i, local))
                        todo = (args[i], local)
                case _Arg(fn, args, i, local):
                    stack.append(_Args(args, i + 1, local))
                    todo, value = self._apply(fn, value, stack)
                case _ApplyTo(arg):
                    todo, value = self._apply(value, arg, stack)
                case _LetBody(body, local):
                    todo = (body, (value, *local))
                case _Project(index):
                    value = self._project(value, index)
                case _Match(inductive, branches, local):
                    todo = self._select(inductive, branches, value, local)

    def eval(self, term: Term, local: Env = ()) -> Value:
        return self._run((term, local), None, [])



def evaluate(env: Environment, term: Term) -> Value:
    """Evaluate a closed term in ``env``."""
    return Evaluator(env).eval(term)
