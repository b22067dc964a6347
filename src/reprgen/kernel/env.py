"""Immutable environment snapshots: inductives, globals and registered instances."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType

from reprgen.config import Locality
from reprgen.errors import LookupFailure, NotAnInductive
from reprgen.kernel.ast import Term
from reprgen.kernel.inductive import TypeDescriptor


@dataclass(frozen=True)
class GlobalDecl:
    """
    A top-level declaration.

    - ty: type of the constant/definition
    - value: definitional body (None for axioms and primitives)
    """

    ty: Term
    value: Term | None = None


@dataclass(frozen=True)
class InstanceDecl:
    """
    A registered class instance.

    ``name`` is the global holding the dictionary; it takes the target's
    parameters and then one dictionary per parameter flagged in
    ``dict_params``.
    """

    name: str
    class_name: str
    target: str
    dict_params: tuple[bool, ...] = ()
    locality: Locality = Locality.GLOBAL

    @property
    def n_params(self) -> int:
        return len(self.dict_params)


@dataclass(frozen=True)
class Environment:
    """
    Read-only snapshot of the global environment.

    Every ``add_*``/``with_*`` method returns a new snapshot and leaves the
    receiver untouched.
    """

    inductives: MappingProxyType[str, TypeDescriptor] = field(
        default_factory=lambda: MappingProxyType({})
    )
    globals: MappingProxyType[str, GlobalDecl] = field(
        default_factory=lambda: MappingProxyType({})
    )
    instances: tuple[InstanceDecl, ...] = ()

    # ---- extending the environment ----
    def add_inductive(self, desc: TypeDescriptor) -> Environment:
        return replace(
            self, inductives=MappingProxyType({**self.inductives, desc.name: desc})
        )

    def add_global(self, name: str, decl: GlobalDecl) -> Environment:
        return replace(self, globals=MappingProxyType({**self.globals, name: decl}))

    def add_instance(self, inst: InstanceDecl, decl: GlobalDecl) -> Environment:
        env = self.add_global(inst.name, decl)
        return replace(env, instances=self.instances + (inst,))

    # ---- scoping ----
    def end_section(self) -> Environment:
        """Drop instances registered with ``Locality.LOCAL``."""
        kept = tuple(i for i in self.instances if i.locality is not Locality.LOCAL)
        return replace(self, instances=kept)

    def exported(self) -> Environment:
        """The snapshot an importer sees: only exported instances survive."""
        kept = tuple(i for i in self.instances if i.locality is Locality.EXPORTED)
        return replace(self, instances=kept)

    # ---- lookup ----
    def lookup_inductive(self, name: str) -> TypeDescriptor:
        desc = self.inductives.get(name)
        if desc is not None:
            return desc
        if name in self.globals:
            raise NotAnInductive("Reference does not denote an inductive type", name)
        raise LookupFailure("Unknown type reference", name)

    def lookup_global(self, name: str) -> GlobalDecl:
        decl = self.globals.get(name)
        if decl is None:
            raise LookupFailure("Unknown global", name)
        return decl

    def find_instance(self, class_name: str, target: str) -> InstanceDecl | None:
        # most recent registration wins
        for inst in reversed(self.instances):
            if inst.class_name == class_name and inst.target == target:
                return inst
        return None

    def has_instance_named(self, name: str) -> bool:
        return any(i.name == name for i in self.instances)
