"""Deriving ``Repr``: synthesis, elaboration and registration."""

from .command import derive_instance, render_value, repr_string
from .repr import Derivation, FunctionDescriptor, derive_repr

__all__ = [
    "Derivation",
    "FunctionDescriptor",
    "derive_instance",
    "derive_repr",
    "render_value",
    "repr_string",
]
