"""Derivation error types."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class DeriveError(Exception):
    message: str
    type_name: str | None = None

    def __str__(self) -> str:
        if self.type_name is None:
            return self.message
        return f"{self.message} @ {self.type_name}"


class NotAnInductive(DeriveError):
    """The reference resolves to something other than an inductive type."""


class LookupFailure(DeriveError):
    """No declaration is known under the reference."""


class UnsupportedShape(DeriveError):
    """Mutual or coinductive families."""


class PlaceholderUnresolved(DeriveError):
    """Instance search could not discharge a capability hole."""


class DuplicateInstance(DeriveError):
    """An instance with the derived name is already in scope."""


@dataclass
class EvalError(Exception):
    message: str

    def __str__(self) -> str:
        return self.message
