"""Derivation settings and rendering precedences."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# Precedence passed to a top-level rendering call.
MIN_PREC = 0
# Application threshold: a constructor application rendered at a precedence
# above this gets parenthesized.
APP_PREC = 1024
# Precedence at which constructor arguments are rendered.
ARG_PREC = APP_PREC + 1
# Indentation of continuation lines when an application breaks.
HANG_INDENT = 2


class Locality(Enum):
    LOCAL = "local"
    GLOBAL = "global"
    EXPORTED = "exported"


@dataclass(frozen=True)
class DeriveConfig:
    """Knobs for naming, registering and rendering derived instances."""

    instance_prefix: str = "repr_"
    locality: Locality = Locality.GLOBAL
    width: int = 120

    def instance_name(self, type_name: str) -> str:
        return f"{self.instance_prefix}{type_name}"


DEFAULT_CONFIG = DeriveConfig()
