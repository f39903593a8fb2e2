"""
Configuration classes for the equation markup converter
"""

from dataclasses import dataclass, field
from typing import Optional
from pathlib import Path


BRACKET_SIZING_POLICIES = ("auto", "depth")


@dataclass
class ParseConfig:
    """Markup parser configuration."""
    # Assign bracket depths to the parsed tree before returning it
    recompute_nesting: bool = True


@dataclass
class SerializeConfig:
    """Markup serializer configuration."""
    # Derivatives: physics package (\dv, \pdv) instead of \derivfrac
    physics_differentials: bool = False

    # "auto" emits \left/\right; "depth" picks \bigl..\Biggl from nesting depth
    bracket_sizing: str = "auto"

    def __post_init__(self):
        """Validate policy names."""
        if self.bracket_sizing not in BRACKET_SIZING_POLICIES:
            raise ValueError(
                f"bracket_sizing must be one of {BRACKET_SIZING_POLICIES}, "
                f"got {self.bracket_sizing!r}"
            )


@dataclass
class ConverterConfig:
    """Main converter configuration."""
    # General settings
    verbose: bool = False
    debug: bool = False

    # Extra symbols loaded from a YAML/JSON file
    symbol_table_path: Optional[Path] = None

    # Components
    parse: ParseConfig = field(default_factory=ParseConfig)
    serialize: SerializeConfig = field(default_factory=SerializeConfig)

    def __post_init__(self):
        """Initialize paths."""
        if self.symbol_table_path:
            self.symbol_table_path = Path(self.symbol_table_path)


__all__ = [
    'ParseConfig',
    'SerializeConfig',
    'ConverterConfig',
    'BRACKET_SIZING_POLICIES',
]
