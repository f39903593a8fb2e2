"""
Converter facade tying the parser and serializer to one table set
"""

import logging
from typing import List, Optional, Sequence

import regex

from .builder import EquationBuilder
from .config import ConverterConfig
from .models import EquationNode
from .parser import MarkupParser
from .rendering import BaseRenderer, RenderResult
from .serializer import MarkupSerializer
from .tables import CommandTables, get_default_tables
from .traversal import equivalent


logger = logging.getLogger(__name__)


class EquationConverter:
    """Converts between equation trees and markup."""

    def __init__(self, config: Optional[ConverterConfig] = None):
        """Initialize converter with configuration."""
        self.config = config or ConverterConfig()

        # Setup logging
        if self.config.verbose:
            logging.basicConfig(level=logging.INFO)
        if self.config.debug:
            logging.basicConfig(level=logging.DEBUG)

        if self.config.symbol_table_path:
            self.tables = CommandTables.from_file(self.config.symbol_table_path)
        else:
            self.tables = get_default_tables()

        # Initialize components
        self.builder = EquationBuilder(self.tables)
        self.parser = MarkupParser(self.tables, self.builder, self.config.parse)
        self.serializer = MarkupSerializer(self.tables, self.config.serialize)

        self.physics_pattern = regex.compile(r'\\p?dv(?![a-zA-Z])')
        self.custom_pattern = regex.compile(r'\\derivl?d?frac(?![a-zA-Z])')

    def to_markup(self, nodes: Sequence[EquationNode],
                  physics_differentials: Optional[bool] = None) -> str:
        return self.serializer.serialize(nodes, physics_differentials)

    def from_markup(self, markup: str) -> List[EquationNode]:
        return self.parser.parse(markup)

    def round_trip(self, nodes: Sequence[EquationNode]) -> List[EquationNode]:
        """Serialize then re-parse; the result is equivalent to ``nodes``."""
        markup = self.to_markup(nodes)
        result = self.from_markup(markup)
        if not equivalent(result, nodes):
            logger.debug(f"Round trip changed structure for {markup!r}")
        return result

    def detect_physics_differentials(self, markup: str) -> Optional[bool]:
        """Guess the derivative family a stored markup string was written with.

        Returns True for physics-package commands, False for the custom
        family and None when the markup has no derivatives.
        """
        if self.physics_pattern.search(markup):
            return True
        if self.custom_pattern.search(markup):
            return False
        return None

    def render(self, nodes: Sequence[EquationNode], renderer: BaseRenderer,
               display: Optional[bool] = None) -> RenderResult:
        """Serialize ``nodes`` and hand the markup to ``renderer``."""
        if not renderer.is_available():
            return RenderResult(error=f"{renderer.__class__.__name__} not available")

        markup = self.to_markup(nodes)
        try:
            return renderer.render_markup(markup, display)
        except Exception as e:
            logger.error(f"Rendering failed: {e}")
            return RenderResult(error=str(e))


__all__ = ['EquationConverter']
