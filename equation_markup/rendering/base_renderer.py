"""
Base classes for rendering system
"""

import hashlib
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
from abc import ABC, abstractmethod


DISPLAY_DELIMITERS = ("\\[", "\\]")
INLINE_DELIMITERS = ("\\(", "\\)")

# commands that only make sense in a display block
DISPLAY_MARKERS = ("\\displaystyle", "\\dfrac")


def typesetting_delimiters(markup: str) -> Tuple[str, str]:
    """Pick display or inline math delimiters for a markup string."""
    if any(marker in markup for marker in DISPLAY_MARKERS):
        return DISPLAY_DELIMITERS
    return INLINE_DELIMITERS


@dataclass
class RenderResult:
    """Result of rendering operation."""
    svg: Optional[str] = None
    size: Optional[Tuple[float, float]] = None
    # distance from the bottom edge to the text baseline
    baseline: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Check if render was successful."""
        return bool(self.svg) and not self.error


class BaseRenderer(ABC):
    """Base class for all renderers."""

    def __init__(self, cache_renders: bool = True):
        self._cache: Optional[Dict[str, RenderResult]] = {} if cache_renders else None

    @abstractmethod
    def is_available(self) -> bool:
        """Check if renderer is available."""
        pass

    @abstractmethod
    def render_markup(self, markup: str, display: Optional[bool] = None) -> RenderResult:
        """Render markup to SVG.

        ``display`` forces display or inline layout; None lets
        ``typesetting_delimiters`` decide.
        """
        pass

    def wrap_markup(self, markup: str, display: Optional[bool] = None) -> str:
        """Surround markup with the math delimiters an engine expects."""
        if display is None:
            opening, closing = typesetting_delimiters(markup)
        else:
            opening, closing = DISPLAY_DELIMITERS if display else INLINE_DELIMITERS
        return f"{opening}{markup}{closing}"

    def get_cache_key(self, markup: str, display: Optional[bool] = None) -> str:
        """Generate cache key."""
        key_str = f"{markup}_{display}"
        return hashlib.md5(key_str.encode()).hexdigest()

    def clear_cache(self):
        """Clear render cache."""
        if self._cache:
            self._cache.clear()
