from .base_renderer import (
    BaseRenderer,
    RenderResult,
    typesetting_delimiters,
    DISPLAY_DELIMITERS,
    INLINE_DELIMITERS,
)


__all__ = [
    'BaseRenderer',
    'RenderResult',
    'typesetting_delimiters',
    'DISPLAY_DELIMITERS',
    'INLINE_DELIMITERS',
]
