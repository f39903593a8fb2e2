"""
Structural walks over the equation tree.

Every pass here is driven by the same ``walk`` generator, which visits nodes
through their ``child_slots()`` accessor and never dispatches on the variant.
"""

import logging
from enum import Enum
from dataclasses import fields
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from .models import (
    DerivativeNode,
    EquationNode,
    GridNode,
    NodeType,
    TextNode,
    WrapperKind,
)


logger = logging.getLogger(__name__)

FRACTION_TYPES = frozenset({NodeType.FRACTION, NodeType.BEVELLED_FRACTION})

PAREN_SCALE = 1.5


def walk(nodes: Sequence[EquationNode],
         enter: Optional[Callable[[EquationNode, Any], Any]] = None,
         after_sequence: Optional[Callable[[Sequence[EquationNode], Any], None]] = None,
         context: Any = None) -> Iterator[EquationNode]:
    """Yield every node pre-order, depth first.

    ``enter(node, context)`` returns the context passed to that node's
    children. ``after_sequence(nodes, context)`` runs once a sibling list and
    all its descendants have been walked. Stopping the generator early skips
    the remaining hooks.
    """
    for node in nodes:
        yield node
        child_context = enter(node, context) if enter else context
        for _name, slot in node.child_slots():
            yield from walk(slot, enter, after_sequence, child_context)
    if after_sequence:
        after_sequence(nodes, context)


def visit(nodes: Sequence[EquationNode], enter=None, after_sequence=None, context=None):
    """Run ``walk`` to completion for its hooks."""
    for _ in walk(nodes, enter, after_sequence, context):
        pass


def find_by_id(nodes: Sequence[EquationNode], node_id: int) -> Optional[EquationNode]:
    return next((node for node in walk(nodes) if node.id == node_id), None)


def recompute_bracket_nesting(nodes: Sequence[EquationNode]):
    """Set each bracket's depth to its number of bracket ancestors."""
    def enter(node, depth):
        if node.node_type is NodeType.BRACKET:
            node.nesting_depth = depth
            return depth + 1
        return depth

    visit(nodes, enter=enter, context=0)


def max_bracket_depth(nodes: Sequence[EquationNode]) -> int:
    """Deepest bracket nesting level in the tree, or -1 without brackets."""
    deepest = -1

    def enter(node, depth):
        nonlocal deepest
        if node.node_type is NodeType.BRACKET:
            deepest = max(deepest, depth)
            return depth + 1
        return depth

    visit(nodes, enter=enter, context=0)
    return deepest


def _is_paren(node: EquationNode, glyph: str) -> bool:
    return node.node_type is NodeType.TEXT and node.value == glyph


def _scale_parens(nodes: Sequence[EquationNode], _context):
    stack = []
    for i, node in enumerate(nodes):
        if _is_paren(node, "("):
            node.scale_factor = 1.0
            stack.append(i)
        elif _is_paren(node, ")"):
            node.scale_factor = 1.0
            if not stack:
                continue
            start = stack.pop()
            has_fraction = any(
                sibling.node_type in FRACTION_TYPES for sibling in nodes[start + 1:i]
            )
            if has_fraction:
                nodes[start].scale_factor = PAREN_SCALE
                node.scale_factor = PAREN_SCALE


def recompute_paren_scaling(nodes: Sequence[EquationNode]):
    """Widen literal parentheses that directly wrap a fraction.

    Nested sibling lists are scaled first. Each list only looks at its own
    members, never into brackets or scripts.
    """
    visit(nodes, after_sequence=_scale_parens)


# Semantic comparison

_ATTRIBUTE_WRAPPERS = (
    (WrapperKind.UNDERLINE, 'underline'),
    (WrapperKind.CANCEL, 'strikethrough'),
    (WrapperKind.COLOR, 'color'),
    (WrapperKind.TEXT_MODE, 'text_mode'),
)

_COSMETIC_FIELDS = {'id', 'scale_factor', 'nesting_depth', 'wrappers', 'wrapper_order'}


def attribute_wrappers(node: EquationNode) -> List[Tuple[WrapperKind, Any]]:
    """Wrapper kinds a text node carries as formatting attributes, innermost first."""
    if not isinstance(node, TextNode):
        return []
    applied = []
    for kind, attribute in _ATTRIBUTE_WRAPPERS:
        value = getattr(node, attribute)
        if not value:
            continue
        if kind is WrapperKind.CANCEL or kind is WrapperKind.TEXT_MODE:
            value = None
        applied.append((kind, value))
    return applied


def outer_wrappers(node: EquationNode) -> List[Tuple[WrapperKind, Any]]:
    """Wrappers from ``wrapper_order`` that no formatting attribute already covers."""
    seen = {kind for kind, _ in attribute_wrappers(node)}
    return [(kind, node.wrappers.get(kind)) for kind in node.wrapper_order if kind not in seen]


def _effective_wrappers(node: EquationNode) -> List:
    """Wrapper kinds and parameters in application order.

    Text formatting attributes render innermost, so they come first.
    """
    return [(kind.value, _plain(value))
            for kind, value in attribute_wrappers(node) + outer_wrappers(node)]


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return canonical_form(value)
    return value


def _canonical_node(node: EquationNode) -> dict:
    form = {'type': node.node_type.value, 'wrappers': _effective_wrappers(node)}
    if isinstance(node, TextNode):
        form['value'] = node.value
        form['bold'] = node.bold
        form['italic'] = node.italic
        return form
    if isinstance(node, DerivativeNode) and isinstance(node.order, list):
        order = canonical_form(node.order)
        if (len(order) == 1 and order[0]['type'] == NodeType.TEXT.value
                and not order[0]['wrappers'] and not order[0]['bold']
                and order[0]['italic'] is None and order[0]['value'].isdigit()):
            order = int(order[0]['value'])
        form['order'] = order
    for f in fields(node):
        if f.name in _COSMETIC_FIELDS or f.name in form:
            continue
        value = getattr(node, f.name)
        if isinstance(node, GridNode) and f.name == 'cells':
            value = {
                f"{row},{col}": canonical_form(node.cells.get((row, col), []))
                for row in range(node.rows) for col in range(node.cols)
            }
        else:
            value = _plain(value)
        form[f.name] = value
    return form


def canonical_form(nodes: Sequence[EquationNode]) -> List[dict]:
    """Id-free structural form used for semantic comparison.

    Adjacent text nodes with equal formatting merge into one run, empty text
    disappears, cosmetic fields are dropped and text formatting attributes
    are folded into the wrapper list.
    """
    result = []
    for node in nodes:
        form = _canonical_node(node)
        if form['type'] == NodeType.TEXT.value:
            if not form['value']:
                continue
            previous = result[-1] if result else None
            if (previous is not None and previous['type'] == NodeType.TEXT.value
                    and all(previous[key] == form[key] for key in ('bold', 'italic', 'wrappers'))):
                previous['value'] += form['value']
                continue
        result.append(form)
    return result


def equivalent(left: Sequence[EquationNode], right: Sequence[EquationNode]) -> bool:
    """Whether two sibling lists describe the same equation."""
    return canonical_form(left) == canonical_form(right)


__all__ = [
    'walk',
    'visit',
    'find_by_id',
    'recompute_bracket_nesting',
    'recompute_paren_scaling',
    'max_bracket_depth',
    'attribute_wrappers',
    'outer_wrappers',
    'canonical_form',
    'equivalent',
    'PAREN_SCALE',
]
