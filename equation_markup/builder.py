"""
Factories and mutation primitives for the equation tree.
"""

import itertools
import logging
from typing import Any, Optional, Sequence, Union

from .models import (
    AccentNode,
    AccentType,
    BevelledFractionNode,
    BracketNode,
    CasesNode,
    DerivativeNode,
    DifferentialStyle,
    DisplayMode,
    EquationNode,
    FractionNode,
    FunctionNode,
    GridNode,
    IntegralLimits,
    IntegralNode,
    IntegralType,
    LargeOperatorNode,
    LimitMode,
    MatrixNode,
    MatrixType,
    NthRootNode,
    ScriptNode,
    Slot,
    SqrtNode,
    StackNode,
    TextNode,
    UnderlineStyle,
    WrapperKind,
)
from .tables import CommandTables, get_default_tables
from . import traversal


logger = logging.getLogger(__name__)


class TreeMutationError(IndexError):
    """Raised when an insert or remove position is outside the slot."""


class EquationBuilder:
    """Creates nodes with fresh ids and applies structural edits.

    Ids come from a counter owned by this builder. Two builders never share
    a counter, so trees from different builders must not be merged.
    """

    def __init__(self, tables: Optional[CommandTables] = None):
        self.tables = tables or get_default_tables()
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    # Factories

    def create_text(self, value: str = "", **formatting) -> TextNode:
        """Create a text node; ``formatting`` sets bold, italic, underline and friends."""
        return TextNode(id=self.next_id(), value=value, **formatting)

    def create_fraction(self, display_mode: Optional[DisplayMode] = None) -> FractionNode:
        return FractionNode(id=self.next_id(), display_mode=display_mode)

    def create_bevelled_fraction(self, display_mode: Optional[DisplayMode] = None) -> BevelledFractionNode:
        return BevelledFractionNode(id=self.next_id(), display_mode=display_mode)

    def create_sqrt(self) -> SqrtNode:
        return SqrtNode(id=self.next_id())

    def create_nthroot(self) -> NthRootNode:
        return NthRootNode(id=self.next_id())

    def create_script(self, has_superscript: bool = True, has_subscript: bool = False) -> ScriptNode:
        if not (has_superscript or has_subscript):
            raise ValueError("A script needs a superscript or a subscript slot")
        return ScriptNode(
            id=self.next_id(),
            superscript=[] if has_superscript else None,
            subscript=[] if has_subscript else None,
        )

    def create_bracket(self, left: str = "(", right: Optional[str] = None) -> BracketNode:
        """Create a bracket; ``right`` defaults to the partner of ``left``."""
        if right is None:
            right = self.tables.matching_bracket(left)
        return BracketNode(id=self.next_id(), left=left, right=right)

    def create_evaluation_bracket(self, style: str = "bar") -> BracketNode:
        """Create an evaluation bracket with bound slots.

        ``bar`` gives an invisible left side and a right bar, ``square``
        gives square brackets.
        """
        if style == "bar":
            left, right = ".", "|"
        elif style == "square":
            left, right = "[", "]"
        else:
            raise ValueError(f"Unknown evaluation bracket style: {style}")
        return BracketNode(id=self.next_id(), left=left, right=right,
                           superscript=[], subscript=[])

    def create_large_operator(self, operator: str = "∑",
                              display_mode: DisplayMode = DisplayMode.INLINE,
                              limit_mode: LimitMode = LimitMode.DEFAULT) -> LargeOperatorNode:
        """Create a large operator from its glyph or its command."""
        glyph = self.tables.large_operator_symbol(operator)
        if glyph is None:
            raise ValueError(f"Unknown large operator: {operator}")
        return LargeOperatorNode(id=self.next_id(), operator=glyph,
                                 display_mode=display_mode, limit_mode=limit_mode)

    def create_derivative(self, order: Union[int, Slot] = 1, long_form: bool = False,
                          partial: bool = False,
                          display_mode: DisplayMode = DisplayMode.INLINE) -> DerivativeNode:
        if isinstance(order, int) and order < 1:
            raise ValueError(f"Derivative order must be positive, got {order}")
        return DerivativeNode(id=self.next_id(), order=order, long_form=long_form,
                              partial=partial, display_mode=display_mode)

    def create_integral(self, integral_type: IntegralType = IntegralType.SINGLE,
                        differential_style: DifferentialStyle = DifferentialStyle.ITALIC,
                        limits: IntegralLimits = IntegralLimits.NONE,
                        limit_mode: LimitMode = LimitMode.DEFAULT,
                        display_mode: DisplayMode = DisplayMode.INLINE) -> IntegralNode:
        """Create an integral with the bound slots ``limits`` asks for.

        Indefinite integrals have no placement choice and a lower-only bound
        is either beneath the sign or a subscript, so those limit modes are
        folded to the ones their command spellings carry.
        """
        if limits is IntegralLimits.NONE:
            limit_mode = LimitMode.DEFAULT
        elif limits is IntegralLimits.LOWER and limit_mode is LimitMode.NOLIMITS:
            limit_mode = LimitMode.DEFAULT

        return IntegralNode(
            id=self.next_id(),
            integral_type=integral_type,
            differential_style=differential_style,
            limit_mode=limit_mode,
            display_mode=display_mode,
            lower=[] if limits is not IntegralLimits.NONE else None,
            upper=[] if limits is IntegralLimits.BOTH else None,
        )

    def _fill_grid(self, node: GridNode) -> GridNode:
        if node.rows < 1 or node.cols < 1:
            raise ValueError(f"Grid needs at least one row and column, got {node.rows}x{node.cols}")
        node.cells = {(row, col): [] for row in range(node.rows) for col in range(node.cols)}
        return node

    def create_matrix(self, rows: int = 2, cols: int = 2,
                      matrix_type: MatrixType = MatrixType.PARENTHESES) -> MatrixNode:
        return self._fill_grid(MatrixNode(id=self.next_id(), rows=rows, cols=cols,
                                          matrix_type=matrix_type))

    def create_stack(self, rows: int = 2, cols: int = 1) -> StackNode:
        return self._fill_grid(StackNode(id=self.next_id(), rows=rows, cols=cols))

    def create_cases(self, rows: int = 2, cols: int = 2) -> CasesNode:
        return self._fill_grid(CasesNode(id=self.next_id(), rows=rows, cols=cols))

    def create_accent(self, accent_type: AccentType = AccentType.HAT) -> AccentNode:
        info = self.tables.accents.get(accent_type)
        if info is None:
            raise ValueError(f"Unknown accent type: {accent_type}")
        return AccentNode(id=self.next_id(), accent_type=accent_type, position=info.position,
                          label=[] if info.labeled else None)

    def create_function(self, function_type: str = "sin") -> FunctionNode:
        if function_type not in self.tables.functions:
            raise ValueError(f"Unknown function type: {function_type}")
        return FunctionNode(id=self.next_id(), function_type=function_type)

    # Mutation

    def insert(self, node: EquationNode, slot: Slot, position: int):
        """Insert ``node`` into ``slot`` before ``position`` (0..len inclusive)."""
        if not 0 <= position <= len(slot):
            raise TreeMutationError(
                f"Insert position {position} out of range for slot of length {len(slot)}"
            )
        slot.insert(position, node)

    def remove(self, slot: Slot, position: int) -> EquationNode:
        """Remove and return the node at ``position``."""
        if not 0 <= position < len(slot):
            raise TreeMutationError(
                f"Remove position {position} out of range for slot of length {len(slot)}"
            )
        return slot.pop(position)

    def apply_wrapper(self, node: EquationNode, kind: WrapperKind, param: Any = None):
        """Layer a wrapper onto ``node``; re-applying a kind only updates its parameter."""
        if kind is WrapperKind.UNDERLINE:
            if param is None:
                param = UnderlineStyle.SINGLE
            elif not isinstance(param, UnderlineStyle):
                raise ValueError(f"Underline wrapper takes an UnderlineStyle, not {param!r}")
        elif kind is WrapperKind.COLOR:
            if not param:
                raise ValueError("Color wrapper needs a color value")
        elif param is not None:
            raise ValueError(f"{kind.value} wrapper takes no parameter")
        if kind not in node.wrappers:
            node.wrapper_order.append(kind)
        node.wrappers[kind] = param

    def remove_wrapper(self, node: EquationNode, kind: WrapperKind):
        node.wrappers.pop(kind, None)
        if kind in node.wrapper_order:
            node.wrapper_order.remove(kind)

    # Tree passes

    def find_by_id(self, nodes: Sequence[EquationNode], node_id: int) -> Optional[EquationNode]:
        return traversal.find_by_id(nodes, node_id)

    def recompute_bracket_nesting(self, nodes: Sequence[EquationNode]):
        traversal.recompute_bracket_nesting(nodes)

    def recompute_paren_scaling(self, nodes: Sequence[EquationNode]):
        traversal.recompute_paren_scaling(nodes)

    def max_bracket_depth(self, nodes: Sequence[EquationNode]) -> int:
        return traversal.max_bracket_depth(nodes)


__all__ = ['EquationBuilder', 'TreeMutationError']
