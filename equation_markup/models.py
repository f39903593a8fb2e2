"""
Data models for the equation tree.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Tuple, Union


class NodeType(Enum):
    TEXT = "text"
    FRACTION = "fraction"
    BEVELLED_FRACTION = "bevelled-fraction"
    SQRT = "sqrt"
    NTHROOT = "nthroot"
    SCRIPT = "script"
    BRACKET = "bracket"
    LARGE_OPERATOR = "large-operator"
    DERIVATIVE = "derivative"
    INTEGRAL = "integral"
    MATRIX = "matrix"
    STACK = "stack"
    CASES = "cases"
    ACCENT = "accent"
    FUNCTION = "function"


class DisplayMode(Enum):
    INLINE = "inline"
    DISPLAY = "display"


class LimitMode(Enum):
    DEFAULT = "default"
    NOLIMITS = "nolimits"
    LIMITS = "limits"


class IntegralType(Enum):
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    CONTOUR = "contour"


class IntegralLimits(Enum):
    """Which bounds an integral factory creates."""
    NONE = "none"
    LOWER = "lower"
    BOTH = "both"


class DifferentialStyle(Enum):
    ITALIC = "italic"
    ROMAN = "roman"


class UnderlineStyle(Enum):
    SINGLE = "single"
    DOUBLE = "double"


class WrapperKind(Enum):
    UNDERLINE = "underline"
    CANCEL = "cancel"
    COLOR = "color"
    TEXT_MODE = "text-mode"


class MatrixType(Enum):
    PARENTHESES = "parentheses"
    BRACKETS = "brackets"
    BRACES = "braces"
    BARS = "bars"
    DOUBLE_BARS = "double-bars"
    PLAIN = "plain"


class AccentType(Enum):
    HAT = "hat"
    TILDE = "tilde"
    BAR = "bar"
    DOT = "dot"
    DDOT = "ddot"
    VEC = "vec"
    WIDEHAT = "widehat"
    WIDETILDE = "widetilde"
    WIDEBAR = "widebar"
    OVERRIGHTARROW = "overrightarrow"
    OVERLEFTARROW = "overleftarrow"
    OVERLEFTRIGHTARROW = "overleftrightarrow"
    OVERBRACE = "overbrace"
    UNDERBRACE = "underbrace"
    LABELED_OVERBRACE = "labeledoverbrace"
    LABELED_UNDERBRACE = "labeledunderbrace"
    OVERPAREN = "overparen"
    UNDERPAREN = "underparen"


class AccentPosition(Enum):
    OVER = "over"
    UNDER = "under"


Slot = List['EquationNode']


@dataclass
class EquationNode:
    """Fields shared by every node variant.

    ``wrappers`` maps each applied wrapper kind to its parameter (the
    underline style, the color value, or None). ``wrapper_order`` records the
    application order, innermost first.
    """
    node_type: ClassVar[NodeType]

    id: int = 0
    wrappers: Dict[WrapperKind, Any] = field(default_factory=dict)
    wrapper_order: List[WrapperKind] = field(default_factory=list)

    def child_slots(self) -> Iterator[Tuple[str, Slot]]:
        """Yield ``(name, children)`` for every slot that exists, in order."""
        return iter(())


@dataclass
class TextNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.TEXT

    value: str = ""
    bold: bool = False
    italic: Optional[bool] = None
    underline: Optional[UnderlineStyle] = None
    strikethrough: bool = False
    color: Optional[str] = None
    text_mode: bool = False
    scale_factor: Optional[float] = None

    def formatting_signature(self) -> Tuple:
        """Everything that must match for two text nodes to share a run."""
        return (
            self.bold, self.italic, self.underline, self.strikethrough,
            self.color, self.text_mode, frozenset(self.wrappers.items()),
            tuple(self.wrapper_order),
        )


@dataclass
class FractionNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.FRACTION

    display_mode: Optional[DisplayMode] = None
    numerator: Slot = field(default_factory=list)
    denominator: Slot = field(default_factory=list)

    def child_slots(self):
        yield 'numerator', self.numerator
        yield 'denominator', self.denominator


@dataclass
class BevelledFractionNode(FractionNode):
    node_type: ClassVar[NodeType] = NodeType.BEVELLED_FRACTION


@dataclass
class SqrtNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.SQRT

    radicand: Slot = field(default_factory=list)

    def child_slots(self):
        yield 'radicand', self.radicand


@dataclass
class NthRootNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.NTHROOT

    index: Slot = field(default_factory=list)
    radicand: Slot = field(default_factory=list)

    def child_slots(self):
        yield 'index', self.index
        yield 'radicand', self.radicand


@dataclass
class ScriptNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.SCRIPT

    base: Slot = field(default_factory=list)
    superscript: Optional[Slot] = None
    subscript: Optional[Slot] = None

    def child_slots(self):
        yield 'base', self.base
        if self.superscript is not None:
            yield 'superscript', self.superscript
        if self.subscript is not None:
            yield 'subscript', self.subscript


@dataclass
class BracketNode(EquationNode):
    """A delimited group. Superscript and subscript exist only on evaluation brackets."""
    node_type: ClassVar[NodeType] = NodeType.BRACKET

    left: str = "("
    right: str = ")"
    content: Slot = field(default_factory=list)
    nesting_depth: int = 0
    scale_factor: Optional[float] = None
    superscript: Optional[Slot] = None
    subscript: Optional[Slot] = None

    def child_slots(self):
        yield 'content', self.content
        if self.superscript is not None:
            yield 'superscript', self.superscript
        if self.subscript is not None:
            yield 'subscript', self.subscript


@dataclass
class LargeOperatorNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.LARGE_OPERATOR

    operator: str = "∑"
    limit_mode: LimitMode = LimitMode.DEFAULT
    display_mode: DisplayMode = DisplayMode.INLINE
    lower: Slot = field(default_factory=list)
    upper: Slot = field(default_factory=list)
    operand: Slot = field(default_factory=list)

    def child_slots(self):
        yield 'lower', self.lower
        yield 'upper', self.upper
        yield 'operand', self.operand


@dataclass
class DerivativeNode(EquationNode):
    """``order`` is a positive int or a node list for symbolic orders."""
    node_type: ClassVar[NodeType] = NodeType.DERIVATIVE

    order: Union[int, Slot] = 1
    long_form: bool = False
    partial: bool = False
    display_mode: DisplayMode = DisplayMode.INLINE
    function: Slot = field(default_factory=list)
    variable: Slot = field(default_factory=list)

    def child_slots(self):
        if isinstance(self.order, list):
            yield 'order', self.order
        yield 'function', self.function
        yield 'variable', self.variable


@dataclass
class IntegralNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.INTEGRAL

    integral_type: IntegralType = IntegralType.SINGLE
    differential_style: DifferentialStyle = DifferentialStyle.ITALIC
    limit_mode: LimitMode = LimitMode.DEFAULT
    display_mode: DisplayMode = DisplayMode.INLINE
    integrand: Slot = field(default_factory=list)
    variable: Slot = field(default_factory=list)
    lower: Optional[Slot] = None
    upper: Optional[Slot] = None

    def child_slots(self):
        yield 'integrand', self.integrand
        yield 'variable', self.variable
        if self.lower is not None:
            yield 'lower', self.lower
        if self.upper is not None:
            yield 'upper', self.upper


@dataclass
class GridNode(EquationNode):
    """Common shape of matrix, stack and cases: a full rows x cols cell map."""
    node_type: ClassVar[NodeType]

    rows: int = 1
    cols: int = 1
    cells: Dict[Tuple[int, int], Slot] = field(default_factory=dict)

    def cell(self, row: int, col: int) -> Slot:
        return self.cells[(row, col)]

    def child_slots(self):
        for row in range(self.rows):
            for col in range(self.cols):
                yield f'cell_{row}_{col}', self.cells.setdefault((row, col), [])


@dataclass
class MatrixNode(GridNode):
    node_type: ClassVar[NodeType] = NodeType.MATRIX

    matrix_type: MatrixType = MatrixType.PARENTHESES


@dataclass
class StackNode(GridNode):
    node_type: ClassVar[NodeType] = NodeType.STACK


@dataclass
class CasesNode(GridNode):
    node_type: ClassVar[NodeType] = NodeType.CASES

    cols: int = 2


@dataclass
class AccentNode(EquationNode):
    """Accent over or under ``base``. ``label`` exists only for labeled braces."""
    node_type: ClassVar[NodeType] = NodeType.ACCENT

    accent_type: AccentType = AccentType.HAT
    position: AccentPosition = AccentPosition.OVER
    base: Slot = field(default_factory=list)
    label: Optional[Slot] = None

    def child_slots(self):
        yield 'base', self.base
        if self.label is not None:
            yield 'label', self.label


@dataclass
class FunctionNode(EquationNode):
    node_type: ClassVar[NodeType] = NodeType.FUNCTION

    function_type: str = "sin"
    name: Slot = field(default_factory=list)
    argument: Slot = field(default_factory=list)
    base: Slot = field(default_factory=list)
    constraint: Slot = field(default_factory=list)

    def child_slots(self):
        yield 'name', self.name
        yield 'argument', self.argument
        yield 'base', self.base
        yield 'constraint', self.constraint


Node = Union[
    TextNode, FractionNode, BevelledFractionNode, SqrtNode, NthRootNode,
    ScriptNode, BracketNode, LargeOperatorNode, DerivativeNode, IntegralNode,
    MatrixNode, StackNode, CasesNode, AccentNode, FunctionNode,
]

# node types whose display mode a style wrapper can set
DISPLAY_MODE_TYPES = frozenset({
    NodeType.FRACTION, NodeType.BEVELLED_FRACTION, NodeType.LARGE_OPERATOR,
    NodeType.INTEGRAL, NodeType.DERIVATIVE,
})


__all__ = [
    'NodeType', 'DisplayMode', 'LimitMode', 'IntegralType', 'IntegralLimits',
    'DifferentialStyle', 'UnderlineStyle', 'WrapperKind', 'MatrixType',
    'AccentType', 'AccentPosition', 'Slot', 'EquationNode', 'TextNode',
    'FractionNode', 'BevelledFractionNode', 'SqrtNode', 'NthRootNode',
    'ScriptNode', 'BracketNode', 'LargeOperatorNode', 'DerivativeNode',
    'IntegralNode', 'GridNode', 'MatrixNode', 'StackNode', 'CasesNode',
    'AccentNode', 'FunctionNode', 'Node', 'DISPLAY_MODE_TYPES',
]
