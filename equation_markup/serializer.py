"""
Serialize equation trees to markup.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Dict, Optional, Sequence

import regex

from .config import SerializeConfig
from .models import (
    AccentNode,
    AccentType,
    BracketNode,
    DerivativeNode,
    DisplayMode,
    EquationNode,
    FractionNode,
    FunctionNode,
    GridNode,
    IntegralNode,
    LargeOperatorNode,
    LimitMode,
    MatrixNode,
    NodeType,
    NthRootNode,
    ScriptNode,
    SqrtNode,
    StackNode,
    TextNode,
    UnderlineStyle,
    WrapperKind,
)
from .tables import (
    ESCAPES,
    LEFT_SIZES,
    RIGHT_SIZES,
    USER_FUNCTION_TYPES,
    CommandTables,
    get_default_tables,
    is_command_letter,
)
from .traversal import max_bracket_depth, outer_wrappers


logger = logging.getLogger(__name__)

# text formatting attributes render in this order, innermost first
ATTRIBUTE_WRAPPER_ORDER = (
    WrapperKind.UNDERLINE, WrapperKind.CANCEL, WrapperKind.COLOR, WrapperKind.TEXT_MODE,
)

STYLE_WRAPPERS = {
    DisplayMode.DISPLAY: "\\displaystyle",
    DisplayMode.INLINE: "\\textstyle",
}

LIMIT_MODIFIERS = {
    LimitMode.DEFAULT: "",
    LimitMode.LIMITS: "\\limits",
    LimitMode.NOLIMITS: "\\nolimits",
}

EMPTY_GROUP = "{ }"


def trim_markup(markup: str) -> str:
    """Strip surrounding spaces without breaking a trailing control space."""
    markup = markup.lstrip(" ")
    while markup.endswith(" ") and not markup.endswith("\\ "):
        markup = markup[:-1]
    return markup


@dataclass
class _RenderContext:
    physics_differentials: bool
    max_depth: int
    # inside \text{}, where the parser keeps raw spaces
    text_mode: bool = False


class MarkupSerializer:
    """Turns a node sequence into markup text.

    Output is deterministic. The serializer holds no per-call state; the
    differential family and depth information travel in a render context.
    """

    def __init__(self, tables: Optional[CommandTables] = None,
                 config: Optional[SerializeConfig] = None):
        self.tables = tables or get_default_tables()
        self.config = config or SerializeConfig()
        self._spaces = regex.compile(r' {2,}')
        self._trailing_command = regex.compile(r'\\[a-zA-Z]+$')

        self._emitters: Dict[NodeType, Callable[[EquationNode, _RenderContext], str]] = {
            NodeType.FRACTION: self._emit_fraction,
            NodeType.BEVELLED_FRACTION: self._emit_bevelled_fraction,
            NodeType.SQRT: self._emit_sqrt,
            NodeType.NTHROOT: self._emit_nthroot,
            NodeType.SCRIPT: self._emit_script,
            NodeType.BRACKET: self._emit_bracket,
            NodeType.LARGE_OPERATOR: self._emit_large_operator,
            NodeType.DERIVATIVE: self._emit_derivative,
            NodeType.INTEGRAL: self._emit_integral,
            NodeType.MATRIX: self._emit_grid,
            NodeType.STACK: self._emit_grid,
            NodeType.CASES: self._emit_grid,
            NodeType.ACCENT: self._emit_accent,
            NodeType.FUNCTION: self._emit_function,
        }
        missing = set(NodeType) - set(self._emitters) - {NodeType.TEXT}
        if missing:
            raise TypeError(f"No emitter for node types: {sorted(t.value for t in missing)}")

    def serialize(self, nodes: Sequence[EquationNode],
                  physics_differentials: Optional[bool] = None) -> str:
        """Serialize a node sequence.

        Args:
            nodes: Top-level sibling list.
            physics_differentials: Override the configured derivative family
                for this call.

        Returns:
            Markup string.
        """
        if physics_differentials is None:
            physics_differentials = self.config.physics_differentials
        context = _RenderContext(
            physics_differentials=physics_differentials,
            max_depth=max_bracket_depth(nodes),
        )
        return trim_markup(self._sequence(nodes, context))

    # Sequences

    def _sequence(self, nodes: Sequence[EquationNode], context: _RenderContext) -> str:
        """Render siblings, grouping runs that share their outer wrappers.

        A wrapper kind a text node also sets as a formatting attribute is
        rendered once, by the attribute.
        """
        parts = []
        i = 0
        while i < len(nodes):
            wrappers = outer_wrappers(nodes[i])
            j = i + 1
            while j < len(nodes) and outer_wrappers(nodes[j]) == wrappers:
                j += 1
            inner = context
            if any(kind is WrapperKind.TEXT_MODE for kind, _ in wrappers):
                inner = replace(context, text_mode=True)
            body = self._plain_sequence(nodes[i:j], inner)
            for kind, param in wrappers:
                body = self._wrap(body, kind, param)
            parts.append(body)
            i = j
        return self._join(parts, context)

    def _plain_sequence(self, nodes: Sequence[EquationNode], context: _RenderContext) -> str:
        """Render siblings, merging adjacent text nodes with equal formatting."""
        parts = []
        i = 0
        while i < len(nodes):
            node = nodes[i]
            if node.node_type is NodeType.TEXT:
                signature = node.formatting_signature()
                j = i + 1
                while (j < len(nodes) and nodes[j].node_type is NodeType.TEXT
                       and nodes[j].formatting_signature() == signature):
                    j += 1
                parts.append(self._text_run(nodes[i:j], context))
                i = j
                continue
            parts.append(self._emitters[node.node_type](node, context))
            i += 1
        return self._join(parts, context)

    def _join(self, parts: Sequence[str], context: _RenderContext) -> str:
        """Concatenate rendered siblings so no command name runs into a letter."""
        separator = "{}" if context.text_mode else " "
        joined = ""
        for part in parts:
            if (part and is_command_letter(part[0])
                    and self._trailing_command.search(joined)):
                joined += separator
            joined += part
        return joined

    def _group(self, nodes: Optional[Sequence[EquationNode]], context: _RenderContext) -> str:
        body = self._sequence(nodes, context) if nodes else ""
        return "{" + body + "}" if body.strip() else EMPTY_GROUP

    def _content(self, nodes: Optional[Sequence[EquationNode]], context: _RenderContext) -> str:
        return trim_markup(self._sequence(nodes, context)) if nodes else ""

    @staticmethod
    def _optional(body: str) -> str:
        """Body of a ``[...]`` argument; square brackets inside it are braced."""
        if not body:
            return " "
        if "[" in body or "]" in body:
            return "{" + body + "}"
        return body

    # Text

    def _escape_text(self, value: str, text_mode: bool = False) -> str:
        """Escape a text value. In text mode no padding spaces are added."""
        parts = []
        for char in value:
            if char == " ":
                parts.append("\\ ")
            elif char in ESCAPES:
                parts.append(ESCAPES[char])
            elif self.tables.command_for(char):
                command = self.tables.command_for(char)
                if text_mode and is_command_letter(command[-1]):
                    parts.append(command + "{}")
                elif text_mode:
                    parts.append(command)
                elif self.tables.is_operator(char):
                    parts.append(f" {command} ")
                elif is_command_letter(command[-1]):
                    parts.append(command + " ")
                else:
                    parts.append(command)
            elif self.tables.is_operator(char) and not text_mode:
                parts.append(f" {char} ")
            else:
                parts.append(char)
        return self._spaces.sub(" ", "".join(parts))

    def _text_run(self, run: Sequence[TextNode], context: _RenderContext) -> str:
        value = "".join(node.value for node in run)
        if not value:
            return ""
        first = run[0]
        body = self._escape_text(value, context.text_mode or first.text_mode)

        if first.bold and first.italic is True:
            if value.isdigit():
                body = f"\\textit{{\\textbf{{{body}}}}}"
            else:
                body = f"\\boldsymbol{{{body}}}"
        elif first.bold and first.italic is False:
            body = f"\\mathbf{{\\mathrm{{{body}}}}}"
        elif first.bold:
            body = f"\\mathbf{{{body}}}"
        elif first.italic is True:
            body = f"\\mathit{{{body}}}"
        elif first.italic is False:
            body = f"\\mathrm{{{body}}}"

        attributes = {
            WrapperKind.UNDERLINE: first.underline,
            WrapperKind.CANCEL: first.strikethrough or None,
            WrapperKind.COLOR: first.color,
            WrapperKind.TEXT_MODE: first.text_mode or None,
        }
        for kind in ATTRIBUTE_WRAPPER_ORDER:
            if attributes[kind] is not None:
                body = self._wrap(body, kind, attributes[kind])
        return body

    def _wrap(self, body: str, kind: WrapperKind, param) -> str:
        body = trim_markup(body)
        if kind is WrapperKind.UNDERLINE:
            if param is UnderlineStyle.DOUBLE:
                return f"\\underline{{\\underline{{{body}}}}}"
            return f"\\underline{{{body}}}"
        if kind is WrapperKind.CANCEL:
            return f"\\cancel{{{body}}}"
        if kind is WrapperKind.COLOR:
            return f"\\textcolor{{{param}}}{{{body}}}"
        return f"\\text{{{body}}}"

    @staticmethod
    def _styled(body: str, display_mode: Optional[DisplayMode]) -> str:
        if display_mode is None:
            return body
        return f"{{{STYLE_WRAPPERS[display_mode]} {body}}}"

    # Structural emitters

    def _emit_fraction(self, node: FractionNode, context: _RenderContext) -> str:
        numerator = self._group(node.numerator, context)
        denominator = self._group(node.denominator, context)
        if node.display_mode is DisplayMode.DISPLAY:
            return f"\\dfrac{numerator}{denominator}"
        body = f"\\frac{numerator}{denominator}"
        return self._styled(body, node.display_mode)

    def _emit_bevelled_fraction(self, node: FractionNode, context: _RenderContext) -> str:
        body = f"{self._group(node.numerator, context)}/{self._group(node.denominator, context)}"
        return self._styled(body, node.display_mode)

    def _emit_sqrt(self, node: SqrtNode, context: _RenderContext) -> str:
        return f"\\sqrt{self._group(node.radicand, context)}"

    def _emit_nthroot(self, node: NthRootNode, context: _RenderContext) -> str:
        index = self._optional(self._content(node.index, context))
        return f"\\sqrt[{index}]{self._group(node.radicand, context)}"

    def _emit_script(self, node: ScriptNode, context: _RenderContext) -> str:
        markup = self._group(node.base, context)
        if node.superscript is not None:
            markup += "^" + self._group(node.superscript, context)
        if node.subscript is not None:
            markup += "_" + self._group(node.subscript, context)
        return markup

    def _bracket_commands(self, node: BracketNode, context: _RenderContext):
        if self.config.bracket_sizing == "depth" and context.max_depth >= 0:
            level = min(context.max_depth - node.nesting_depth, len(LEFT_SIZES) - 2) + 1
            level = max(level, 1)
            return LEFT_SIZES[level], RIGHT_SIZES[level]
        return LEFT_SIZES[0], RIGHT_SIZES[0]

    def _emit_bracket(self, node: BracketNode, context: _RenderContext) -> str:
        left_command, right_command = self._bracket_commands(node, context)
        left = self.tables.delimiter_markup(node.left, left=True)
        right = self.tables.delimiter_markup(node.right, left=False)
        content = self._content(node.content, context)
        markup = f"{left_command}{left} {content} {right_command}{right}"
        if node.subscript is not None:
            markup += "_" + self._group(node.subscript, context)
        if node.superscript is not None:
            markup += "^" + self._group(node.superscript, context)
        return markup

    def _emit_large_operator(self, node: LargeOperatorNode, context: _RenderContext) -> str:
        command = self.tables.large_operator_command(node.operator)
        body = (
            f"{command}{LIMIT_MODIFIERS[node.limit_mode]}"
            f"_{self._group(node.lower, context)}^{self._group(node.upper, context)}"
            f" {self._group(node.operand, context)}"
        )
        return self._styled(body, node.display_mode)

    def _integral_form(self, node: IntegralNode) -> str:
        if node.lower is None and node.upper is None:
            return ""
        if node.upper is None:
            return "lower" if node.limit_mode is LimitMode.LIMITS else "sub"
        return {
            LimitMode.DEFAULT: "l",
            LimitMode.NOLIMITS: "nolim",
            LimitMode.LIMITS: "lim",
        }[node.limit_mode]

    def _emit_integral(self, node: IntegralNode, context: _RenderContext) -> str:
        form = self._integral_form(node)
        command = self.tables.integral_command(node.integral_type, node.differential_style, form)
        args = [node.integrand, node.variable]
        if form:
            args.append(node.lower)
        if form in ("l", "nolim", "lim"):
            args.append(node.upper)
        body = command + "".join(self._group(arg, context) for arg in args)
        return self._styled(body, node.display_mode)

    def _order_markup(self, node: DerivativeNode, context: _RenderContext) -> str:
        if isinstance(node.order, list):
            return self._content(node.order, context) or " "
        return str(node.order)

    def _emit_derivative(self, node: DerivativeNode, context: _RenderContext) -> str:
        if context.physics_differentials:
            return self._physics_derivative(node, context)
        return self._custom_derivative(node, context)

    def _custom_derivative(self, node: DerivativeNode, context: _RenderContext) -> str:
        differential = "\\partial " if node.partial else "d"
        order = "" if node.order == 1 else f"^{{{self._order_markup(node, context)}}}"
        function = self._content(node.function, context) or " "
        variable = self._content(node.variable, context) or " "
        display = node.display_mode is DisplayMode.DISPLAY

        if node.long_form:
            command = "\\derivldfrac" if display else "\\derivlfrac"
            return (f"{command}{{{differential}{order}}}{{{differential}{variable}{order}}}"
                    f"{{{function}}}")
        command = "\\derivdfrac" if display else "\\derivfrac"
        return f"{command}{{{differential}{order}{function}}}{{{differential}{variable}{order}}}"

    def _physics_derivative(self, node: DerivativeNode, context: _RenderContext) -> str:
        command = "\\pdv" if node.partial else "\\dv"
        if node.order != 1:
            command += f"[{self._optional(self._order_markup(node, context))}]"
        variable = self._group(node.variable, context)
        function = self._group(node.function, context)
        if node.long_form:
            body = f"{command}{variable}\\grande{function}"
        else:
            body = f"{command}{function}{variable}"
        if node.display_mode is DisplayMode.DISPLAY:
            return self._styled(body, DisplayMode.DISPLAY)
        return body

    def _emit_grid(self, node: GridNode, context: _RenderContext) -> str:
        if isinstance(node, MatrixNode):
            environment = self.tables.environment_for(node.matrix_type)
            begin = f"\\begin{{{environment}}}"
        elif isinstance(node, StackNode):
            environment = "array"
            begin = f"\\begin{{array}}{{{'c' * node.cols}}}"
        else:
            environment = "cases"
            begin = "\\begin{cases}"

        rows = []
        for row in range(node.rows):
            cells = [self._content(node.cells.get((row, col)), context)
                     for col in range(node.cols)]
            rows.append(" & ".join(cells))
        body = " \\\\ ".join(rows)
        return f"{begin} {body} \\end{{{environment}}}"

    def _emit_accent(self, node: AccentNode, context: _RenderContext) -> str:
        info = self.tables.accents[node.accent_type]
        markup = info.command + self._group(node.base, context)
        if info.labeled:
            marker = "^" if node.accent_type is AccentType.LABELED_OVERBRACE else "_"
            markup += marker + self._group(node.label, context)
        return markup

    def _emit_function(self, node: FunctionNode, context: _RenderContext) -> str:
        info = self.tables.functions[node.function_type]
        if node.function_type in USER_FUNCTION_TYPES:
            name = self._content(node.name, context) or " "
            star = "*" if info.structure == "functionlim" else ""
            command = f"\\operatorname{star}{{{name}}}"
        else:
            command = info.command

        if info.structure == "functionsub":
            command += "_" + self._group(node.base, context)
        elif info.structure == "functionlim":
            command += "_" + self._group(node.constraint, context)
        return command + self._group(node.argument, context)


__all__ = ['MarkupSerializer']
