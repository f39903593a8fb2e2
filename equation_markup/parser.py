"""
Recursive-descent parser for the equation markup dialect.

Parsing never fails: anything the parser does not understand is kept as
literal text and an unterminated group simply ends with the input.
"""

import logging
from typing import List, Optional, Tuple

import regex

from .builder import EquationBuilder
from .config import ParseConfig
from .models import (
    DISPLAY_MODE_TYPES,
    AccentType,
    DisplayMode,
    EquationNode,
    IntegralLimits,
    NodeType,
    ScriptNode,
    TextNode,
    UnderlineStyle,
    WrapperKind,
)
from .tables import (
    ATTRIBUTE_COMMANDS,
    CUSTOM_DERIVATIVE_COMMANDS,
    DELIMITER_GLYPHS,
    ENVIRONMENTS,
    ESCAPE_SEQUENCES,
    FRACTION_COMMANDS,
    GRANDE_COMMAND,
    LIMIT_COMMANDS,
    PHYSICS_DERIVATIVE_COMMANDS,
    STYLE_COMMANDS,
    WRAPPER_COMMANDS,
    CommandTables,
    get_default_tables,
)
from .traversal import recompute_bracket_nesting, walk


logger = logging.getLogger(__name__)


class MarkupParser:
    """Turns markup text into a node sequence.

    Handlers are tried in a fixed order at every position: style wrappers,
    derivatives, fractions and roots, environments, large operators,
    integrals, functions, escapes, formatting, accents, symbols, and finally
    the structural fallbacks (scripts, brackets, spacing, groups).
    """

    def __init__(self, tables: Optional[CommandTables] = None,
                 builder: Optional[EquationBuilder] = None,
                 config: Optional[ParseConfig] = None):
        if tables is None:
            tables = builder.tables if builder else get_default_tables()
        self.tables = tables
        self.builder = builder or EquationBuilder(tables)
        self.config = config or ParseConfig()
        self.command_pattern = regex.compile(r'\\([a-zA-Z]+|.)', regex.DOTALL)
        self.environment_pattern = regex.compile(r'\\begin\s*\{([a-zA-Z]+)\}')
        self.nesting_pattern = regex.compile(r'\\(begin|end)(?![a-zA-Z])')
        self.sized_pattern = regex.compile(
            r'\\(left|right|bigl|bigr|Bigl|Bigr|biggl|biggr|Biggl|Biggr)(?![a-zA-Z])'
        )
        self.operatorname_pattern = regex.compile(r'\\operatorname(\*?)(?![a-zA-Z])')
        self.sqrt_pattern = regex.compile(r'\\sqrt(?![a-zA-Z])')
        self.grande_pattern = regex.compile(r'\s*' + regex.escape(GRANDE_COMMAND) + r'(?![a-zA-Z])')
        self.differential_pattern = regex.compile(r'\s*(\\partial(?![a-zA-Z])|d)')
        self.order_pattern = regex.compile(r'^\s*([1-9][0-9]*)\s*$')

        self._handlers = [
            self._parse_style,
            self._parse_derivative,
            self._parse_fraction,
            self._parse_root,
            self._parse_environment,
            self._parse_large_operator,
            self._parse_integral,
            self._parse_function,
            self._parse_escape,
            self._parse_formatting,
            self._parse_accent,
            self._parse_symbol,
            self._parse_script,
            self._parse_bracket,
            self._parse_spacing,
            self._parse_group,
        ]

    def parse(self, text: str) -> List[EquationNode]:
        """Parse markup into a node sequence.

        Args:
            text: Markup string.

        Returns:
            Top-level sibling list with bracket depths assigned.
        """
        if not text:
            return []
        nodes = self._parse_sequence(text)
        if self.config.recompute_nesting:
            recompute_bracket_nesting(nodes)
        return nodes

    def _parse_sequence(self, text: str, keep_spaces: bool = False) -> List[EquationNode]:
        result = []
        pos = 0
        while pos < len(text):
            if keep_spaces and text[pos].isspace():
                result.append(self._text(" "))
                pos += 1
                continue
            pos = self._parse_item(text, pos, result)
        return result

    def _parse_item(self, text: str, pos: int, result: List[EquationNode]) -> int:
        """Parse one construct at ``pos`` into ``result``; return the next position."""
        char = text[pos]
        if char.isspace():
            return pos + 1

        for handler in self._handlers:
            end = handler(text, pos, result)
            if end is not None:
                return end

        if char == "\\":
            match = self.command_pattern.match(text, pos)
            if match:
                logger.debug(f"Unrecognized command {match.group(0)} kept as literal text")
        result.append(self._text(char))
        return pos + 1

    # Low-level readers

    def _text(self, value: str) -> TextNode:
        return self.builder.create_text(value)

    @staticmethod
    def _skip_spaces(text: str, pos: int) -> int:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        return pos

    @staticmethod
    def _read_group(text: str, pos: int) -> Tuple[str, int]:
        """Read the balanced ``{...}`` group opening at ``pos``."""
        depth = 0
        i = pos
        while i < len(text):
            char = text[i]
            if char == "\\":
                i += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[pos + 1:i], i + 1
            i += 1
        return text[pos + 1:], len(text)

    def _read_optional(self, text: str, pos: int) -> Tuple[Optional[str], int]:
        """Read a balanced ``[...]`` argument, or return None if there is none."""
        start = self._skip_spaces(text, pos)
        if start >= len(text) or text[start] != "[":
            return None, pos

        depth = 0
        i = start
        while i < len(text):
            char = text[i]
            if char == "\\":
                i += 2
                continue
            if char == "{":
                _, i = self._read_group(text, i)
                continue
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    return text[start + 1:i], i + 1
            i += 1
        return text[start + 1:], len(text)

    def _read_argument(self, text: str, pos: int) -> Tuple[str, int]:
        """Read one argument: a group, a single command or a single character."""
        pos = self._skip_spaces(text, pos)
        if pos >= len(text):
            return "", pos
        if text[pos] == "{":
            return self._read_group(text, pos)
        if text[pos] == "\\":
            match = self.command_pattern.match(text, pos)
            if match:
                return match.group(0), match.end()
        return text[pos], pos + 1

    def _peek(self, text: str, pos: int) -> Tuple[str, int]:
        """Next non-space character and its position."""
        pos = self._skip_spaces(text, pos)
        return (text[pos] if pos < len(text) else ""), pos

    # Style wrappers

    def _apply_display_mode(self, nodes: List[EquationNode], mode: DisplayMode):
        if len(nodes) == 1 and nodes[0].node_type in DISPLAY_MODE_TYPES:
            nodes[0].display_mode = mode
        else:
            logger.debug(f"Dropped {mode.value} style around {len(nodes)} nodes")

    def _parse_style(self, text, pos, result):
        if text[pos] == "{":
            inner = self._skip_spaces(text, pos + 1)
            command = self.tables.style_trie.find_longest_match(text, inner)
            if command is None:
                return None
            content, end = self._read_group(text, pos)
            nodes = self._parse_sequence(content[inner - pos - 1 + len(command):])
        else:
            command = self.tables.style_trie.find_longest_match(text, pos)
            if command is None:
                return None
            nodes = []
            end = self._skip_spaces(text, pos + len(command))
            if end < len(text):
                end = self._parse_item(text, end, nodes)

        self._apply_display_mode(nodes, STYLE_COMMANDS[command])
        result.extend(nodes)
        return end

    # Derivatives

    def _parse_order(self, order_text: Optional[str]):
        if order_text is None:
            return 1
        match = self.order_pattern.match(order_text)
        if match:
            return int(match.group(1))
        return self._parse_sequence(order_text)

    def _parse_derivative(self, text, pos, result):
        command = self.tables.derivative_trie.find_longest_match(text, pos)
        if command is None:
            return None
        end = pos + len(command)
        if command in PHYSICS_DERIVATIVE_COMMANDS:
            return self._physics_derivative(text, end, command, result)
        return self._custom_derivative(text, end, command, result)

    def _physics_derivative(self, text, end, command, result):
        node = self.builder.create_derivative(partial=PHYSICS_DERIVATIVE_COMMANDS[command])
        order_text, end = self._read_optional(text, end)
        node.order = self._parse_order(order_text)
        first, end = self._read_argument(text, end)

        grande = self.grande_pattern.match(text, end)
        next_char, after = self._peek(text, end)
        if grande:
            function, end = self._read_argument(text, grande.end())
            node.long_form = True
            node.variable = self._parse_sequence(first)
            node.function = self._parse_sequence(function)
        elif next_char == "{":
            second, end = self._read_group(text, after)
            node.function = self._parse_sequence(first)
            node.variable = self._parse_sequence(second)
        else:
            node.long_form = True
            node.variable = self._parse_sequence(first)

        result.append(node)
        return end

    def _split_differential(self, markup: str):
        """Split ``d^{n}rest`` into (partial, order text, rest), or None."""
        match = self.differential_pattern.match(markup)
        if not match:
            return None
        partial = match.group(1) != "d"
        i = self._skip_spaces(markup, match.end())
        order_text = None
        if i < len(markup) and markup[i] == "^":
            order_text, i = self._read_argument(markup, i + 1)
        return partial, order_text, markup[i:]

    def _match_derivative(self, numerator: str, denominator: str, function: Optional[str],
                          display_mode: DisplayMode, long_form: bool):
        top = self._split_differential(numerator)
        bottom = self._split_differential(denominator)
        if top is None or bottom is None or top[0] != bottom[0]:
            return None
        partial, order_text, rest = top
        if long_form and rest.strip():
            return None

        variable = bottom[2]
        if order_text is not None:
            suffix = f"^{{{order_text}}}"
            stripped = variable.rstrip()
            if stripped.endswith(suffix):
                variable = stripped[:-len(suffix)]

        node = self.builder.create_derivative(long_form=long_form, partial=partial,
                                              display_mode=display_mode)
        node.order = self._parse_order(order_text)
        node.function = self._parse_sequence(function if long_form else rest)
        node.variable = self._parse_sequence(variable)
        return node

    def _custom_derivative(self, text, end, command, result):
        display_mode, long_form = CUSTOM_DERIVATIVE_COMMANDS[command]
        numerator, end = self._read_argument(text, end)
        denominator, end = self._read_argument(text, end)
        function = None
        if long_form:
            function, end = self._read_argument(text, end)

        node = self._match_derivative(numerator, denominator, function, display_mode, long_form)
        if node is not None:
            result.append(node)
            return end

        logger.warning(f"{command} arguments are not differentials; kept as a fraction")
        fraction = self.builder.create_fraction(display_mode)
        fraction.numerator = self._parse_sequence(numerator)
        fraction.denominator = self._parse_sequence(denominator)
        result.append(fraction)
        if function is not None:
            result.extend(self._parse_sequence(function))
        return end

    # Fractions and roots

    def _parse_fraction(self, text, pos, result):
        command = self.tables.fraction_trie.find_longest_match(text, pos)
        if command is None:
            return None
        numerator, end = self._read_argument(text, pos + len(command))
        denominator, end = self._read_argument(text, end)
        node = self.builder.create_fraction(FRACTION_COMMANDS[command])
        node.numerator = self._parse_sequence(numerator)
        node.denominator = self._parse_sequence(denominator)
        result.append(node)
        return end

    def _parse_root(self, text, pos, result):
        match = self.sqrt_pattern.match(text, pos)
        if not match:
            return None
        index, end = self._read_optional(text, match.end())
        radicand, end = self._read_argument(text, end)
        if index is None:
            node = self.builder.create_sqrt()
        else:
            node = self.builder.create_nthroot()
            node.index = self._parse_sequence(index)
        node.radicand = self._parse_sequence(radicand)
        result.append(node)
        return end

    # Environments

    def _read_environment_body(self, text: str, start: int, name: str) -> Tuple[str, int]:
        pattern = regex.compile(r'\\(begin|end)\s*\{' + regex.escape(name) + r'\}')
        depth = 1
        for match in pattern.finditer(text, start):
            if match.group(1) == "begin":
                depth += 1
                continue
            depth -= 1
            if depth == 0:
                return text[start:match.start()], match.end()
        return text[start:], len(text)

    def _split_rows(self, body: str) -> List[List[str]]:
        """Split an environment body on top-level ``\\\\`` and ``&``."""
        rows = [[]]
        cell_start = 0
        depth = 0
        i = 0
        while i < len(body):
            char = body[i]
            if char == "\\":
                if body.startswith("\\\\", i) and depth == 0:
                    rows[-1].append(body[cell_start:i])
                    rows.append([])
                    i += 2
                    cell_start = i
                    continue
                match = self.nesting_pattern.match(body, i)
                if match:
                    depth += 1 if match.group(1) == "begin" else -1
                    i = match.end()
                    continue
                i += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            elif char == "&" and depth == 0:
                rows[-1].append(body[cell_start:i])
                cell_start = i + 1
            i += 1
        rows[-1].append(body[cell_start:])
        return rows

    def _parse_environment(self, text, pos, result):
        match = self.environment_pattern.match(text, pos)
        if not match or match.group(1) not in ENVIRONMENTS:
            return None
        name = match.group(1)
        node_type, matrix_type = ENVIRONMENTS[name]
        body_start = match.end()

        column_count = 0
        if node_type is NodeType.STACK:
            next_char, start = self._peek(text, body_start)
            if next_char == "{":
                spec, body_start = self._read_group(text, start)
                column_count = sum(1 for char in spec if char in "lcr")

        body, end = self._read_environment_body(text, body_start, name)
        rows = self._split_rows(body)
        cols = max([column_count] + [len(row) for row in rows])

        if node_type is NodeType.MATRIX:
            node = self.builder.create_matrix(len(rows), cols, matrix_type)
        elif node_type is NodeType.STACK:
            node = self.builder.create_stack(len(rows), cols)
        else:
            node = self.builder.create_cases(len(rows), cols)

        for row, cells in enumerate(rows):
            for col, cell in enumerate(cells):
                node.cells[(row, col)] = self._parse_sequence(cell)
        result.append(node)
        return end

    # Large operators and integrals

    def _parse_large_operator(self, text, pos, result):
        command = self.tables.large_operator_trie.find_longest_match(text, pos)
        if command is None:
            return None
        node = self.builder.create_large_operator(command)
        end = pos + len(command)

        _, start = self._peek(text, end)
        modifier = self.tables.limit_trie.find_longest_match(text, start)
        if modifier is not None:
            node.limit_mode = LIMIT_COMMANDS[modifier]
            end = start + len(modifier)

        seen = set()
        while True:
            marker, start = self._peek(text, end)
            if marker not in ("_", "^") or marker in seen:
                break
            seen.add(marker)
            content, end = self._read_argument(text, start + 1)
            if marker == "_":
                node.lower = self._parse_sequence(content)
            else:
                node.upper = self._parse_sequence(content)

        next_char, start = self._peek(text, end)
        if next_char == "{":
            operand, end = self._read_group(text, start)
            node.operand = self._parse_sequence(operand)
        result.append(node)
        return end

    def _parse_integral(self, text, pos, result):
        command = self.tables.integral_trie.find_longest_match(text, pos)
        if command is None:
            return None
        info = self.tables.integrals[command]
        if info.has_upper:
            limits = IntegralLimits.BOTH
        elif info.has_lower:
            limits = IntegralLimits.LOWER
        else:
            limits = IntegralLimits.NONE

        node = self.builder.create_integral(info.integral_type, info.differential_style,
                                            limits=limits, limit_mode=info.limit_mode)
        args = []
        end = pos + len(command)
        for _ in range(info.arg_count):
            content, end = self._read_argument(text, end)
            args.append(self._parse_sequence(content))

        node.integrand, node.variable = args[0], args[1]
        if info.has_lower:
            node.lower = args[2]
        if info.has_upper:
            node.upper = args[3]
        result.append(node)
        return end

    # Functions

    def _parse_function(self, text, pos, result):
        match = self.operatorname_pattern.match(text, pos)
        if match:
            name, end = self._read_argument(text, match.end())
            builtin = self.tables.function_commands.get(f"{match.group(0)}{{{name.strip()}}}")
            if builtin:
                node = self.builder.create_function(builtin)
            else:
                marker, _ = self._peek(text, end)
                if match.group(1):
                    function_type = "functionlim"
                elif marker == "_":
                    function_type = "functionsub"
                else:
                    function_type = "function"
                node = self.builder.create_function(function_type)
                node.name = self._parse_sequence(name)
        else:
            command = self.tables.function_trie.find_longest_match(text, pos)
            if command is None:
                return None
            end = pos + len(command)
            function_type = self.tables.function_commands[command]
            if function_type == "log" and self._peek(text, end)[0] == "_":
                function_type = "logn"
            node = self.builder.create_function(function_type)

        structure = self.tables.functions[node.function_type].structure
        marker, start = self._peek(text, end)
        if structure != "simple" and marker == "_":
            content, end = self._read_argument(text, start + 1)
            if structure == "functionsub":
                node.base = self._parse_sequence(content)
            else:
                node.constraint = self._parse_sequence(content)

        next_char, start = self._peek(text, end)
        if next_char == "{":
            argument, end = self._read_group(text, start)
            node.argument = self._parse_sequence(argument)
        result.append(node)
        return end

    # Escapes, formatting and accents

    def _parse_escape(self, text, pos, result):
        if text[pos] not in "\\{":
            return None
        sequence = self.tables.escape_trie.find_longest_match(text, pos)
        if sequence is None:
            return None
        result.append(self._text(ESCAPE_SEQUENCES[sequence]))
        return pos + len(sequence)

    def _add_wrapper(self, node: EquationNode, kind: WrapperKind, param):
        if kind is WrapperKind.UNDERLINE:
            current = node.wrappers.get(WrapperKind.UNDERLINE)
            if (current is UnderlineStyle.SINGLE and node.wrapper_order
                    and node.wrapper_order[-1] is WrapperKind.UNDERLINE):
                node.wrappers[WrapperKind.UNDERLINE] = UnderlineStyle.DOUBLE
                return
            if current is not None:
                return
            param = UnderlineStyle.SINGLE
        self.builder.apply_wrapper(node, kind, param)

    def _parse_formatting(self, text, pos, result):
        command = self.tables.attribute_trie.find_longest_match(text, pos)
        if command is not None:
            content, end = self._read_argument(text, pos + len(command))
            nodes = self._parse_sequence(content)
            bold, italic = ATTRIBUTE_COMMANDS[command]
            for node in walk(nodes):
                if node.node_type is not NodeType.TEXT:
                    continue
                if bold:
                    node.bold = True
                if italic is not None and node.italic is None:
                    node.italic = italic
            result.extend(nodes)
            return end

        command = self.tables.wrapper_trie.find_longest_match(text, pos)
        if command is None:
            return None
        kind = WRAPPER_COMMANDS[command]
        end = pos + len(command)
        param = None
        if kind is WrapperKind.COLOR:
            color, end = self._read_argument(text, end)
            param = color.strip()

        content, end = self._read_argument(text, end)
        nodes = self._parse_sequence(content, keep_spaces=kind is WrapperKind.TEXT_MODE)

        if kind is WrapperKind.COLOR and not param:
            logger.debug(f"{command} without a color value; wrapper dropped")
        else:
            for node in nodes:
                self._add_wrapper(node, kind, param)
        result.extend(nodes)
        return end

    def _parse_accent(self, text, pos, result):
        command = self.tables.accent_trie.find_longest_match(text, pos)
        if command is None:
            return None
        accent_type = self.tables.accent_commands[command]
        base, end = self._read_argument(text, pos + len(command))

        marker, start = self._peek(text, end)
        if accent_type is AccentType.OVERBRACE and marker == "^":
            accent_type = AccentType.LABELED_OVERBRACE
        elif accent_type is AccentType.UNDERBRACE and marker == "_":
            accent_type = AccentType.LABELED_UNDERBRACE

        node = self.builder.create_accent(accent_type)
        node.base = self._parse_sequence(base)
        if node.label is not None:
            label, end = self._read_argument(text, start + 1)
            node.label = self._parse_sequence(label)
        result.append(node)
        return end

    def _parse_symbol(self, text, pos, result):
        command = self.tables.symbol_trie.find_longest_match(text, pos)
        if command is None:
            return None
        result.append(self._text(self.tables.symbol_for(command)))
        return pos + len(command)

    # Structural fallbacks

    def _attach_script(self, result: List[EquationNode], marker: str, nodes: List[EquationNode]):
        slot = "superscript" if marker == "^" else "subscript"
        last = result[-1] if result else None
        if isinstance(last, ScriptNode) and getattr(last, slot) is None:
            setattr(last, slot, nodes)
            return
        script = self.builder.create_script(has_superscript=marker == "^",
                                            has_subscript=marker == "_")
        if last is not None:
            script.base = [result.pop()]
        setattr(script, slot, nodes)
        result.append(script)

    def _parse_script(self, text, pos, result):
        marker = text[pos]
        if marker not in "^_":
            return None
        content, end = self._read_argument(text, pos + 1)
        self._attach_script(result, marker, self._parse_sequence(content))
        return end

    def _read_delimiter(self, text: str, pos: int) -> Tuple[str, int]:
        pos = self._skip_spaces(text, pos)
        if pos >= len(text):
            return ".", pos
        spelling = self.tables.delimiter_trie.find_longest_match(text, pos)
        if spelling is not None:
            return DELIMITER_GLYPHS[spelling], pos + len(spelling)
        if text[pos] in "\\{}":
            return ".", pos
        return text[pos], pos + 1

    def _find_closing(self, text: str, start: int) -> Optional[Tuple[int, int]]:
        depth = 1
        for match in self.sized_pattern.finditer(text, start):
            name = match.group(1)
            if name == "left" or name.endswith("l"):
                depth += 1
                continue
            depth -= 1
            if depth == 0:
                return match.start(), match.end()
        return None

    def _parse_bracket(self, text, pos, result):
        size = self.tables.left_size_trie.find_longest_match(text, pos)
        if size is None:
            return None
        left, start = self._read_delimiter(text, pos + len(size))

        closing = self._find_closing(text, start)
        if closing is None:
            logger.debug(f"{size} without a closing delimiter; closed at end of input")
            content, right, end = text[start:], ".", len(text)
        else:
            content = text[start:closing[0]]
            right, end = self._read_delimiter(text, closing[1])

        node = self.builder.create_bracket(left, right)
        node.content = self._parse_sequence(content)

        while True:
            marker, start = self._peek(text, end)
            if marker == "_" and node.subscript is None:
                bound, end = self._read_argument(text, start + 1)
                node.subscript = self._parse_sequence(bound)
            elif marker == "^" and node.superscript is None:
                bound, end = self._read_argument(text, start + 1)
                node.superscript = self._parse_sequence(bound)
            else:
                break
        result.append(node)
        return end

    def _parse_spacing(self, text, pos, result):
        if text.startswith("\\ ", pos):
            result.append(self._text(" "))
            return pos + 2
        command = self.tables.ignored_trie.find_longest_match(text, pos)
        if command is None:
            return None
        return pos + len(command)

    def _parse_group(self, text, pos, result):
        if text[pos] != "{":
            return None
        content, end = self._read_group(text, pos)
        # an empty group only separates a command name from what follows
        if not content:
            return end
        nodes = self._parse_sequence(content)

        marker, start = self._peek(text, end)
        if marker in ("^", "_"):
            script = self.builder.create_script(has_superscript=marker == "^",
                                                has_subscript=marker == "_")
            script.base = nodes
            filled = set()
            while marker in ("^", "_"):
                slot = "superscript" if marker == "^" else "subscript"
                if slot in filled:
                    break
                bound, end = self._read_argument(text, start + 1)
                setattr(script, slot, self._parse_sequence(bound))
                filled.add(slot)
                marker, start = self._peek(text, end)
            result.append(script)
            return end

        if marker == "/":
            next_char, after = self._peek(text, start + 1)
            if next_char == "{":
                denominator, end = self._read_group(text, after)
                node = self.builder.create_bevelled_fraction()
                node.numerator = nodes
                node.denominator = self._parse_sequence(denominator)
                result.append(node)
                return end

        result.extend(nodes)
        return end


__all__ = ['MarkupParser']
