"""
Symbol and command tables for the equation markup dialect.

Everything the parser and serializer know about command spellings lives here:
symbols, large operators, brackets, integrals, functions, accents, formatting
and derivative commands. A ``CommandTables`` instance is immutable once built.
"""

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml

from .models import (
    AccentPosition,
    AccentType,
    DifferentialStyle,
    DisplayMode,
    IntegralType,
    LimitMode,
    MatrixType,
    NodeType,
    WrapperKind,
)


logger = logging.getLogger(__name__)


def is_command_letter(char: str) -> bool:
    """Command names are made of ASCII letters only."""
    return char.isascii() and char.isalpha()


@dataclass(frozen=True)
class SymbolInfo:
    """One symbol command and the glyph it denotes."""
    command: str
    unicode: str
    default_italic: bool = False
    category: str = "misc"
    spaced: bool = False
    large_operator: bool = False


@dataclass(frozen=True)
class IntegralCommand:
    """Decoded integral spelling: arity x style x argument count."""
    command: str
    integral_type: IntegralType
    differential_style: DifferentialStyle
    form: str
    arg_count: int
    limit_mode: LimitMode

    @property
    def has_lower(self) -> bool:
        return self.arg_count >= 3

    @property
    def has_upper(self) -> bool:
        return self.arg_count == 4


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    structure: str  # simple, functionsub, functionlim
    command: Optional[str] = None


@dataclass(frozen=True)
class AccentInfo:
    accent_type: AccentType
    command: str
    position: AccentPosition
    labeled: bool = False


# (category, default_italic, spaced) -> [(command, unicode), ...]
_SYMBOL_GROUPS: List[Tuple[str, bool, bool, List[Tuple[str, str]]]] = [
    ("greek", True, False, [
        ("\\alpha", "α"), ("\\beta", "β"), ("\\gamma", "γ"), ("\\delta", "δ"),
        ("\\epsilon", "ε"), ("\\varepsilon", "ε"), ("\\zeta", "ζ"), ("\\eta", "η"),
        ("\\theta", "θ"), ("\\vartheta", "ϑ"), ("\\iota", "ι"), ("\\kappa", "κ"),
        ("\\lambda", "λ"), ("\\mu", "μ"), ("\\nu", "ν"), ("\\xi", "ξ"),
        ("\\omicron", "ο"), ("\\pi", "π"), ("\\varpi", "ϖ"), ("\\rho", "ρ"),
        ("\\varrho", "ϱ"), ("\\sigma", "σ"), ("\\varsigma", "ς"), ("\\tau", "τ"),
        ("\\upsilon", "υ"), ("\\phi", "φ"), ("\\varphi", "φ"), ("\\chi", "χ"),
        ("\\psi", "ψ"), ("\\omega", "ω"),
    ]),
    ("greek", False, False, [
        ("\\Gamma", "Γ"), ("\\Delta", "Δ"), ("\\Theta", "Θ"), ("\\Lambda", "Λ"),
        ("\\Xi", "Ξ"), ("\\Pi", "Π"), ("\\Sigma", "Σ"), ("\\Upsilon", "Υ"),
        ("\\Phi", "Φ"), ("\\Psi", "Ψ"), ("\\Omega", "Ω"),
    ]),
    ("calculus", True, False, [
        ("\\partial", "∂"), ("\\ell", "ℓ"), ("\\hbar", "ℏ"),
    ]),
    ("calculus", False, False, [
        ("\\nabla", "∇"), ("\\infty", "∞"),
    ]),
    ("binary", False, True, [
        ("\\times", "×"), ("\\divsymbol", "÷"), ("\\pm", "±"), ("\\mp", "∓"),
        ("\\cdot", "·"), ("\\ast", "∗"), ("\\star", "⋆"), ("\\circ", "∘"),
        ("\\bullet", "•"), ("\\oplus", "⊕"), ("\\ominus", "⊖"), ("\\otimes", "⊗"),
        ("\\oslash", "⊘"), ("\\odot", "⊙"), ("\\cap", "∩"), ("\\cup", "∪"),
        ("\\setminus", "∖"), ("\\wedge", "∧"), ("\\vee", "∨"), ("\\wr", "≀"),
        ("\\triangleleft", "◁"), ("\\triangleright", "▷"),
    ]),
    ("relation", False, True, [
        ("\\neq", "≠"), ("\\ne", "≠"), ("\\sim", "∼"), ("\\simeq", "≃"),
        ("\\approx", "≈"), ("\\equiv", "≡"), ("\\cong", "≅"), ("\\ncong", "≇"),
        ("\\propto", "∝"), ("\\leq", "≤"), ("\\le", "≤"), ("\\geq", "≥"),
        ("\\ge", "≥"), ("\\nless", "≮"), ("\\ngtr", "≯"), ("\\nleq", "≰"),
        ("\\ngeq", "≱"), ("\\prec", "≺"), ("\\succ", "≻"), ("\\preceq", "⪯"),
        ("\\succeq", "⪰"), ("\\ll", "≪"), ("\\gg", "≫"), ("\\asymp", "≍"),
        ("\\triangleq", "≜"), ("\\in", "∈"), ("\\ni", "∋"), ("\\notin", "∉"),
        ("\\subset", "⊂"), ("\\supset", "⊃"), ("\\subseteq", "⊆"),
        ("\\supseteq", "⊇"), ("\\nsubseteq", "⊈"), ("\\nsupseteq", "⊉"),
        ("\\subsetneq", "⊊"), ("\\supsetneq", "⊋"), ("\\vdash", "⊢"),
        ("\\models", "⊨"), ("\\parallel", "∥"), ("\\nparallel", "∦"),
        ("\\perp", "⊥"), ("\\mid", "∣"),
    ]),
    ("arrow", False, True, [
        ("\\rightarrow", "→"), ("\\to", "→"), ("\\leftarrow", "←"),
        ("\\uparrow", "↑"), ("\\downarrow", "↓"), ("\\leftrightarrow", "↔"),
        ("\\updownarrow", "↕"), ("\\nearrow", "↗"), ("\\searrow", "↘"),
        ("\\Rightarrow", "⇒"), ("\\Leftarrow", "⇐"), ("\\Uparrow", "⇑"),
        ("\\Downarrow", "⇓"), ("\\Leftrightarrow", "⇔"), ("\\Updownarrow", "⇕"),
        ("\\longrightarrow", "⟶"), ("\\longleftarrow", "⟵"),
        ("\\longleftrightarrow", "⟷"), ("\\Longrightarrow", "⟹"),
        ("\\Longleftarrow", "⟸"), ("\\Longleftrightarrow", "⟺"),
        ("\\mapsto", "↦"), ("\\hookleftarrow", "↩"), ("\\hookrightarrow", "↪"),
        ("\\circlearrowleft", "↺"), ("\\circlearrowright", "↻"),
        ("\\curvearrowleft", "↶"), ("\\curvearrowright", "↷"),
    ]),
    ("logic", False, False, [
        ("\\forall", "∀"), ("\\exists", "∃"), ("\\nexists", "∄"), ("\\neg", "¬"),
        ("\\top", "⊤"), ("\\bot", "⊥"), ("\\therefore", "∴"), ("\\because", "∵"),
    ]),
    ("set", False, False, [
        ("\\emptyset", "∅"), ("\\varnothing", "∅"),
        ("\\mathbb{R}", "ℝ"), ("\\mathbb{Z}", "ℤ"), ("\\mathbb{Q}", "ℚ"),
        ("\\mathbb{N}", "ℕ"), ("\\mathbb{C}", "ℂ"), ("\\mathbb{H}", "ℍ"),
        ("\\mathbb{P}", "ℙ"), ("\\wp", "℘"), ("\\aleph", "ℵ"), ("\\beth", "ℶ"),
        ("\\gimel", "ℷ"), ("\\daleth", "ℸ"),
    ]),
    ("geometry", False, False, [
        ("\\angle", "∠"), ("\\measuredangle", "∡"), ("\\sphericalangle", "∢"),
        ("\\triangle", "△"), ("\\square", "□"), ("\\blacksquare", "■"),
        ("\\lozenge", "◊"), ("\\blacklozenge", "⧫"), ("\\bigcirc", "○"),
        ("\\diamond", "⋄"), ("\\bowtie", "⋈"), ("\\degree", "°"),
    ]),
    ("misc", False, False, [
        ("\\cdots", "⋯"), ("\\ldots", "…"), ("\\vdots", "⋮"), ("\\ddots", "⋱"),
        ("\\prime", "′"), ("\\backslash", "\\"), ("\\$", "$"),
    ]),
]

_LARGE_OPERATORS: List[Tuple[str, str]] = [
    ("\\sum", "∑"), ("\\prod", "∏"), ("\\coprod", "∐"),
    ("\\bigcup", "⋃"), ("\\bigcap", "⋂"), ("\\bigvee", "⋁"), ("\\bigwedge", "⋀"),
    ("\\bigoplus", "⨁"), ("\\bigotimes", "⨂"), ("\\bigodot", "⨀"),
    ("\\biguplus", "⨄"), ("\\int", "∫"), ("\\iint", "∬"), ("\\iiint", "∭"),
    ("\\oint", "∮"),
]

ASCII_OPERATORS = "+-=<>"

# glyph -> markup spelling used after \left / \right
LEFT_DELIMITERS = {
    "(": "(", "[": "[", "{": "\\{", "⟨": "\\langle", "⌊": "\\lfloor",
    "⌈": "\\lceil", "|": "|", "‖": "\\|", ".": ".",
}
RIGHT_DELIMITERS = {
    ")": ")", "]": "]", "}": "\\}", "⟩": "\\rangle", "⌋": "\\rfloor",
    "⌉": "\\rceil", "|": "|", "‖": "\\|", ".": ".",
}

# every spelling the parser accepts as a delimiter
DELIMITER_GLYPHS = {
    "(": "(", ")": ")", "[": "[", "]": "]", "|": "|", ".": ".",
    "\\{": "{", "\\}": "}", "\\lbrace": "{", "\\rbrace": "}",
    "\\langle": "⟨", "\\rangle": "⟩", "\\lfloor": "⌊", "\\rfloor": "⌋",
    "\\lceil": "⌈", "\\rceil": "⌉", "\\|": "‖", "\\vert": "|", "\\lvert": "|",
    "\\rvert": "|", "\\Vert": "‖", "\\lVert": "‖", "\\rVert": "‖",
}

BRACKET_PAIRS = {
    "(": ")", "[": "]", "{": "}", "⟨": "⟩", "⌊": "⌋", "⌈": "⌉", "|": "|",
    "‖": "‖", ".": ".",
}

# sized delimiter commands, smallest first
LEFT_SIZES = ("\\left", "\\bigl", "\\Bigl", "\\biggl", "\\Biggl")
RIGHT_SIZES = ("\\right", "\\bigr", "\\Bigr", "\\biggr", "\\Biggr")

INTEGRAL_BASES = {
    IntegralType.SINGLE: "int",
    IntegralType.DOUBLE: "iint",
    IntegralType.TRIPLE: "iiint",
    IntegralType.CONTOUR: "oint",
}

INTEGRAL_STYLES = {
    DifferentialStyle.ITALIC: "i",
    DifferentialStyle.ROMAN: "d",
}

# form suffix -> (argument count, limit mode)
INTEGRAL_FORMS = {
    "": (2, LimitMode.DEFAULT),
    "sub": (3, LimitMode.DEFAULT),
    "lower": (3, LimitMode.LIMITS),
    "l": (4, LimitMode.DEFAULT),
    "nolim": (4, LimitMode.NOLIMITS),
    "lim": (4, LimitMode.LIMITS),
}

_FUNCTIONS: List[FunctionInfo] = [
    FunctionInfo("sin", "simple", "\\sin"),
    FunctionInfo("cos", "simple", "\\cos"),
    FunctionInfo("tan", "simple", "\\tan"),
    FunctionInfo("sec", "simple", "\\sec"),
    FunctionInfo("csc", "simple", "\\csc"),
    FunctionInfo("cot", "simple", "\\cot"),
    FunctionInfo("asin", "simple", "\\arcsin"),
    FunctionInfo("acos", "simple", "\\arccos"),
    FunctionInfo("atan", "simple", "\\arctan"),
    FunctionInfo("sinh", "simple", "\\sinh"),
    FunctionInfo("cosh", "simple", "\\cosh"),
    FunctionInfo("tanh", "simple", "\\tanh"),
    FunctionInfo("asinh", "simple", "\\operatorname{arsinh}"),
    FunctionInfo("acosh", "simple", "\\operatorname{arcosh}"),
    FunctionInfo("atanh", "simple", "\\operatorname{artanh}"),
    FunctionInfo("log", "simple", "\\log"),
    FunctionInfo("logn", "functionsub", "\\log"),
    FunctionInfo("ln", "simple", "\\ln"),
    FunctionInfo("max", "functionlim", "\\max"),
    FunctionInfo("min", "functionlim", "\\min"),
    FunctionInfo("lim", "functionlim", "\\lim"),
    FunctionInfo("argmax", "functionlim", "\\operatorname*{argmax}"),
    FunctionInfo("argmin", "functionlim", "\\operatorname*{argmin}"),
    # user-defined: the name lives in the node's name slot
    FunctionInfo("function", "simple"),
    FunctionInfo("functionsub", "functionsub"),
    FunctionInfo("functionlim", "functionlim"),
]

USER_FUNCTION_TYPES = ("function", "functionsub", "functionlim")

_ACCENTS: List[AccentInfo] = [
    AccentInfo(AccentType.HAT, "\\hat", AccentPosition.OVER),
    AccentInfo(AccentType.TILDE, "\\tilde", AccentPosition.OVER),
    AccentInfo(AccentType.BAR, "\\bar", AccentPosition.OVER),
    AccentInfo(AccentType.DOT, "\\dot", AccentPosition.OVER),
    AccentInfo(AccentType.DDOT, "\\ddot", AccentPosition.OVER),
    AccentInfo(AccentType.VEC, "\\vec", AccentPosition.OVER),
    AccentInfo(AccentType.WIDEHAT, "\\widehat", AccentPosition.OVER),
    AccentInfo(AccentType.WIDETILDE, "\\widetilde", AccentPosition.OVER),
    AccentInfo(AccentType.WIDEBAR, "\\overline", AccentPosition.OVER),
    AccentInfo(AccentType.OVERRIGHTARROW, "\\overrightarrow", AccentPosition.OVER),
    AccentInfo(AccentType.OVERLEFTARROW, "\\overleftarrow", AccentPosition.OVER),
    AccentInfo(AccentType.OVERLEFTRIGHTARROW, "\\overleftrightarrow", AccentPosition.OVER),
    AccentInfo(AccentType.OVERBRACE, "\\overbrace", AccentPosition.OVER),
    AccentInfo(AccentType.UNDERBRACE, "\\underbrace", AccentPosition.UNDER),
    AccentInfo(AccentType.LABELED_OVERBRACE, "\\overbrace", AccentPosition.OVER, labeled=True),
    AccentInfo(AccentType.LABELED_UNDERBRACE, "\\underbrace", AccentPosition.UNDER, labeled=True),
    AccentInfo(AccentType.OVERPAREN, "\\overparen", AccentPosition.OVER),
    AccentInfo(AccentType.UNDERPAREN, "\\underparen", AccentPosition.UNDER),
]

# command -> (bold, italic); None leaves the attribute alone
ATTRIBUTE_COMMANDS: Dict[str, Tuple[Optional[bool], Optional[bool]]] = {
    "\\boldsymbol": (True, True),
    "\\bm": (True, True),
    "\\mathbf": (True, None),
    "\\textbf": (True, None),
    "\\mathit": (None, True),
    "\\textit": (None, True),
    "\\mathrm": (None, False),
}

WRAPPER_COMMANDS: Dict[str, WrapperKind] = {
    "\\underline": WrapperKind.UNDERLINE,
    "\\cancel": WrapperKind.CANCEL,
    "\\textcolor": WrapperKind.COLOR,
    "\\color": WrapperKind.COLOR,
    "\\text": WrapperKind.TEXT_MODE,
}

STYLE_COMMANDS = {
    "\\displaystyle": DisplayMode.DISPLAY,
    "\\textstyle": DisplayMode.INLINE,
}

FRACTION_COMMANDS: Dict[str, Optional[DisplayMode]] = {
    "\\frac": None,
    "\\dfrac": DisplayMode.DISPLAY,
    "\\tfrac": DisplayMode.INLINE,
}

# custom derivative family: command -> (display mode, long form)
CUSTOM_DERIVATIVE_COMMANDS: Dict[str, Tuple[DisplayMode, bool]] = {
    "\\derivfrac": (DisplayMode.INLINE, False),
    "\\derivdfrac": (DisplayMode.DISPLAY, False),
    "\\derivlfrac": (DisplayMode.INLINE, True),
    "\\derivldfrac": (DisplayMode.DISPLAY, True),
}

# physics family: command -> partial
PHYSICS_DERIVATIVE_COMMANDS: Dict[str, bool] = {
    "\\dv": False,
    "\\pdv": True,
}

GRANDE_COMMAND = "\\grande"

LIMIT_COMMANDS = {
    "\\limits": LimitMode.LIMITS,
    "\\nolimits": LimitMode.NOLIMITS,
}

# environment name -> (node type, matrix type)
ENVIRONMENTS: Dict[str, Tuple[NodeType, Optional[MatrixType]]] = {
    "pmatrix": (NodeType.MATRIX, MatrixType.PARENTHESES),
    "bmatrix": (NodeType.MATRIX, MatrixType.BRACKETS),
    "Bmatrix": (NodeType.MATRIX, MatrixType.BRACES),
    "vmatrix": (NodeType.MATRIX, MatrixType.BARS),
    "Vmatrix": (NodeType.MATRIX, MatrixType.DOUBLE_BARS),
    "matrix": (NodeType.MATRIX, MatrixType.PLAIN),
    "array": (NodeType.STACK, None),
    "cases": (NodeType.CASES, None),
}

# literal character -> escaped spelling
ESCAPES = {
    "{": "\\{",
    "}": "\\}",
    "#": "\\#",
    "&": "\\text{＆}",
    "%": "\\%",
    "~": "\\textasciitilde{}",
    "^": "{\\text{^}}",
    "_": "{\\_}",
}

# every escaped spelling the parser accepts
ESCAPE_SEQUENCES = {
    "\\{": "{", "\\}": "}", "\\#": "#", "\\%": "%", "\\&": "&",
    "\\text{＆}": "&", "\\textasciitilde{}": "~", "\\textasciitilde": "~",
    "{\\text{^}}": "^", "{\\_}": "_", "\\_": "_",
}

# spacing commands dropped while parsing
IGNORED_COMMANDS = ("\\,", "\\;", "\\:", "\\!", "\\quad", "\\qquad")


class TrieNode:
    __slots__ = ['children', 'is_end', 'value']

    def __init__(self):
        self.children = {}
        self.is_end = False
        self.value = None


class CommandTrie:
    """Longest-match lookup over command spellings.

    A spelling ending in a letter only matches when the next input character
    is not a letter, so ``\\sin`` never matches inside ``\\sinh``.
    """

    def __init__(self, spellings: Iterable[str]):
        self.root = TrieNode()
        self.max_length = 0
        for spelling in sorted(set(spellings), key=len, reverse=True):
            self._insert(spelling)
            self.max_length = max(self.max_length, len(spelling))

    def _insert(self, spelling: str):
        node = self.root
        for char in spelling:
            if char not in node.children:
                node.children[char] = TrieNode()
            node = node.children[char]
        node.is_end = True
        node.value = spelling

    def find_longest_match(self, text: str, start: int) -> Optional[str]:
        """Return the longest spelling at ``start`` with a valid boundary."""
        node = self.root
        candidates = []

        for i in range(start, min(len(text), start + self.max_length)):
            char = text[i]
            if char not in node.children:
                break
            node = node.children[char]
            if node.is_end:
                candidates.append(node.value)

        for spelling in reversed(candidates):
            end = start + len(spelling)
            if (is_command_letter(spelling[-1]) and end < len(text)
                    and is_command_letter(text[end])):
                continue
            return spelling
        return None


class CommandTables:
    """Immutable lookup tables shared by the parser and serializer."""

    def __init__(self, extra_symbols: Optional[Iterable[SymbolInfo]] = None):
        symbols: Dict[str, SymbolInfo] = {}
        for category, italic, spaced, entries in _SYMBOL_GROUPS:
            for command, glyph in entries:
                symbols[command] = SymbolInfo(command, glyph, italic, category, spaced)
        for info in extra_symbols or ():
            symbols[info.command] = info

        unicode_to_command: Dict[str, str] = {}
        for info in symbols.values():
            if not info.large_operator:
                unicode_to_command.setdefault(info.unicode, info.command)

        large_operators = dict(_LARGE_OPERATORS)
        large_operator_commands: Dict[str, str] = {}
        for command, glyph in _LARGE_OPERATORS:
            large_operator_commands.setdefault(glyph, command)

        operator_characters = set(ASCII_OPERATORS)
        operator_characters.update(info.unicode for info in symbols.values() if info.spaced)

        integrals: Dict[str, IntegralCommand] = {}
        integral_spellings: Dict[Tuple[IntegralType, DifferentialStyle, str], str] = {}
        for integral_type, base in INTEGRAL_BASES.items():
            for style, letter in INTEGRAL_STYLES.items():
                for form, (arg_count, limit_mode) in INTEGRAL_FORMS.items():
                    command = f"\\{base}{letter}{form}"
                    integrals[command] = IntegralCommand(
                        command, integral_type, style, form, arg_count, limit_mode
                    )
                    integral_spellings[(integral_type, style, form)] = command

        functions = {info.name: info for info in _FUNCTIONS}
        function_commands: Dict[str, str] = {}
        for info in _FUNCTIONS:
            if info.command and info.structure != "functionsub":
                function_commands.setdefault(info.command, info.name)

        accents = {info.accent_type: info for info in _ACCENTS}
        accent_commands = {
            info.command: info.accent_type for info in _ACCENTS if not info.labeled
        }

        self.symbols: Mapping[str, SymbolInfo] = MappingProxyType(symbols)
        self.command_to_unicode: Mapping[str, str] = MappingProxyType(
            {command: info.unicode for command, info in symbols.items()}
        )
        self.unicode_to_command: Mapping[str, str] = MappingProxyType(unicode_to_command)
        self.large_operators: Mapping[str, str] = MappingProxyType(large_operators)
        self.large_operator_commands: Mapping[str, str] = MappingProxyType(large_operator_commands)
        self.operator_characters = frozenset(operator_characters)
        self.integrals: Mapping[str, IntegralCommand] = MappingProxyType(integrals)
        self.integral_spellings = MappingProxyType(integral_spellings)
        self.functions: Mapping[str, FunctionInfo] = MappingProxyType(functions)
        self.function_commands: Mapping[str, str] = MappingProxyType(function_commands)
        self.accents: Mapping[AccentType, AccentInfo] = MappingProxyType(accents)
        self.accent_commands: Mapping[str, AccentType] = MappingProxyType(accent_commands)

        self.symbol_trie = CommandTrie(symbols)
        self.large_operator_trie = CommandTrie(large_operators)
        self.integral_trie = CommandTrie(integrals)
        self.function_trie = CommandTrie(
            command for command in function_commands if not command.startswith("\\operatorname")
        )
        self.accent_trie = CommandTrie(accent_commands)
        self.attribute_trie = CommandTrie(ATTRIBUTE_COMMANDS)
        self.wrapper_trie = CommandTrie(WRAPPER_COMMANDS)
        self.style_trie = CommandTrie(STYLE_COMMANDS)
        self.fraction_trie = CommandTrie(FRACTION_COMMANDS)
        self.derivative_trie = CommandTrie(
            list(CUSTOM_DERIVATIVE_COMMANDS) + list(PHYSICS_DERIVATIVE_COMMANDS)
        )
        self.delimiter_trie = CommandTrie(DELIMITER_GLYPHS)
        self.escape_trie = CommandTrie(ESCAPE_SEQUENCES)
        self.limit_trie = CommandTrie(LIMIT_COMMANDS)
        self.left_size_trie = CommandTrie(LEFT_SIZES)
        self.ignored_trie = CommandTrie(IGNORED_COMMANDS)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'CommandTables':
        """Build tables with extra symbols loaded from a YAML or JSON file.

        The file holds a ``symbols`` mapping of command to
        ``{unicode, italic, operator, category}``. Entries override built-in
        commands of the same spelling. An unreadable file leaves the defaults.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.suffix in ['.yaml', '.yml']:
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
            extra = [
                SymbolInfo(
                    command=command,
                    unicode=str(entry["unicode"]),
                    default_italic=bool(entry.get("italic", False)),
                    category=str(entry.get("category", "custom")),
                    spaced=bool(entry.get("operator", False)),
                )
                for command, entry in (data or {}).get("symbols", {}).items()
            ]
        except (OSError, ValueError, KeyError, TypeError, AttributeError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load symbol table from {path}: {e}")
            return cls()

        logger.info(f"Loaded {len(extra)} symbols from {path}")
        return cls(extra)

    # Symbols

    def symbol_for(self, command: str) -> Optional[str]:
        return self.command_to_unicode.get(command)

    def command_for(self, glyph: str) -> Optional[str]:
        return self.unicode_to_command.get(glyph)

    def is_default_italic(self, glyph: str) -> bool:
        """Whether a glyph renders slanted when no italic flag is set."""
        command = self.unicode_to_command.get(glyph)
        if command is not None:
            return self.symbols[command].default_italic
        return len(glyph) == 1 and is_command_letter(glyph)

    def is_operator(self, char: str) -> bool:
        return char in self.operator_characters

    # Large operators

    def large_operator_symbol(self, operator: str) -> Optional[str]:
        """Accept a command or a glyph; return the glyph if it is a large operator."""
        if operator in self.large_operators:
            return self.large_operators[operator]
        if operator in self.large_operator_commands:
            return operator
        return None

    def large_operator_command(self, glyph: str) -> str:
        return self.large_operator_commands[glyph]

    # Integrals

    def integral_command(self, integral_type: IntegralType, style: DifferentialStyle,
                         form: str) -> str:
        return self.integral_spellings[(integral_type, style, form)]

    # Brackets

    @staticmethod
    def delimiter_markup(glyph: str, left: bool) -> str:
        table = LEFT_DELIMITERS if left else RIGHT_DELIMITERS
        if glyph in table:
            return table[glyph]
        return (RIGHT_DELIMITERS if left else LEFT_DELIMITERS).get(glyph, glyph)

    @staticmethod
    def matching_bracket(glyph: str) -> str:
        return BRACKET_PAIRS.get(glyph, glyph)

    # Environments

    @staticmethod
    def environment_for(matrix_type: MatrixType) -> str:
        for name, (node_type, kind) in ENVIRONMENTS.items():
            if node_type is NodeType.MATRIX and kind is matrix_type:
                return name
        raise ValueError(f"No environment for matrix type {matrix_type}")


_default_tables = None
_default_tables_lock = threading.Lock()


def get_default_tables() -> CommandTables:
    global _default_tables
    if _default_tables is None:
        with _default_tables_lock:
            if _default_tables is None:
                _default_tables = CommandTables()
    return _default_tables


__all__ = [
    'SymbolInfo',
    'IntegralCommand',
    'FunctionInfo',
    'AccentInfo',
    'CommandTrie',
    'CommandTables',
    'get_default_tables',
    'is_command_letter',
    'USER_FUNCTION_TYPES',
]
