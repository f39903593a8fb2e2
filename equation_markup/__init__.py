"""
Equation Markup

An editable equation tree with a bidirectional converter to and from a
LaTeX-subset markup language.
"""

__version__ = "0.1.0"
__author__ = "Equation Markup Team"

# Tree model
from .models import (
    NodeType,
    DisplayMode,
    LimitMode,
    IntegralType,
    IntegralLimits,
    DifferentialStyle,
    UnderlineStyle,
    WrapperKind,
    MatrixType,
    AccentType,
    AccentPosition,
    EquationNode,
    TextNode,
    FractionNode,
    BevelledFractionNode,
    SqrtNode,
    NthRootNode,
    ScriptNode,
    BracketNode,
    LargeOperatorNode,
    DerivativeNode,
    IntegralNode,
    MatrixNode,
    StackNode,
    CasesNode,
    AccentNode,
    FunctionNode,
)

# Configuration classes
from .config import (
    ConverterConfig,
    ParseConfig,
    SerializeConfig,
)

# Core components
from .tables import CommandTables, get_default_tables
from .builder import EquationBuilder, TreeMutationError
from .traversal import walk, canonical_form, equivalent
from .parser import MarkupParser
from .serializer import MarkupSerializer
from .rendering import BaseRenderer, RenderResult, typesetting_delimiters

# Main converter
from .converter import EquationConverter

__all__ = [
    # Version
    "__version__",

    # Models
    "NodeType",
    "DisplayMode",
    "LimitMode",
    "IntegralType",
    "IntegralLimits",
    "DifferentialStyle",
    "UnderlineStyle",
    "WrapperKind",
    "MatrixType",
    "AccentType",
    "AccentPosition",
    "EquationNode",
    "TextNode",
    "FractionNode",
    "BevelledFractionNode",
    "SqrtNode",
    "NthRootNode",
    "ScriptNode",
    "BracketNode",
    "LargeOperatorNode",
    "DerivativeNode",
    "IntegralNode",
    "MatrixNode",
    "StackNode",
    "CasesNode",
    "AccentNode",
    "FunctionNode",

    # Configurations
    "ConverterConfig",
    "ParseConfig",
    "SerializeConfig",

    # Core components
    "CommandTables",
    "get_default_tables",
    "EquationBuilder",
    "TreeMutationError",
    "walk",
    "canonical_form",
    "equivalent",
    "MarkupParser",
    "MarkupSerializer",
    "BaseRenderer",
    "RenderResult",
    "typesetting_delimiters",

    # Main converter
    "EquationConverter",
]


# Convenience function
def create_converter(**kwargs):
    """Create a configured equation converter instance."""
    config = ConverterConfig(**kwargs)
    return EquationConverter(config)
