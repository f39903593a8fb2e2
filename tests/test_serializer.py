import pytest
from equation_markup.config import SerializeConfig
from equation_markup.serializer import MarkupSerializer, trim_markup
from equation_markup.models import (
    AccentType, DifferentialStyle, DisplayMode, IntegralLimits, IntegralType,
    LimitMode, MatrixType, UnderlineStyle, WrapperKind,
)


def texts(builder, value):
    """One text node per character."""
    return [builder.create_text(char) for char in value]


class TestText:

    def test_plain(self, serializer, builder):
        """Test letters pass through and operators are spaced."""
        assert serializer.serialize(texts(builder, "x+y=z")) == "x + y = z"

    def test_symbols(self, serializer, builder):
        """Test glyphs become commands with a separating space."""
        assert serializer.serialize(texts(builder, "αx")) == "\\alpha x"
        assert serializer.serialize(texts(builder, "a≤b")) == "a \\leq b"
        assert serializer.serialize(texts(builder, "α")) == "\\alpha"

    def test_escapes(self, serializer, builder):
        """Test reserved characters are escaped."""
        assert serializer.serialize(texts(builder, "{#}")) == "\\{\\#\\}"
        assert serializer.serialize(texts(builder, "&")) == "\\text{＆}"
        assert serializer.serialize(texts(builder, "a_")) == "a{\\_}"

    def test_spaces(self, serializer, builder):
        """Test literal spaces become control spaces."""
        assert serializer.serialize(texts(builder, "a b")) == "a\\ b"
        assert serializer.serialize(texts(builder, "a ")) == "a\\ "

    def test_empty(self, serializer, builder):
        """Test empty input serializes to an empty string."""
        assert serializer.serialize([]) == ""
        assert serializer.serialize([builder.create_text("")]) == ""

    def test_attribute_formatting(self, serializer, builder):
        """Test bold and italic attributes pick their commands."""
        assert serializer.serialize([builder.create_text("x", bold=True)]) == "\\mathbf{x}"
        assert serializer.serialize([builder.create_text("x", bold=True, italic=True)]) == "\\boldsymbol{x}"
        assert serializer.serialize([builder.create_text("1", bold=True, italic=True)]) == "\\textit{\\textbf{1}}"
        assert serializer.serialize([builder.create_text("x", bold=True, italic=False)]) == "\\mathbf{\\mathrm{x}}"
        assert serializer.serialize([builder.create_text("d", italic=False)]) == "\\mathrm{d}"
        assert serializer.serialize([builder.create_text("2", italic=True)]) == "\\mathit{2}"

    def test_attribute_wrappers(self, serializer, builder):
        """Test text attributes nest in a fixed order."""
        node = builder.create_text("x", underline=UnderlineStyle.DOUBLE, strikethrough=True, color="red")
        assert serializer.serialize([node]) == "\\textcolor{red}{\\cancel{\\underline{\\underline{x}}}}"

    def test_text_mode(self, serializer, builder):
        """Test text mode keeps operators unpadded and braces letter commands."""
        run = [builder.create_text(char, text_mode=True) for char in "a+α"]
        assert serializer.serialize(run) == "\\text{a+\\alpha{}}"

    def test_runs_split_on_formatting(self, serializer, builder):
        """Test a formatting change starts a new run."""
        nodes = [builder.create_text("a", bold=True), builder.create_text("b", bold=True),
                 builder.create_text("c")]
        assert serializer.serialize(nodes) == "\\mathbf{ab}c"

    def test_attribute_and_wrapper_underline(self, serializer, builder):
        """Test an underline set both ways renders once."""
        node = builder.create_text("x", underline=UnderlineStyle.SINGLE)
        builder.apply_wrapper(node, WrapperKind.UNDERLINE)
        builder.apply_wrapper(node, WrapperKind.COLOR, "c")
        assert serializer.serialize([node]) == "\\textcolor{c}{\\underline{x}}"


class TestWrappers:

    def test_order_preserved(self, serializer, builder):
        """Test the first applied wrapper is innermost."""
        node = builder.create_text("x")
        builder.apply_wrapper(node, WrapperKind.UNDERLINE)
        builder.apply_wrapper(node, WrapperKind.COLOR, "c")
        assert serializer.serialize([node]) == "\\textcolor{c}{\\underline{x}}"

    def test_reversed_order(self, serializer, builder):
        """Test reversing application order reverses nesting."""
        node = builder.create_text("x")
        builder.apply_wrapper(node, WrapperKind.COLOR, "c")
        builder.apply_wrapper(node, WrapperKind.UNDERLINE)
        assert serializer.serialize([node]) == "\\underline{\\textcolor{c}{x}}"

    def test_shared_wrappers_group(self, serializer, builder):
        """Test siblings with equal wrappers share one wrapper."""
        nodes = [builder.create_text("a"), builder.create_fraction(), builder.create_text("b")]
        for node in nodes[:2]:
            builder.apply_wrapper(node, WrapperKind.CANCEL)
        assert serializer.serialize(nodes) == "\\cancel{a\\frac{ }{ }}b"

    def test_double_underline_wrapper(self, serializer, builder):
        """Test a double underline wrapper nests two underlines."""
        node = builder.create_sqrt()
        builder.apply_wrapper(node, WrapperKind.UNDERLINE, UnderlineStyle.DOUBLE)
        assert serializer.serialize([node]) == "\\underline{\\underline{\\sqrt{ }}}"


class TestEmitters:

    def test_fractions(self, serializer, builder):
        """Test fraction display modes."""
        node = builder.create_fraction(DisplayMode.INLINE)
        node.numerator.append(builder.create_text("1"))
        node.denominator.append(builder.create_text("2"))
        assert serializer.serialize([node]) == "{\\textstyle \\frac{1}{2}}"
        node.display_mode = DisplayMode.DISPLAY
        assert serializer.serialize([node]) == "\\dfrac{1}{2}"
        node.display_mode = None
        assert serializer.serialize([node]) == "\\frac{1}{2}"

    def test_bevelled(self, serializer, builder):
        """Test bevelled fractions use a slash between groups."""
        node = builder.create_bevelled_fraction()
        node.numerator.append(builder.create_text("a"))
        assert serializer.serialize([node]) == "{a}/{ }"

    def test_roots(self, serializer, builder):
        """Test square and nth roots."""
        node = builder.create_nthroot()
        node.index.append(builder.create_text("3"))
        node.radicand.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\sqrt[3]{x}"
        assert serializer.serialize([builder.create_sqrt()]) == "\\sqrt{ }"

    def test_root_index_with_brackets(self, serializer, builder):
        """Test square brackets in an index are braced."""
        node = builder.create_nthroot()
        node.index.append(builder.create_text("]"))
        node.radicand.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\sqrt[{]}]{x}"

    def test_script(self, serializer, builder):
        """Test scripts always brace their base."""
        node = builder.create_script(has_superscript=True, has_subscript=True)
        node.base.append(builder.create_text("x"))
        node.superscript.append(builder.create_text("2"))
        assert serializer.serialize([node]) == "{x}^{2}_{ }"

    def test_bracket(self, serializer, builder):
        """Test brackets use uniform left/right sizing by default."""
        node = builder.create_bracket("⟨")
        node.content.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\left\\langle x \\right\\rangle"

    def test_bracket_before_letter(self, serializer, builder):
        """Test a right delimiter command is separated from a following letter."""
        node = builder.create_bracket("⌊")
        node.content.append(builder.create_text("x"))
        assert serializer.serialize([node, builder.create_text("y")]) == \
            "\\left\\lfloor x \\right\\rfloor y"
        wrapped = [node, builder.create_text("y")]
        for item in wrapped:
            builder.apply_wrapper(item, WrapperKind.TEXT_MODE)
        assert serializer.serialize(wrapped) == \
            "\\text{\\left\\lfloor x \\right\\rfloor{}y}"

    def test_evaluation_bracket(self, serializer, builder):
        """Test evaluation bounds follow the bracket."""
        node = builder.create_evaluation_bracket()
        node.content.append(builder.create_text("F"))
        node.subscript.append(builder.create_text("a"))
        node.superscript.append(builder.create_text("b"))
        assert serializer.serialize([node]) == "\\left. F \\right|_{a}^{b}"

    def test_depth_sizing(self, builder):
        """Test the depth policy sizes outer brackets larger."""
        serializer = MarkupSerializer(config=SerializeConfig(bracket_sizing="depth"))
        outer = builder.create_bracket("(")
        inner = builder.create_bracket("[")
        outer.content.append(inner)
        builder.recompute_bracket_nesting([outer])
        assert serializer.serialize([outer]) == "\\Bigl( \\bigl[  \\bigr] \\Bigr)"

    def test_large_operator(self, serializer, builder):
        """Test large operators always carry style and both bounds."""
        node = builder.create_large_operator("\\sum", limit_mode=LimitMode.LIMITS)
        node.lower.append(builder.create_text("i"))
        node.operand.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "{\\textstyle \\sum\\limits_{i}^{ } {x}}"

    def test_integral_forms(self, serializer, builder):
        """Test the integral command follows type, style and bounds."""
        node = builder.create_integral(IntegralType.DOUBLE, DifferentialStyle.ROMAN)
        assert serializer.serialize([node]) == "{\\textstyle \\iintd{ }{ }}"

        node = builder.create_integral(limits=IntegralLimits.LOWER)
        assert serializer.serialize([node]) == "{\\textstyle \\intisub{ }{ }{ }}"

        node = builder.create_integral(limits=IntegralLimits.LOWER, limit_mode=LimitMode.LIMITS)
        assert serializer.serialize([node]).startswith("{\\textstyle \\intilower{")

        node = builder.create_integral(IntegralType.CONTOUR, limits=IntegralLimits.BOTH,
                                       limit_mode=LimitMode.NOLIMITS,
                                       display_mode=DisplayMode.DISPLAY)
        assert serializer.serialize([node]) == "{\\displaystyle \\ointinolim{ }{ }{ }{ }}"

    def test_upper_only_integral(self, serializer, builder):
        """Test an upper-only integral uses the full form with an empty lower bound."""
        node = builder.create_integral()
        node.upper = [builder.create_text("b")]
        assert serializer.serialize([node]) == "{\\textstyle \\intil{ }{ }{ }{b}}"

    def test_custom_derivative(self, serializer, builder):
        """Test the custom derivative family."""
        node = builder.create_derivative(order=2)
        node.function.append(builder.create_text("y"))
        node.variable.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\derivfrac{d^{2}y}{dx^{2}}"

        node.partial = True
        node.long_form = True
        node.display_mode = DisplayMode.DISPLAY
        assert serializer.serialize([node]) == "\\derivldfrac{\\partial ^{2}}{\\partial x^{2}}{y}"

    def test_physics_derivative(self, builder):
        """Test the physics derivative family."""
        serializer = MarkupSerializer(config=SerializeConfig(physics_differentials=True))
        node = builder.create_derivative()
        node.function.append(builder.create_text("f"))
        node.variable.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\dv{f}{x}"

        node.order = 3
        node.long_form = True
        node.partial = True
        node.display_mode = DisplayMode.DISPLAY
        assert serializer.serialize([node]) == "{\\displaystyle \\pdv[3]{x}\\grande{f}}"

    def test_family_override(self, serializer, builder):
        """Test the derivative family can be chosen per call."""
        node = builder.create_derivative()
        assert serializer.serialize([node], physics_differentials=True) == "\\dv{ }{ }"
        assert serializer.serialize([node]) == "\\derivfrac{d }{d }"

    def test_grids(self, serializer, builder):
        """Test matrices, stacks and cases."""
        node = builder.create_matrix(2, 2, MatrixType.BRACKETS)
        for (row, col), cell in node.cells.items():
            cell.append(builder.create_text(str(row * 2 + col)))
        assert serializer.serialize([node]) == "\\begin{bmatrix} 0 & 1 \\\\ 2 & 3 \\end{bmatrix}"

        node = builder.create_stack(1, 2)
        assert serializer.serialize([node]) == "\\begin{array}{cc}  &  \\end{array}"

        node = builder.create_cases(1, 2)
        node.cell(0, 0).append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\begin{cases} x &  \\end{cases}"

    def test_accents(self, serializer, builder):
        """Test accents and labeled braces."""
        node = builder.create_accent(AccentType.WIDEBAR)
        node.base.append(builder.create_text("z"))
        assert serializer.serialize([node]) == "\\overline{z}"

        node = builder.create_accent(AccentType.LABELED_UNDERBRACE)
        node.label.append(builder.create_text("n"))
        assert serializer.serialize([node]) == "\\underbrace{ }_{n}"

    def test_functions(self, serializer, builder):
        """Test function spellings by structure."""
        node = builder.create_function("sin")
        node.argument.append(builder.create_text("x"))
        assert serializer.serialize([node]) == "\\sin{x}"

        node = builder.create_function("logn")
        node.base.append(builder.create_text("2"))
        assert serializer.serialize([node]) == "\\log_{2}{ }"

        node = builder.create_function("asinh")
        assert serializer.serialize([node]) == "\\operatorname{arsinh}{ }"

        node = builder.create_function("argmin")
        assert serializer.serialize([node]) == "\\operatorname*{argmin}_{ }{ }"

        node = builder.create_function("functionlim")
        node.name.extend(texts(builder, "sup"))
        assert serializer.serialize([node]) == "\\operatorname*{sup}_{ }{ }"


def test_trim_markup():
    """Test trimming keeps a trailing control space intact."""
    assert trim_markup("  a b  ") == "a b"
    assert trim_markup("a\\ ") == "a\\ "
    assert trim_markup("a\\  ") == "a\\ "


def test_config_validation():
    """Test an unknown sizing policy is rejected."""
    with pytest.raises(ValueError):
        SerializeConfig(bracket_sizing="huge")
