import pytest
from equation_markup.builder import EquationBuilder, TreeMutationError
from equation_markup.models import (
    AccentPosition, AccentType, DisplayMode, IntegralLimits, LimitMode,
    MatrixType, NodeType, UnderlineStyle, WrapperKind,
)


class TestFactories:

    def test_ids_are_monotonic(self, builder):
        """Test every factory call gets a fresh, increasing id."""
        ids = [builder.create_text("x").id, builder.create_fraction().id, builder.create_sqrt().id]
        assert ids == sorted(ids)
        assert len(set(ids)) == 3

    def test_builders_have_separate_counters(self):
        """Test two builders count independently."""
        first, second = EquationBuilder(), EquationBuilder()
        assert first.create_text().id == second.create_text().id == 1

    def test_create_text(self, builder):
        """Test text nodes accept formatting keywords."""
        node = builder.create_text("x", bold=True, color="red")
        assert node.node_type is NodeType.TEXT
        assert node.value == "x"
        assert node.bold
        assert node.color == "red"
        assert node.italic is None

    def test_create_script(self, builder):
        """Test script slots exist only when requested."""
        node = builder.create_script()
        assert node.superscript == []
        assert node.subscript is None

        node = builder.create_script(has_superscript=False, has_subscript=True)
        assert node.superscript is None
        assert node.subscript == []

        with pytest.raises(ValueError):
            builder.create_script(has_superscript=False, has_subscript=False)

    def test_create_bracket(self, builder):
        """Test brackets default to the matching right delimiter."""
        assert builder.create_bracket("[").right == "]"
        assert builder.create_bracket("(", "]").right == "]"
        node = builder.create_bracket()
        assert (node.left, node.right) == ("(", ")")
        assert node.superscript is None

    def test_create_evaluation_bracket(self, builder):
        """Test evaluation brackets carry bound slots."""
        node = builder.create_evaluation_bracket()
        assert (node.left, node.right) == (".", "|")
        assert node.subscript == [] and node.superscript == []

        node = builder.create_evaluation_bracket("square")
        assert (node.left, node.right) == ("[", "]")

        with pytest.raises(ValueError):
            builder.create_evaluation_bracket("round")

    def test_create_large_operator(self, builder):
        """Test large operators accept commands or glyphs."""
        assert builder.create_large_operator("\\prod").operator == "∏"
        node = builder.create_large_operator("∑", display_mode=DisplayMode.DISPLAY)
        assert node.display_mode is DisplayMode.DISPLAY
        assert node.limit_mode is LimitMode.DEFAULT

        with pytest.raises(ValueError):
            builder.create_large_operator("x")

    def test_create_derivative(self, builder):
        """Test derivative order validation."""
        assert builder.create_derivative(order=3).order == 3
        with pytest.raises(ValueError):
            builder.create_derivative(order=0)

    def test_create_integral_limits(self, builder):
        """Test integral bound slots follow the requested limits."""
        node = builder.create_integral()
        assert node.lower is None and node.upper is None

        node = builder.create_integral(limits=IntegralLimits.LOWER)
        assert node.lower == [] and node.upper is None

        node = builder.create_integral(limits=IntegralLimits.BOTH, limit_mode=LimitMode.NOLIMITS)
        assert node.lower == [] and node.upper == []
        assert node.limit_mode is LimitMode.NOLIMITS

    def test_create_integral_folds_limit_modes(self, builder):
        """Test placement modes without a matching spelling fold to default."""
        node = builder.create_integral(limits=IntegralLimits.NONE, limit_mode=LimitMode.LIMITS)
        assert node.limit_mode is LimitMode.DEFAULT

        node = builder.create_integral(limits=IntegralLimits.LOWER, limit_mode=LimitMode.NOLIMITS)
        assert node.limit_mode is LimitMode.DEFAULT

        node = builder.create_integral(limits=IntegralLimits.LOWER, limit_mode=LimitMode.LIMITS)
        assert node.limit_mode is LimitMode.LIMITS

    def test_create_grids(self, builder):
        """Test grids get a full cell map."""
        node = builder.create_matrix(2, 3, MatrixType.BRACKETS)
        assert len(node.cells) == 6
        assert node.cell(1, 2) == []
        assert node.matrix_type is MatrixType.BRACKETS

        assert builder.create_stack(3).cols == 1
        assert builder.create_cases().cols == 2

        with pytest.raises(ValueError):
            builder.create_matrix(0, 2)
        with pytest.raises(ValueError):
            builder.create_stack(1, 0)

    def test_create_accent(self, builder):
        """Test accent position and label slot come from the tables."""
        node = builder.create_accent(AccentType.UNDERBRACE)
        assert node.position is AccentPosition.UNDER
        assert node.label is None

        node = builder.create_accent(AccentType.LABELED_OVERBRACE)
        assert node.label == []

    def test_create_function(self, builder):
        """Test function types are validated."""
        assert builder.create_function("lim").function_type == "lim"
        with pytest.raises(ValueError):
            builder.create_function("sine")


class TestMutation:

    def test_insert(self, builder):
        """Test insert accepts every position up to the slot length."""
        slot = [builder.create_text("a")]
        builder.insert(builder.create_text("b"), slot, 1)
        builder.insert(builder.create_text("c"), slot, 0)
        assert [node.value for node in slot] == ["c", "a", "b"]

    def test_insert_out_of_range(self, builder):
        """Test insert past the end raises."""
        slot = []
        with pytest.raises(TreeMutationError):
            builder.insert(builder.create_text("a"), slot, 1)
        with pytest.raises(TreeMutationError):
            builder.insert(builder.create_text("a"), slot, -1)

    def test_remove(self, builder):
        """Test remove returns the removed node."""
        node = builder.create_text("a")
        slot = [node]
        assert builder.remove(slot, 0) is node
        assert slot == []

    def test_remove_out_of_range(self, builder):
        """Test removing from an empty slot raises an IndexError subclass."""
        with pytest.raises(IndexError):
            builder.remove([], 0)

    def test_insert_into_nested_slot(self, builder):
        """Test nodes can be placed into child slots and found by id."""
        fraction = builder.create_fraction()
        text = builder.create_text("1")
        builder.insert(text, fraction.numerator, 0)
        assert builder.find_by_id([fraction], text.id) is text
        assert builder.find_by_id([fraction], 9999) is None


class TestWrappers:

    def test_apply_wrapper_order(self, builder):
        """Test wrappers record their application order."""
        node = builder.create_text("x")
        builder.apply_wrapper(node, WrapperKind.UNDERLINE)
        builder.apply_wrapper(node, WrapperKind.COLOR, "red")
        assert node.wrapper_order == [WrapperKind.UNDERLINE, WrapperKind.COLOR]
        assert node.wrappers[WrapperKind.UNDERLINE] is UnderlineStyle.SINGLE

    def test_reapply_keeps_position(self, builder):
        """Test re-applying a kind only updates its parameter."""
        node = builder.create_text("x")
        builder.apply_wrapper(node, WrapperKind.COLOR, "red")
        builder.apply_wrapper(node, WrapperKind.CANCEL)
        builder.apply_wrapper(node, WrapperKind.COLOR, "blue")
        assert node.wrapper_order == [WrapperKind.COLOR, WrapperKind.CANCEL]
        assert node.wrappers[WrapperKind.COLOR] == "blue"

    def test_color_needs_value(self, builder):
        """Test a color wrapper without a color raises."""
        with pytest.raises(ValueError):
            builder.apply_wrapper(builder.create_text("x"), WrapperKind.COLOR)

    def test_wrapper_parameters_checked(self, builder):
        """Test wrappers reject parameters they cannot render."""
        node = builder.create_text("x")
        with pytest.raises(ValueError):
            builder.apply_wrapper(node, WrapperKind.UNDERLINE, "blue")
        with pytest.raises(ValueError):
            builder.apply_wrapper(node, WrapperKind.CANCEL, "blue")
        with pytest.raises(ValueError):
            builder.apply_wrapper(node, WrapperKind.TEXT_MODE, True)
        assert node.wrappers == {}
        assert node.wrapper_order == []

    def test_remove_wrapper(self, builder):
        """Test removing a wrapper clears both the set and the order."""
        node = builder.create_fraction()
        builder.apply_wrapper(node, WrapperKind.CANCEL)
        builder.remove_wrapper(node, WrapperKind.CANCEL)
        builder.remove_wrapper(node, WrapperKind.TEXT_MODE)
        assert node.wrappers == {}
        assert node.wrapper_order == []
