import pytest
import tempfile
from pathlib import Path
from equation_markup.builder import EquationBuilder
from equation_markup.parser import MarkupParser
from equation_markup.serializer import MarkupSerializer
from equation_markup.converter import EquationConverter
from equation_markup.tables import get_default_tables


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def tables():
    """Shared default command tables."""
    return get_default_tables()


@pytest.fixture
def builder(tables):
    """Builder with a fresh id counter."""
    return EquationBuilder(tables)


@pytest.fixture
def parser(tables, builder):
    """Markup parser sharing the builder's id counter."""
    return MarkupParser(tables, builder)


@pytest.fixture
def serializer(tables):
    """Markup serializer with default configuration."""
    return MarkupSerializer(tables)


@pytest.fixture
def converter():
    """Converter with default configuration."""
    return EquationConverter()


@pytest.fixture
def sample_markup():
    """Sample markup strings for testing."""
    return {
        'simple': r'x + y = z',
        'fraction': r'\frac{a}{b}',
        'inline_fraction': r'{\textstyle \frac{1}{2}}',
        'display_fraction': r'\dfrac{1}{2}',
        'sqrt': r'\sqrt{{x}^{2} + {y}^{2}}',
        'nthroot': r'\sqrt[3]{x}',
        'matrix': r'\begin{pmatrix} a & b \\ c & d \end{pmatrix}',
        'cases': r'\begin{cases} x & x > 0 \\ -x & \text{otherwise} \end{cases}',
        'stack': r'\begin{array}{cc} 1 & 2 \end{array}',
        'greek': r'\alpha + \beta = \gamma',
        'accents': r'\hat{x} + \tilde{y} + \vec{z}',
        'sum': r'{\displaystyle \sum\limits_{i=1}^{n} {i}}',
        'integral': r'{\textstyle \intil{f}{x}{0}{1}}',
        'derivative': r'\derivfrac{d^{2}y}{dx^{2}}',
        'physics_derivative': r'\pdv[2]{f}{x}',
        'bracket': r'\left( a + b \right)',
        'evaluation': r'\left. x \right|_{0}^{1}',
        'function': r'\sin{x}',
        'limit': r'\lim_{x \rightarrow 0}{f}',
        'colored': r'\textcolor{red}{\underline{x}}',
        'unknown': r'\unknownxyz{a}',
    }
