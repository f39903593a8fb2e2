#!/usr/bin/env python3
"""Simple example of using the Equation Markup converter"""

from equation_markup import DisplayMode, IntegralLimits, create_converter

# Create converter
converter = create_converter()
builder = converter.builder

# Build x = \frac{-b \pm \sqrt{b^2 - 4ac}}{2a} through the builder
fraction = builder.create_fraction(DisplayMode.DISPLAY)
root = builder.create_sqrt()
square = builder.create_script()
square.base.append(builder.create_text("b"))
square.superscript.append(builder.create_text("2"))
root.radicand.append(square)
root.radicand.extend(builder.create_text(char) for char in "-4ac")
fraction.numerator.extend(builder.create_text(char) for char in "-b±")
fraction.numerator.append(root)
fraction.denominator.extend(builder.create_text(char) for char in "2a")
equation = [builder.create_text("x"), builder.create_text("="), fraction]

print("Serializing the quadratic formula...")
markup = converter.to_markup(equation)
print(f"  {markup}")

# Parse it back and compare
parsed = converter.from_markup(markup)
print(f"  Parsed {len(parsed)} top-level nodes")

# An integral with a lower bound only
integral = builder.create_integral(limits=IntegralLimits.LOWER)
integral.integrand.append(builder.create_text("f"))
integral.variable.append(builder.create_text("x"))
integral.lower.append(builder.create_text("D"))
print(f"\nIntegral over a region: {converter.to_markup([integral])}")

# Derivatives in both families
derivative = converter.from_markup(r"\derivfrac{d^{2}y}{dx^{2}}")
print(f"Custom family:  {converter.to_markup(derivative)}")
print(f"Physics family: {converter.to_markup(derivative, physics_differentials=True)}")
