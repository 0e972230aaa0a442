"""Tests for symbolic differentiation."""

import pytest
from symkit import E, Const, UnaryOp, BinaryOp, sqrt, derivative


class TestBasicRules:
    """Tests for constants, variables, sums and products."""

    def setup_method(self):
        self.x, self.y = E.vars("x", "y")

    def test_constant(self):
        """The derivative of a constant is 0."""
        assert derivative(Const(5), self.x) == Const(0)
        assert derivative(5, self.x) == Const(0)

    def test_variable(self):
        """dx/dx = 1, dy/dx = 0."""
        assert derivative(self.x, self.x) == Const(1)
        assert derivative(self.y, self.x) == Const(0)

    def test_polynomial(self):
        """d/dx (x^2 + 3x + 2) = 2x + 3."""
        x = self.x
        assert derivative(x ** 2 + 3 * x + 2, x) == 2 * x + 3

    def test_product_rule(self):
        """d/dx (x * x) = 2x."""
        x = self.x
        assert derivative(x * x, x) == 2 * x

    def test_other_variable_as_constant(self):
        """d/dx (x * y) = y."""
        assert derivative(self.x * self.y, self.x) == self.y

    def test_variable_by_name(self):
        """The variable can be given as a string."""
        x = self.x
        assert derivative(x ** 2, "x") == 2 * x

    def test_negation(self):
        """d/dx (-x) = -1."""
        assert derivative(-self.x, self.x) == Const(-1)


class TestQuotientAndPower:
    """Tests for quotient and power rules."""

    def setup_method(self):
        self.x = E.var("x")

    def test_power_rule(self):
        """d/dx x^3 = 3x^2."""
        x = self.x
        assert derivative(x ** 3, x) == 3 * x ** 2

    def test_quotient_rule(self):
        """d/dx 1/x = -1 / x^2."""
        x = self.x
        assert derivative(1 / x, x) == Const(-1) / x ** 2

    def test_sqrt(self):
        """d/dx sqrt(x) = 1 / (2 sqrt(x))."""
        x = self.x
        result = derivative(sqrt(x), x)
        assert result.op == "/"
        assert result == 1 / (2 * sqrt(x))

    def test_abs(self):
        """d/dx |x| = x / |x|."""
        x = self.x
        result = derivative(abs(x), x)
        assert result.op == "/"
        assert result == x / abs(x)


class TestHigherOrder:
    """Tests for repeated differentiation."""

    def setup_method(self):
        self.x = E.var("x")

    def test_second_derivative(self):
        """d2/dx2 x^3 = 6x."""
        assert derivative(self.x ** 3, self.x, order=2) == 6 * self.x

    def test_order_past_degree(self):
        """Differentiating a polynomial past its degree gives 0."""
        x = self.x
        assert derivative(x ** 2 + x, x, order=3) == Const(0)

    def test_invalid_order(self):
        """Order below 1 raises ValueError."""
        with pytest.raises(ValueError):
            derivative(self.x, self.x, order=0)


class TestUnknownOperators:
    """Unknown operator tags are internal errors."""

    def test_unknown_unary(self):
        """A hand-built node with an unknown unary tag raises."""
        with pytest.raises(ValueError, match="Unknown unary operator"):
            derivative(UnaryOp("sin", E.var("x")), "x")

    def test_unknown_binary(self):
        """A hand-built node with an unknown binary tag raises."""
        with pytest.raises(ValueError, match="Unknown binary operator"):
            derivative(BinaryOp("%", E.var("x"), Const(2)), "x")
