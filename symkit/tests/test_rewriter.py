"""Tests for the fixed-point simplifier."""

import logging

import pytest
from symkit import (
    E, Const, UnaryOp, BinaryOp, sqrt,
    simplify, simplify_once,
    ARITHMETIC_PRELUDE, UNARY_PRELUDE,
)
from symkit.expr import UNARY_OPS, BINARY_OPS
from symkit.rewriter import (
    flatten_addition, coefficient_and_base, recognize_perfect_square,
)


class TestFoldHandlers:
    """Tests for the constant folding preludes."""

    def test_arithmetic_prelude(self):
        """Arithmetic prelude folds the five binary operators."""
        assert ARITHMETIC_PRELUDE["+"](2, 3) == 5
        assert ARITHMETIC_PRELUDE["-"](2, 3) == -1
        assert ARITHMETIC_PRELUDE["*"](2, 3) == 6
        assert ARITHMETIC_PRELUDE["/"](3, 2) == 1.5
        assert ARITHMETIC_PRELUDE["^"](2, 3) == 8

    def test_prelude_errors(self):
        """Division by zero and complex powers raise."""
        with pytest.raises(ZeroDivisionError):
            ARITHMETIC_PRELUDE["/"](1, 0)
        with pytest.raises(ValueError):
            ARITHMETIC_PRELUDE["^"](-8, 0.5)

    def test_unary_prelude(self):
        """Unary prelude folds negation, sqrt and abs."""
        assert UNARY_PRELUDE["-"](4) == -4
        assert UNARY_PRELUDE["sqrt"](9) == 3.0
        assert UNARY_PRELUDE["abs"](-2) == 2

    def test_every_operator_has_a_handler(self):
        """Each operator tag the simplifier folds has a prelude entry."""
        assert set(ARITHMETIC_PRELUDE) == set(BINARY_OPS)
        assert set(UNARY_PRELUDE) == set(UNARY_OPS)


class TestConstantFolding:
    """Tests for folding constant subtrees."""

    def test_fold_binary(self):
        """Constant operands are folded."""
        assert simplify(E("(+ 2 3)")) == Const(5)
        assert simplify(E("(- 7 10)")) == Const(-3)
        assert simplify(E("(* 4 5)")) == Const(20)
        assert simplify(E("(^ 2 10)")) == Const(1024)
        assert simplify(E("(/ 7 2)")) == Const(3.5)

    def test_fold_nested(self):
        """Folding works through nested constant subtrees."""
        assert simplify(E("(* (+ 1 2) (- 10 4))")) == Const(18)

    def test_division_by_zero_raises(self):
        """Folding 1/0 raises ZeroDivisionError."""
        with pytest.raises(ZeroDivisionError):
            simplify(E("(/ 1 0)"))

    def test_symbolic_division_by_zero_kept(self):
        """x/0 has a symbolic numerator and is left alone."""
        x = E.var("x")
        assert simplify(x / 0) == x / 0

    def test_float_names_not_folded(self):
        """inf and nan parse as symbols, so nothing folds them into constants."""
        assert not isinstance(simplify(E("(+ inf 1)")), Const)
        assert not isinstance(simplify(E("(- nan 1)")), Const)

    def test_raw_numbers(self):
        """Raw numbers are promoted before simplifying."""
        assert simplify(5) == Const(5)


class TestIdentities:
    """Tests for the identity laws."""

    def setup_method(self):
        self.x = E.var("x")

    def test_additive(self):
        """x + 0 and 0 + x reduce to x."""
        assert simplify(self.x + 0) == self.x
        assert simplify(0 + self.x) == self.x
        assert simplify(self.x - 0) == self.x

    def test_multiplicative(self):
        """x * 1 reduces to x and x * 0 to 0."""
        assert simplify(self.x * 1) == self.x
        assert simplify(1 * self.x) == self.x
        assert simplify(self.x * 0) == Const(0)
        assert simplify(0 * self.x) == Const(0)

    def test_division_and_powers(self):
        """x / 1, x ^ 1 and x ^ 0."""
        assert simplify(self.x / 1) == self.x
        assert simplify(self.x ** 1) == self.x
        assert simplify(self.x ** 0) == Const(1)

    def test_nested_identities(self):
        """Identities apply at every depth."""
        x = self.x
        assert simplify((x + Const(0)) * (Const(1) * x)) == x * x


class TestUnaryRules:
    """Tests for negation, sqrt and abs rules."""

    def setup_method(self):
        self.x = E.var("x")

    def test_double_negation(self):
        """-(-x) is x."""
        assert simplify(-(-self.x)) == self.x

    def test_fold_negation(self):
        """Negating a constant folds it."""
        assert simplify(-Const(3)) == Const(-3)

    def test_sqrt(self):
        """sqrt folds non-negative constants and undoes squares."""
        assert simplify(sqrt(16)) == Const(4.0)
        assert simplify(sqrt(self.x ** 2)) == abs(self.x)
        assert simplify(sqrt(E("(^ 4 2)"))) == Const(4.0)

    def test_sqrt_of_negative_kept(self):
        """sqrt of a negative constant is not folded."""
        assert simplify(sqrt(-4)) == UnaryOp("sqrt", Const(-4))

    def test_abs(self):
        """abs folds constants and drops inner negation."""
        assert simplify(abs(Const(-5))) == Const(5)
        assert simplify(abs(-self.x)) == abs(self.x)


class TestDistributionAndCoefficients:
    """Tests for distribution and coefficient collection."""

    def setup_method(self):
        self.x = E.var("x")

    def test_distribute_left(self):
        """a * (b + c) distributes."""
        assert simplify(2 * (self.x + 3)) == 2 * self.x + 6

    def test_distribute_right(self):
        """(a + b) * c distributes."""
        assert simplify((self.x + 2) * 3) == self.x * 3 + 6

    def test_distribute_before_folding(self):
        """Distribution sees the unsimplified operand, so 1 + 2 is not folded first."""
        x = self.x
        result, trace = simplify(x * (Const(1) + Const(2)), trace=True)
        assert result == x + x * 2
        assert trace.steps[0].rules[0] == "distribute-left"
        assert "fold-constants" not in trace.rules_applied()

    def test_collect_coefficients(self):
        """Nested constant factors are multiplied together."""
        x = self.x
        assert simplify((2 * x) * 3) == 6 * x
        assert simplify(3 * (2 * x)) == 6 * x

    def test_distribute_then_combine(self):
        """x + 2(x + 2) becomes 3x + 4."""
        x = self.x
        assert simplify(x + 2 * (x + 2)) == 3 * x + 4


class TestLikeTerms:
    """Tests for combining like terms."""

    def setup_method(self):
        self.x, self.y = E.vars("x", "y")

    def test_x_plus_x(self):
        """x + x is 2x."""
        assert simplify(self.x + self.x) == 2 * self.x

    def test_coefficients_add(self):
        """2x + 3x is 5x."""
        x = self.x
        assert simplify(2 * x + 3 * x) == 5 * x

    def test_three_terms(self):
        """x + x + x is 3x."""
        x = self.x
        assert simplify(x + x + x) == 3 * x

    def test_unlike_terms_kept_in_order(self):
        """Groups keep the order in which they first appear."""
        x, y = self.x, self.y
        assert simplify(x + y + x) == 2 * x + y

    def test_cancellation(self):
        """Terms whose coefficients sum to zero vanish."""
        x, y = self.x, self.y
        assert simplify(x + Const(-1) * x) == Const(0)
        assert simplify(y + x + Const(-1) * x) == y

    def test_helpers(self):
        """flatten_addition and coefficient_and_base split terms."""
        x, y = self.x, self.y
        assert flatten_addition((x + y) + (2 * x)) == [x, y, 2 * x]
        assert coefficient_and_base(3 * x) == (3, x)
        assert coefficient_and_base(x * 3) == (1, x * 3)
        assert coefficient_and_base(y) == (1, y)


class TestPerfectSquare:
    """Tests for perfect square recognition."""

    def setup_method(self):
        self.x, self.y = E.vars("x", "y")

    def test_perfect_square(self):
        """x^2 + 2xy + y^2 is (x + y)^2."""
        x, y = self.x, self.y
        assert simplify(x ** 2 + 2 * x * y + y ** 2) == (x + y) ** 2

    def test_symmetric_permutation(self):
        """y^2 + 2xy + x^2 gives the same result."""
        x, y = self.x, self.y
        assert simplify(y ** 2 + 2 * x * y + x ** 2) == (x + y) ** 2

    def test_any_term_order(self):
        """The double product may come first."""
        x, y = self.x, self.y
        expr = 2 * x * y + x ** 2 + y ** 2
        assert recognize_perfect_square(expr) == (x + y) ** 2

    def test_not_a_square(self):
        """A wrong middle coefficient is not a perfect square."""
        x, y = self.x, self.y
        assert recognize_perfect_square(x ** 2 + 3 * x * y + y ** 2) is None
        assert recognize_perfect_square(x ** 2 + y ** 2) is None


class TestFixedPoint:
    """Tests for the fixed-point driver."""

    @pytest.mark.parametrize("text", [
        "(+ x 0)",
        "(+ (+ x x) x)",
        "(* 2 (+ x 3))",
        "(+ (+ (^ x 2) (* (* 2 x) y)) (^ y 2))",
        "(sqrt (^ (- x 1) 2))",
        "(/ (- (^ x 2) 1) (- x 1))",
    ])
    def test_idempotent(self, text):
        """Simplifying a simplified expression changes nothing."""
        once = simplify(E(text))
        assert simplify(once) == once

    def test_simplify_once_returns_same_object(self):
        """An unchanged tree is returned as-is."""
        expr = E("(+ x y)")
        assert simplify_once(expr) is expr

    def test_simplify_once_records_rules(self):
        """simplify_once appends fired rule names."""
        fired = []
        simplify_once(E("(* x 1)"), fired)
        assert fired == ["mul-one"]

    def test_round_limit(self, caplog):
        """Hitting max_rounds logs a warning and returns the last state."""
        x = E.var("x")
        with caplog.at_level(logging.WARNING, logger="symkit.rewriter"):
            result = simplify(x + x, max_rounds=1)
        assert result == 2 * x
        assert "without reaching a fixed point" in caplog.text

    def test_no_warning_at_fixed_point(self, caplog):
        """A normal run logs nothing."""
        with caplog.at_level(logging.WARNING, logger="symkit.rewriter"):
            simplify(E("(+ x x)"))
        assert caplog.text == ""
