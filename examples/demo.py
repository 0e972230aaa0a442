#!/usr/bin/env python3
"""
SymKit Feature Demonstration

This script walks through simplification, differentiation, evaluation
and limit analysis.
"""

from symkit import (
    E, sqrt, simplify, derivative, evaluate, limit,
    check_division_limits, describe_division_behavior, format_sexpr,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_simplification():
    """Demonstrate the fixed-point simplifier."""
    section("Simplification")

    examples = [
        "(+ x 0)",
        "(* (+ x 0) (* 1 x))",
        "(+ (* 2 x) (* 3 x))",
        "(* 2 (+ x 3))",
        "(+ (+ (^ x 2) (* (* 2 x) y)) (^ y 2))",
        "(sqrt (^ x 2))",
        "(* (+ 1 2) (- 10 4))",
    ]

    for expr_str in examples:
        result = simplify(E(expr_str))
        print(f"  {expr_str} => {format_sexpr(result)}")


def demo_tracing():
    """Demonstrate simplification traces."""
    section("Tracing")

    x = E.var("x")
    result, trace = simplify(x + 2 * (x + 2), trace=True)

    print(f"  Result: {format_sexpr(result)}")
    print(f"  Rules: {trace.format('rules')}")
    print(f"  Summary: {trace.summary()}")
    print("\n  Chain:")
    for line in trace.format("chain").splitlines():
        print(f"    {line}")


def demo_derivatives():
    """Demonstrate symbolic differentiation."""
    section("Symbolic Differentiation")

    x, y = E.vars("x", "y")

    examples = [
        (E.const(5), "constant"),
        (x ** 2 + 3 * x + 2, "polynomial"),
        (x * y, "other variable"),
        (1 / x, "quotient rule"),
        (sqrt(x), "square root"),
        (abs(x), "absolute value"),
    ]

    for expr, desc in examples:
        print(f"  d/dx[{desc}]: {format_sexpr(expr)} => {format_sexpr(derivative(expr, x))}")

    print(f"\n  d2/dx2 (^ x 3) => {format_sexpr(derivative(x ** 3, x, order=2))}")


def demo_evaluation():
    """Demonstrate substitution and folding."""
    section("Evaluation")

    x, y = E.vars("x", "y")
    poly = x ** 2 + 3 * x + 2

    for value in (0, 2, -1.5):
        print(f"  {format_sexpr(poly)} at x={value} => {format_sexpr(evaluate(poly, x, value))}")

    print(f"  (+ x y) at x=1 => {format_sexpr(evaluate(x + y, x, 1))}")


def demo_limits():
    """Demonstrate limits and singularity analysis."""
    section("Limits and Singularities")

    x = E.var("x")

    left, right = limit(1 / x, x, 0)
    print(f"  1/x at 0: left {left.format()}, right {right.format()}")

    examples = [
        1 / x,
        (x ** 2 - 1) / (x - 1),
        1 / (x ** 2 - 1),
        x ** 2 + 1,
    ]

    for expr in examples:
        print(f"\n  {format_sexpr(expr)}")
        for line in describe_division_behavior(expr, x).splitlines():
            print(f"    {line}")

    analysis = check_division_limits(1 / (x ** 2 - 1), x)
    print(f"\n  Poles of (/ 1 (- (^ x 2) 1)): {analysis.points}")


def main():
    """Run all demonstrations."""
    print("SymKit - symbolic algebra")
    print("Feature Demonstration")

    demo_simplification()
    demo_tracing()
    demo_derivatives()
    demo_evaluation()
    demo_limits()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
