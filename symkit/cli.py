#!/usr/bin/env python3
"""
SymKit Command-Line Interface

Provides interactive REPL, script execution, and pipe/filter modes.

Usage:
    symkit                              # Start REPL
    symkit script.sym                   # Run script
    symkit -e "(+ x x)"                 # Simplify expression
    symkit -e ":diff x (^ x 3)"         # One-shot command
    echo "(* x 1)" | symkit             # Filter mode

Script Format (.sym files):
    #!/usr/bin/env symkit
    :trace on

    (+ (^ x 2) (+ (* 2 (* x y)) (^ y 2)))
    :diff x (+ (^ x 2) (* 3 x))
    :analyze x (/ 1 (- (^ x 2) 1))

REPL Commands:
    :help                              Show help
    :trace on|off                      Toggle tracing
    :json on|off                       Toggle JSON output
    :diff VAR EXPR                     Differentiate
    :eval VAR VALUE EXPR               Substitute and evaluate
    :limit VAR POINT [left|right|both] EXPR
                                       One-sided or two-sided limit
    :analyze VAR EXPR                  Behaviour at division singularities
    :singularities EXPR                List denominators
    :quit                              Exit
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .expr import NumericType, format_sexpr, parse_sexpr
from .rewriter import simplify
from .differentiate import derivative
from .evaluate import evaluate
from .limits import DIRECTIONS, limit, find_singularities, check_division_limits, describe_division_behavior

logger = logging.getLogger(__name__)

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

# Commands that change session state; script mode does not echo them
SETTING_COMMANDS = ("trace", "json")


def parse_number(text: str) -> NumericType:
    """Parse an int or float literal, raising ValueError otherwise."""
    try:
        return int(text)
    except ValueError:
        try:
            return float(text)
        except ValueError:
            raise ValueError(f"Not a number: {text}") from None


def split_args(arg: str, count: int, usage: str) -> List[str]:
    """
    Split a command argument into count-1 words and a trailing expression.

    Raises:
        ValueError: With the usage line when too few parts are given
    """
    parts = arg.split(None, count - 1)
    if len(parts) < count:
        raise ValueError(f"Usage: {usage}")
    return parts


class SymkitCompleter:
    """Tab completer for SymKit REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":trace", ":json",
        ":diff", ":eval", ":limit", ":analyze", ":singularities",
    ]

    TOGGLE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'SymkitREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        """Get list of matches for the current input."""
        line = line.lstrip()

        if line.startswith(":trace ") or line.startswith(":json "):
            return [t for t in self.TOGGLE_OPTIONS if t.startswith(text)]

        # :limit VAR POINT <direction>
        if line.startswith(":limit "):
            words = line.split()
            position = len(words) if not text else len(words) - 1
            if position == 3:
                return [d for d in DIRECTIONS if d.startswith(text)]
            return []

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        return []


def count_parens(text: str) -> int:
    """Count unbalanced parentheses. Returns >0 if more open than close."""
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
    return depth


class SymkitREPL:
    """Interactive REPL for symkit."""

    def __init__(self):
        self.trace = False
        self.json_output = False
        self.running = True
        # Set when the last processed line failed
        self.failed = False
        self.multi_line_buffer = ""

        # Set up readline history and completion
        if HAS_READLINE:
            self.history_file = Path.home() / ".symkit_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = SymkitCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")

            # Don't break on colons for commands
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("Could not save history to %s: %s", self.history_file, e)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None. Failures come back as
        "Error: ..." messages rather than exceptions and set self.failed.
        """
        self.failed = False
        parts = line[1:].split(None, 1)
        if not parts:
            return self._fail("Unknown command. Type :help for help.")

        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd == "quit" or cmd == "exit" or cmd == "q":
            self.running = False
            return None

        elif cmd == "trace":
            self.trace = self._toggle(arg, self.trace)
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "json":
            self.json_output = self._toggle(arg, self.json_output)
            return f"JSON output {'enabled' if self.json_output else 'disabled'}"

        handler = {
            "diff": self.cmd_diff,
            "eval": self.cmd_eval,
            "limit": self.cmd_limit,
            "analyze": self.cmd_analyze,
            "singularities": self.cmd_singularities,
        }.get(cmd)
        if handler is None:
            return self._fail(f"Unknown command: {cmd}. Type :help for help.")

        try:
            return handler(arg)
        except (ArithmeticError, TypeError, ValueError) as e:
            return self._fail(f"Error: {e}")

    @staticmethod
    def _toggle(arg: str, current: bool) -> bool:
        if arg.lower() in ("on", "true", "1"):
            return True
        if arg.lower() in ("off", "false", "0"):
            return False
        return not current

    def _fail(self, message: str) -> str:
        self.failed = True
        return message

    # ------------------------------------------------------------
    # Analysis commands
    # ------------------------------------------------------------

    def cmd_diff(self, arg: str) -> str:
        var, text = split_args(arg, 2, ":diff VAR EXPR")
        expr = parse_sexpr(text)
        result = derivative(expr, var)
        if self.json_output:
            return json.dumps({"input": format_sexpr(expr), "var": var,
                               "derivative": format_sexpr(result)})
        return format_sexpr(result)

    def cmd_eval(self, arg: str) -> str:
        var, value, text = split_args(arg, 3, ":eval VAR VALUE EXPR")
        expr = parse_sexpr(text)
        result = evaluate(expr, var, parse_number(value))
        if self.json_output:
            return json.dumps({"input": format_sexpr(expr), "var": var,
                               "value": parse_number(value),
                               "result": format_sexpr(result)})
        return format_sexpr(result)

    def cmd_limit(self, arg: str) -> str:
        var, point, rest = split_args(arg, 3, ":limit VAR POINT [left|right|both] EXPR")
        direction, text = self._split_direction(rest)
        expr = parse_sexpr(text)
        result = limit(expr, var, parse_number(point), direction)

        if direction == "both":
            left, right = result
            if self.json_output:
                return json.dumps({"left": left.to_dict(), "right": right.to_dict()})
            return f"left: {left.format()}, right: {right.format()}"

        if self.json_output:
            return json.dumps({direction: result.to_dict()})
        return result.format()

    @staticmethod
    def _split_direction(rest: str) -> Tuple[str, str]:
        words = rest.split(None, 1)
        if len(words) == 2 and words[0].lower() in DIRECTIONS:
            return words[0].lower(), words[1]
        return "both", rest

    def cmd_analyze(self, arg: str) -> str:
        var, text = split_args(arg, 2, ":analyze VAR EXPR")
        expr = parse_sexpr(text)
        if self.json_output:
            return json.dumps(check_division_limits(expr, var).to_dict())
        return describe_division_behavior(expr, var)

    def cmd_singularities(self, arg: str) -> str:
        if not arg.strip():
            raise ValueError("Usage: :singularities EXPR")
        denominators = find_singularities(parse_sexpr(arg))
        if self.json_output:
            return json.dumps([format_sexpr(d) for d in denominators])
        if not denominators:
            return "No divisions"
        return "\n".join(format_sexpr(d) for d in denominators)

    def help_text(self) -> str:
        """Return help text."""
        return """SymKit REPL Commands:
  :help                                  Show this help
  :trace on|off                          Toggle tracing of simplification
  :json on|off                           Toggle JSON output
  :diff VAR EXPR                         Differentiate EXPR with respect to VAR
  :eval VAR VALUE EXPR                   Substitute VALUE for VAR and fold
  :limit VAR POINT [left|right|both] EXPR
                                         Limit of EXPR as VAR approaches POINT
  :analyze VAR EXPR                      Describe behaviour at zero denominators
  :singularities EXPR                    List the denominators of EXPR
  :quit                                  Exit

Syntax:
  (+ x (* 2 y))                          Simplify an expression
  Operators: + - * / ^ (binary), - sqrt abs (unary)
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        self.failed = False
        line = line.strip()

        # Empty line or comment
        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        # Expression to simplify
        try:
            expr = parse_sexpr(line)
            if self.trace:
                result, trace = simplify(expr, trace=True)
                if self.json_output:
                    return json.dumps(trace.to_dict())
                output = format_sexpr(result)
                if trace.steps:
                    return f"{output}\n{trace.format('rules')}"
                return output

            result = simplify(expr)
            if self.json_output:
                return json.dumps({"input": format_sexpr(expr),
                                   "result": format_sexpr(result)})
            return format_sexpr(result)

        except (ArithmeticError, TypeError, ValueError) as e:
            return self._fail(f"Error: {e}")

    def run(self):
        """Run the REPL loop."""
        print(f"SymKit {__version__} - symbolic algebra")
        print("Type :help for help, :quit to exit")
        print("Multi-line input: expressions with unbalanced parens continue on next line")
        print()

        while self.running:
            try:
                if self.multi_line_buffer:
                    prompt = "...... "
                else:
                    prompt = "symkit> "

                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += "\n" + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)

                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                # Cancel multi-line input on Ctrl+C
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ScriptRunner:
    """Runs symkit scripts."""

    def __init__(self):
        self.repl = SymkitREPL()

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """
        Run a script file.

        Args:
            path: Path to the script
            quiet: If True, don't print results

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        buffer = ""
        start = 0
        for lineno, line in enumerate(lines, 1):
            stripped = line.strip()

            # Skip empty lines, comments, and shebang outside an open expression
            if not buffer and (not stripped or stripped.startswith("#")):
                continue

            if not buffer:
                start = lineno
                buffer = stripped
            else:
                buffer += "\n" + stripped

            if count_parens(buffer) > 0:
                continue

            statement, buffer = buffer, ""
            result = self.repl.process_line(statement)
            if self.repl.failed:
                print(f"{path}:{start}: {result}", file=sys.stderr)
                return 1
            if not self.repl.running:
                break
            if result and not quiet and not self._is_setting(statement):
                print(result)

        if buffer:
            print(f"{path}:{start}: Error: Unbalanced parentheses", file=sys.stderr)
            return 1
        return 0

    @staticmethod
    def _is_setting(statement: str) -> bool:
        if not statement.startswith(":"):
            return False
        words = statement[1:].split(None, 1)
        return bool(words) and words[0].lower() in SETTING_COMMANDS

    def run_expression(self, expr_str: str) -> int:
        """
        Evaluate a single expression or command.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            print(result)
            if self.repl.failed:
                return 1
        return 0

    def run_stdin(self) -> int:
        """
        Read expressions from stdin and evaluate them.

        Returns:
            Exit code (0 for success)
        """
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if result:
                print(result)
                if self.repl.failed:
                    return 1

        return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="symkit",
        description="SymKit - symbolic simplification, differentiation and limits",
        epilog="Examples:\n"
               "  symkit                            Start REPL\n"
               "  symkit script.sym                 Run script\n"
               "  symkit -e '(+ x x)'               Simplify expression\n"
               "  symkit -e ':diff x (^ x 3)'       Run a command\n"
               "  echo '(* x 1)' | symkit           Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "script",
        nargs="?",
        help="Script file to run (.sym)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Evaluate a single expression or command"
    )

    parser.add_argument(
        "-t", "--trace",
        action="store_true",
        help="Enable tracing"
    )

    parser.add_argument(
        "-j", "--json",
        action="store_true",
        help="Print results as JSON"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log analysis details to stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    runner = ScriptRunner()
    runner.repl.trace = args.trace
    runner.repl.json_output = args.json

    if args.script:
        sys.exit(runner.run_script(Path(args.script), quiet=args.quiet))

    elif args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        # Pipe/filter mode (stdin is not a terminal)
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()
