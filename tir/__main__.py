#!/usr/bin/env python3
"""
tir - command-line driver for irflow analyses on textual IR files.

Usage::

    tir check prog.tir
    tir dump-ir prog.tir
    tir analyze prog.tir -a deadcode
    tir analyze prog.tir -a constprop=strategy:lifo --method main --format sexp
    tir -v analyze prog.tir -a livevar -o live.txt

Exit codes: 0 success, 1 invalid input or configuration, 2 internal error.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap
from pathlib import Path
from typing import Any, List, Optional, Sequence, TextIO

from sexpdata import Symbol

from irflow import __version__
from irflow.analysis_manager import ANALYSES, AnalysisManager
from irflow.config import AnalysisConfig, parse_analysis_spec
from irflow.ctrlflow_graph import CFG
from irflow.errors import AnalysisException, ConfigException
from irflow.facts import DataflowResult
from irflow.ir import IR
from tir import dump
from tir.errors import TirError
from tir.parser import parse_file

_log = logging.getLogger("tir")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INTERNAL: int = 2


# ═══════════════════════════════════════════════════════════════════════════
# TERMINAL OUTPUT
# ═══════════════════════════════════════════════════════════════════════════

class _Colors:
    """ANSI color codes, disabled when not writing to a TTY."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled

    def _code(self, code: str) -> str:
        return code if self.enabled else ""

    @property
    def RESET(self) -> str:
        return self._code("\033[0m")

    @property
    def BOLD(self) -> str:
        return self._code("\033[1m")

    @property
    def RED(self) -> str:
        return self._code("\033[31m")

    @property
    def GREEN(self) -> str:
        return self._code("\033[32m")


def _get_colors(stream: TextIO = sys.stderr) -> _Colors:
    is_tty = hasattr(stream, "isatty") and stream.isatty()
    return _Colors(enabled=is_tty and os.environ.get("NO_COLOR") is None)


def _error(message: str) -> None:
    c = _get_colors()
    sys.stderr.write(f"{c.BOLD}{c.RED}error:{c.RESET} {message}\n")


def _configure_logging(verbosity: int) -> None:
    """Attach a stderr handler to the ``irflow`` and ``tir`` loggers.

    0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler.set_name("tir-cli")
    for name in ("irflow", "tir"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        for old in [h for h in logger.handlers if h.get_name() == "tir-cli"]:
            logger.removeHandler(old)
        logger.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """``None`` or ``"-"`` → stdout; otherwise open the path for writing."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _select_methods(irs: List[IR], name: Optional[str]) -> List[IR]:
    if name is None:
        return irs
    chosen = [ir for ir in irs if ir.get_method_name() == name]
    if not chosen:
        raise ConfigException(f"no method named {name!r}")
    return chosen


# ═══════════════════════════════════════════════════════════════════════════
# RESULT RENDERING
# ═══════════════════════════════════════════════════════════════════════════

def _render_text(analysis_id: str, ir: IR, result: Any) -> str:
    header = f"== {analysis_id}: {ir.signature()}"
    if isinstance(result, CFG):
        return f"{header}\n{result.to_dot(title=ir.get_method_name())}"
    if isinstance(result, DataflowResult):
        lines = [header]
        for stmt in ir.get_stmts():
            lines.append(
                f"{stmt.index:>3}: {stmt!s:<32} "
                f"IN={result.get_in_fact(stmt)}  OUT={result.get_out_fact(stmt)}"
            )
        return "\n".join(lines)
    if isinstance(result, list):
        if not result:
            return f"{header}\n  (none)"
        return "\n".join(
            [header, *(f"{s.index:>3}: L{s.line_number}: {s}" for s in result)]
        )
    return f"{header}\n{result}"


def _render_sexp(analysis_id: str, ir: IR, result: Any) -> str:
    if isinstance(result, CFG):
        edges = [
            [Symbol(e.kind.name), result.node_label(e.source),
             result.node_label(e.target)]
            for e in result.edges
        ]
        return dump.to_text([Symbol(analysis_id), ir.get_method_name(), *edges])
    if isinstance(result, DataflowResult):
        return dump.to_text(dump.facts_to_sexp(analysis_id, ir, result))
    if isinstance(result, list):
        return dump.to_text(dump.dead_code_to_sexp(ir, result))
    return dump.to_text([Symbol(analysis_id), ir.get_method_name(), str(result)])


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════

def cmd_check(args: argparse.Namespace) -> int:
    """Parse and validate, no analysis."""
    irs = parse_file(args.input)
    if not args.quiet:
        c = _get_colors()
        sys.stderr.write(
            f"{c.GREEN}✓{c.RESET} {args.input}: {len(irs)} method(s) OK\n"
        )
    return EXIT_OK


def cmd_dump_ir(args: argparse.Namespace) -> int:
    irs = _select_methods(parse_file(args.input), args.method)
    out = _open_output(args.output)
    try:
        for ir in irs:
            if args.format == "sexp":
                out.write(dump.to_text(dump.ir_to_sexp(ir)) + "\n")
            else:
                out.write(ir.format() + "\n")
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_OK


def cmd_analyze(args: argparse.Namespace) -> int:
    configs: List[AnalysisConfig] = [parse_analysis_spec(s) for s in args.analysis]
    manager = AnalysisManager(configs)
    _log.info("plan: %s", ", ".join(str(c) for c in manager.get_plan()))

    irs = _select_methods(parse_file(args.input), args.method)
    manager.analyze_all(irs)

    render = _render_sexp if args.format == "sexp" else _render_text
    out = _open_output(args.output)
    try:
        for ir in irs:
            for analysis_id in manager.requested:
                out.write(render(analysis_id, ir, ir.get_result(analysis_id)) + "\n")
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the tir CLI."""
    parser = argparse.ArgumentParser(
        prog="tir",
        description="Run intraprocedural dataflow analyses on textual IR.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(f"""\
            analyses: {", ".join(sorted(ANALYSES))}

            examples:
              %(prog)s check prog.tir
              %(prog)s analyze prog.tir -a deadcode
              %(prog)s analyze prog.tir -a constprop=strategy:lifo --format sexp
        """),
    )
    parser.add_argument("--version", action="version",
                        version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (repeatable)")

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # ── check ────────────────────────────────────────────────────────────
    p_check = subparsers.add_parser("check", help="Parse and validate a TIR file")
    p_check.add_argument("input", help="TIR source file")
    p_check.add_argument("-q", "--quiet", action="store_true", default=False,
                         help="Suppress the success message")
    p_check.set_defaults(func=cmd_check)

    # ── dump-ir ──────────────────────────────────────────────────────────
    p_dump = subparsers.add_parser("dump-ir", help="Print the parsed IR")
    p_dump.add_argument("input", help="TIR source file")
    p_dump.add_argument("--method", default=None, help="Only this method")
    p_dump.add_argument("--format", choices=("text", "sexp"), default="text")
    p_dump.add_argument("-o", "--output", default=None,
                        help="Output file (default: stdout)")
    p_dump.set_defaults(func=cmd_dump_ir)

    # ── analyze ──────────────────────────────────────────────────────────
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Run analyses and print their results",
        description=(
            "Run the requested analyses (plus everything they require) on "
            "each method and print the requested results."
        ),
    )
    p_analyze.add_argument("input", help="TIR source file")
    p_analyze.add_argument(
        "-a", "--analysis", action="append", required=True, metavar="ID[=k:v;...]",
        help="Analysis to run, with options; repeatable",
    )
    p_analyze.add_argument("--method", default=None, help="Only this method")
    p_analyze.add_argument("--format", choices=("text", "sexp"), default="text")
    p_analyze.add_argument("-o", "--output", default=None,
                           help="Output file (default: stdout)")
    p_analyze.set_defaults(func=cmd_analyze)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``tir`` console script.

    Returns
    -------
    int
        Exit code (0 = success, 1 = bad input, 2 = internal error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help(sys.stderr)
        return EXIT_ERROR

    try:
        return args.func(args)
    except TirError as exc:
        _error(str(exc))
        return EXIT_ERROR
    except ConfigException as exc:
        _error(str(exc))
        return EXIT_ERROR
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_OK
    except OSError as exc:
        _error(f"{exc.filename or args.input}: {exc.strerror or exc}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    except AnalysisException as exc:
        _error(f"internal error: {exc}")
        return EXIT_INTERNAL
    except Exception as exc:  # noqa: BLE001
        _log.debug("unhandled exception", exc_info=True)
        _error(f"internal error: {type(exc).__name__}: {exc}")
        return EXIT_INTERNAL


if __name__ == "__main__":
    sys.exit(main())
