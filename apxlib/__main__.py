"""Command-line checker for ApX scripts.

Usage:
    python -m apxlib script.apx [more.apx ...]
    python -m apxlib --tokens script.apx
    cat script.apx | python -m apxlib -
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import fields
from pathlib import Path

from apxlib.core.expressions import Node
from apxlib.diagnostics.collector import DiagnosticCollector
from apxlib.diagnostics.severity import DiagnosticSeverity
from apxlib.parser.lexer import tokenize
from apxlib.parser.parser import parse
from apxlib.resolver.resolver import resolve

logger = logging.getLogger("apxlib")


def _read(path: str) -> tuple[str, str]:
    if path == "-":
        return sys.stdin.read(), "<stdin>"
    return Path(path).read_text(encoding="utf-8"), path


def _scalar_fields(node: Node) -> str:
    parts = []
    for f in fields(node):  # type: ignore[arg-type]
        if f.name == "span":
            continue
        value = getattr(node, f.name)
        if isinstance(value, (Node, tuple)) or value is None:
            continue
        parts.append(f"{f.name}={value!r}")
    return ", ".join(parts)


def dump_tree(node: Node, depth: int = 0) -> list[str]:
    """Render *node* and its children as indented lines."""
    span = getattr(node, "span", None)
    where = f" @{span.line}:{span.column}" if span is not None else ""
    lines = [f"{'  ' * depth}{type(node).__name__}({_scalar_fields(node)}){where}"]
    for child in node.children():
        lines.extend(dump_tree(child, depth + 1))
    return lines


def check_file(path: str, args: argparse.Namespace) -> bool:
    """Lex, parse and resolve one file; print diagnostics. Returns True if clean."""
    try:
        source, filename = _read(path)
    except OSError as e:
        print(f"{path}: error: {e}", file=sys.stderr)
        return False

    if args.tokens:
        diag = DiagnosticCollector()
        for token in tokenize(source, filename, diag):
            print(f"{token.line}:{token.span.column}\t{token.kind.name}\t{token.lexeme!r}")
    else:
        program, diag = parse(source, filename, fail_fast=args.fail_fast)
        resolve(program, diag)
        if args.tree:
            print("\n".join(dump_tree(program)))

    for d in diag.get_all():
        if args.no_warnings and d.severity != DiagnosticSeverity.ERROR:
            continue
        print(str(d), file=sys.stderr)

    logger.info("%s: %d error(s), %d warning(s)", filename, len(diag.errors()), len(diag.warnings()))
    return not diag.has_errors()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="apxlib", description="Check ApX scripts for errors.")
    parser.add_argument("files", nargs="+", help="script files to check ('-' for stdin)")
    parser.add_argument("--fail-fast", action="store_true", help="stop at the first syntax error")
    parser.add_argument("--no-warnings", action="store_true", help="report errors only")
    parser.add_argument("--tokens", action="store_true", help="print the token stream")
    parser.add_argument("--tree", action="store_true", help="print the syntax tree")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="more logging")
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    ok = True
    for path in args.files:
        if not check_file(path, args):
            ok = False
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
