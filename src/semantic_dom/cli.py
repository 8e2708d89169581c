# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SemanticDOM CLI: parse, validate, tokens, serve commands.

Usage:
    semantic-dom parse FILE [--format json|toon|summary|oneline|nav|audio] [--url URL] [--selectors]
    semantic-dom validate FILE [--level a|aa|aaa] [--ci]
    semantic-dom tokens FILE [--exact]
    semantic-dom serve [server args]

FILE is a path, or ``-`` to read markup from stdin.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from tabulate import tabulate

from . import SemanticDocument
from ._progress import print_step, status_spinner
from .builder import build_document
from .certification import CertificationLevel
from .config import ParserConfig, load_config
from .logging_config import configure as configure_logging
from .logging_config import level_for_verbosity
from .serializer import to_json
from .summary import compare_token_usage, to_agent_summary, to_audio_summary, to_nav_summary, to_one_liner
from .toon import serialize_document

logger = logging.getLogger(__name__)

FORMATS = ("json", "toon", "summary", "oneline", "nav", "audio")


def _read_markup(path_str: str) -> str:
    """Read markup from *path_str*, or stdin when it is ``-``."""
    if path_str == "-":
        return sys.stdin.read()
    return Path(path_str).read_text(encoding="utf-8")


def _load_document(args: argparse.Namespace, config: ParserConfig) -> SemanticDocument:
    markup = _read_markup(args.file)
    source = "stdin" if args.file == "-" else args.file
    with status_spinner(f"Parsing {source}..."):
        return build_document(markup, url=getattr(args, "url", None) or "", config=config)


def _render(doc: SemanticDocument, fmt: str, include_selectors: bool) -> str:
    if fmt == "json":
        return to_json(doc)
    if fmt == "toon":
        return serialize_document(doc, include_selectors=include_selectors)
    if fmt == "summary":
        return to_agent_summary(doc)
    if fmt == "oneline":
        return to_one_liner(doc)
    if fmt == "nav":
        return to_nav_summary(doc)
    return to_audio_summary(doc)


def cmd_parse(args: argparse.Namespace) -> None:
    """Parse markup and print it in the requested format."""
    config = args.config
    if args.selectors:
        config = replace(config, include_selectors=True)
    doc = _load_document(args, config)

    # Output to stdout, status to stderr
    sys.stdout.write(_render(doc, args.format, config.include_selectors).rstrip("\n") + "\n")
    print_step(f"Nodes: {doc.node_count}")
    print_step(f"Landmarks: {len(doc.landmarks)}  Interactables: {len(doc.interactables)}")
    if doc.timings:
        print_step(f"Build: {sum(doc.timings.values()):.1f}ms")


def cmd_validate(args: argparse.Namespace) -> None:
    """Certify a page and print the check table."""
    config = replace(args.config, validate=True)
    doc = _load_document(args, config)
    cert = doc.certification
    assert cert is not None

    rows = [
        [c.id, c.name, c.category.value, "PASS" if c.passed else "FAIL", f"{c.weight:.2f}", c.detail or ""]
        for c in cert.checks
    ]
    print(tabulate(rows, headers=["Check", "Name", "Category", "Result", "Weight", "Detail"], tablefmt="simple"))
    print()
    print(f"Level: {cert.level.display_name} ({cert.level.value})")
    print(f"Score: {cert.score}/100")
    print(f"Passed: {cert.stats.passed_checks}/{cert.stats.total_checks}")
    print(f"Completeness: {cert.stats.completeness:.1%}")

    required = CertificationLevel(args.level)
    if not cert.meets(required):
        msg = f"Required level {required.display_name} not met (got {cert.level.display_name})"
        if args.ci:
            print(f"FAILED: {msg}", file=sys.stderr)
            sys.exit(1)
        print(f"\nWarning: {msg}", file=sys.stderr)


def _exact_counter():
    """Return a tiktoken cl100k_base counting function (lazy import)."""
    import tiktoken

    enc = tiktoken.get_encoding("cl100k_base")
    return lambda text: len(enc.encode(text))


def cmd_tokens(args: argparse.Namespace) -> None:
    """Compare token usage of each rendering against JSON."""
    doc = _load_document(args, args.config)

    usage = compare_token_usage(doc)
    count_exact = _exact_counter() if args.exact else None

    measured = [
        ("json", usage.json_tokens, None),
        ("toon", usage.toon_tokens, usage.toon_reduction),
        ("summary", usage.summary_tokens, usage.summary_reduction),
        ("oneline", usage.one_liner_tokens, usage.one_liner_reduction),
    ]
    headers = ["Format", "Est. tokens", "vs JSON"]
    if count_exact is not None:
        headers.append("cl100k tokens")
    rows = []
    for fmt, est, reduction in measured:
        row = [fmt, est, "-" if reduction is None else f"-{reduction:.1f}%"]
        if count_exact is not None:
            row.append(count_exact(_render(doc, fmt, False)))
        rows.append(row)
    print(tabulate(rows, headers=headers, tablefmt="simple"))


def cmd_serve(args: argparse.Namespace) -> None:
    """Start the MCP server, forwarding any extra args to the server."""
    from .server import main

    main(argv=getattr(args, "_server_argv", []))


def _add_file_argument(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", metavar="FILE", help="HTML file to read, or - for stdin")


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="SemanticDOM CLI",
        prog="semantic-dom",
    )
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="Increase log verbosity (-v info, -vv debug)"
    )
    parser.add_argument("--config", type=str, metavar="PATH", help="YAML parser config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _parse_epilog = """\
examples:
  %(prog)s page.html                       Compact output
  %(prog)s page.html --format json         Full JSON form
  cat page.html | %(prog)s - --format summary
"""
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse HTML and print the semantic document",
        epilog=_parse_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    _add_file_argument(p_parse)
    p_parse.add_argument("--format", type=str, choices=FORMATS, default="toon", help="Output format (default: toon)")
    p_parse.add_argument("--url", type=str, metavar="URL", help="Page URL recorded in the document")
    p_parse.add_argument("--selectors", action="store_true", help="Include CSS selectors in compact output")

    p_validate = subparsers.add_parser("validate", help="Certify agent readiness of a page")
    _add_file_argument(p_validate)
    p_validate.add_argument(
        "--level",
        type=str,
        choices=[lvl.value for lvl in CertificationLevel if lvl is not CertificationLevel.NONE],
        default="a",
        help="Required certification level (default: a)",
    )
    p_validate.add_argument("--ci", action="store_true", help="Exit 1 when the required level is not met")

    p_tokens = subparsers.add_parser("tokens", help="Compare token usage per output format")
    _add_file_argument(p_tokens)
    p_tokens.add_argument("--exact", action="store_true", help="Add exact cl100k_base token counts (tiktoken)")

    subparsers.add_parser(
        "serve",
        help="Start MCP server (extra args forwarded to server)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  %(prog)s                                  Start with stdio transport
  %(prog)s --max-depth 30 --log-level DEBUG  Server options are forwarded""",
    )

    commands = {
        "parse": cmd_parse,
        "validate": cmd_validate,
        "tokens": cmd_tokens,
        "serve": cmd_serve,
    }

    args, remaining = parser.parse_known_args()

    # Forward remaining args to server when using 'serve' command
    if args.command == "serve":
        if args.config and "--config" not in remaining:
            remaining = ["--config", args.config, *remaining]
        args._server_argv = remaining
    elif remaining:
        parser.error(f"unrecognized arguments: {' '.join(remaining)}")
    else:
        configure_logging(level=level_for_verbosity(args.verbose))

    try:
        if args.command != "serve":
            args.config = load_config(args.config)
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except Exception as e:
        from .problem_details import from_exception

        problem = from_exception(e, tool_context="cli")
        print(problem.to_cli_text(), file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
