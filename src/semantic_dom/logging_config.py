# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""structlog + stdlib bridge. CLI/STDIO: ConsoleRenderer, log shipping: JSONRenderer.

Leaf module, no semantic_dom imports. Everything goes to stderr so stdout
stays free for command output and the JSON-RPC stream.
"""

from __future__ import annotations

import logging
import sys

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Applied to structlog events and to foreign (stdlib) records alike
_SHARED_PROCESSORS: tuple = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
)


def _stderr_handler(json_output: bool) -> logging.Handler:
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=list(_SHARED_PROCESSORS),
        )
    )
    return handler


def resolve_level(level: str) -> int:
    """Level name to a ``logging`` constant; unknown names resolve to INFO."""
    name = level.upper()
    return getattr(logging, name) if name in LOG_LEVELS else logging.INFO


def configure(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Safe to call again: the root handler is replaced, not added.

    Args:
        json_output: True for JSON lines, False for human-readable console output.
        level: Root logger level name (default INFO).
    """
    structlog.configure(
        processors=[*_SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_stderr_handler(json_output))
    root.setLevel(resolve_level(level))


def level_for_verbosity(verbose: int) -> str:
    """Map a ``-v`` count to a level name: 0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    if verbose >= 2:
        return "DEBUG"
    if verbose == 1:
        return "INFO"
    return "WARNING"
