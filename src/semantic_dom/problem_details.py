# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""RFC 9457 Problem Details for the CLI and the tool server.

Maps SemanticDOM exceptions to structured problem objects. Near-leaf
module (stdlib + errors.py) so any layer can import it.

Key public API:

- ``ProblemType``: StrEnum error taxonomy (slug values).
- ``ProblemDetail``: frozen dataclass, rendered as JSON, tool text or CLI text.
- ``sanitize_detail()``: scrub secrets & paths from error messages.
- Factories: ``from_exception``, ``from_validation``, ``document_not_loaded``.

Type URI namespace: ``urn:semantic-dom:error:{slug}``
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from .errors import (
    ConfigError,
    DocumentFormatError,
    DocumentNotLoadedError,
    ElementNotFoundError,
    InputTooLargeError,
    InvalidUrlProtocolError,
    MissingRootContainerError,
    SemanticDOMError,
)

# ── Constants ────────────────────────────────────────────────────────

_ERROR_BASE = "urn:semantic-dom:error"

MAX_DETAIL_LENGTH = 200

# ── ProblemType taxonomy ─────────────────────────────────────────────


class ProblemType(StrEnum):
    # Parse pipeline
    INPUT_TOO_LARGE = "input-too-large"
    MISSING_ROOT = "missing-root"
    INVALID_URL = "invalid-url"

    # Tool lookups
    DOCUMENT_NOT_LOADED = "document-not-loaded"
    ELEMENT_NOT_FOUND = "element-not-found"

    # Inputs / configuration
    INVALID_DOCUMENT = "invalid-document"
    VALIDATION_ERROR = "validation-error"
    CONFIG_ERROR = "config-error"

    @property
    def uri(self) -> str:
        """Full type URI for RFC 9457 ``type`` field."""
        return f"{_ERROR_BASE}:{self.value}"

    @classmethod
    def from_uri(cls, uri: str) -> ProblemType | None:
        prefix = _ERROR_BASE + ":"
        if not uri.startswith(prefix):
            return None
        try:
            return cls(uri[len(prefix) :])
        except ValueError:
            return None


# ── Per-type metadata: (status, title) ───────────────────────────────

_TYPE_METADATA: dict[ProblemType, tuple[int, str]] = {
    ProblemType.INPUT_TOO_LARGE: (413, "Input Too Large"),
    ProblemType.MISSING_ROOT: (422, "Missing Root Container"),
    ProblemType.INVALID_URL: (422, "Invalid URL Protocol"),
    ProblemType.DOCUMENT_NOT_LOADED: (409, "No Document Loaded"),
    ProblemType.ELEMENT_NOT_FOUND: (404, "Element Not Found"),
    ProblemType.INVALID_DOCUMENT: (422, "Invalid Document"),
    ProblemType.VALIDATION_ERROR: (422, "Validation Error"),
    ProblemType.CONFIG_ERROR: (400, "Configuration Error"),
}

_EXCEPTION_TYPES: tuple[tuple[type[SemanticDOMError], ProblemType], ...] = (
    (InputTooLargeError, ProblemType.INPUT_TOO_LARGE),
    (MissingRootContainerError, ProblemType.MISSING_ROOT),
    (InvalidUrlProtocolError, ProblemType.INVALID_URL),
    (DocumentNotLoadedError, ProblemType.DOCUMENT_NOT_LOADED),
    (ElementNotFoundError, ProblemType.ELEMENT_NOT_FOUND),
    (DocumentFormatError, ProblemType.INVALID_DOCUMENT),
    (ConfigError, ProblemType.CONFIG_ERROR),
)

# ── Per-tool recovery hints ──────────────────────────────────────────

_RECOVERY_HINTS: dict[str, str] = {
    "parse_html": "Check the markup and its size, then retry.",
    "semantic_query": "Call semantic_list_interactables or semantic_list_landmarks for valid ids.",
    "semantic_navigate": "Call semantic_list_landmarks for available landmarks.",
    "semantic_interact": "Call semantic_list_interactables for valid ids.",
    "semantic_list": "Call parse_html first.",
    "semantic_state_graph": "Call semantic_list_interactables for valid ids.",
    "semantic_certification": "Call parse_html first.",
}

_TYPE_HINTS: dict[ProblemType, str] = {
    ProblemType.DOCUMENT_NOT_LOADED: "Call parse_html first.",
}

# ── CLI-specific recovery hints ──────────────────────────────────────

_CLI_HINTS: dict[str, str] = {
    ProblemType.INPUT_TOO_LARGE.uri: "Raise the limit with SEMANTIC_DOM_MAX_INPUT_SIZE or a config file.",
    ProblemType.MISSING_ROOT.uri: "The input must be an HTML document with a <body>.",
    ProblemType.INVALID_DOCUMENT.uri: "The file is not a SemanticDOM JSON document.",
    ProblemType.CONFIG_ERROR.uri: "Check the config file keys and values.",
    ProblemType.VALIDATION_ERROR.uri: "Check the command arguments.",
}

# ── Secret sanitization patterns ─────────────────────────────────────

_SECRET_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"sk-[a-zA-Z0-9_-]{8,}"), "<redacted>"),
    (re.compile(r"Bearer\s+\S+"), "Bearer <redacted>"),
    (
        re.compile(
            r"(?:API_KEY|SECRET|TOKEN|PASSWORD|CREDENTIAL)\s*[=:]\s*\S+",
            re.IGNORECASE,
        ),
        "<redacted>",
    ),
    (re.compile(r"Basic\s+[A-Za-z0-9+/=]{8,}"), "Basic <redacted>"),
    (re.compile(r"://[^@\s]+@"), "://<redacted>@"),
    (
        re.compile(r"eyJ[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}\.[A-Za-z0-9_-]{10,}"),
        "<redacted>",
    ),
]

_PATH_PATTERN = re.compile(
    r"(/(?:Users|home|tmp|var|etc|opt|root|srv|proc|sys|usr|Library"
    r"|Applications|private|snap|mnt|media|nix)/[\w./-]+"
    r"|[A-Z]:\\[\w.\\-]+)"
)


def sanitize_detail(text: str) -> str:
    """Scrub secrets and filesystem paths from *text*.

    Applies ``_SECRET_PATTERNS`` and ``_PATH_PATTERN``, then truncates
    to ``MAX_DETAIL_LENGTH`` characters.
    """
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    text = _PATH_PATTERN.sub("<path>", text)
    if len(text) > MAX_DETAIL_LENGTH:
        text = text[:MAX_DETAIL_LENGTH] + "..."
    return text


def _sanitize_extensions(extensions: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in extensions.items():
        result[key] = sanitize_detail(value) if isinstance(value, str) else value
    return result


# ── ProblemDetail dataclass ──────────────────────────────────────────

# Standard RFC 9457 fields that extensions must never shadow.
_STANDARD_FIELDS = frozenset({"type", "title", "status", "detail", "instance"})


@dataclass(frozen=True, slots=True)
class ProblemDetail:
    """RFC 9457 Problem Detail object.

    Immutable representation of a structured error. Supports
    serialisation to JSON dict, JSON string, tool-result text and CLI text.
    """

    type: str = "about:blank"
    title: str = ""
    status: int = 500
    detail: str = ""
    instance: str = ""
    extensions: dict[str, Any] = field(default_factory=dict)
    _tool_context: str = field(default="", repr=False)

    @property
    def problem_type(self) -> ProblemType | None:
        return ProblemType.from_uri(self.type)

    @property
    def slug(self) -> str:
        pt = self.problem_type
        return pt.value if pt is not None else "internal-error"

    # -- Serialisation --

    def to_dict(self) -> dict[str, Any]:
        """RFC 9457 JSON dict. Empty optional fields omitted, extensions merged at top level."""
        d: dict[str, Any] = {"type": self.type, "status": self.status}
        if self.title:
            d["title"] = self.title
        if self.detail:
            d["detail"] = self.detail
        if self.instance:
            d["instance"] = self.instance
        for k, v in self.extensions.items():
            if k not in _STANDARD_FIELDS:
                d[k] = v
        return d

    def to_json(self) -> str:
        """JSON string (``ensure_ascii=False``)."""
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def to_mcp_text(self) -> str:
        """Tool-result text: ``"Error (<context>) [<slug>]: <detail>. <hint>"``.

        The slug lets a client tell "no document loaded" apart from
        "element not found" without parsing the prose.
        """
        context = self._tool_context
        pt = self.problem_type
        hint = _TYPE_HINTS.get(pt, "") if pt is not None else ""
        if not hint:
            hint = _RECOVERY_HINTS.get(context, "")
        if not hint:
            for prefix, prefix_hint in _RECOVERY_HINTS.items():
                if context.startswith(prefix):
                    hint = prefix_hint
                    break
        head = f"Error ({context}) [{self.slug}]: {self.detail}"
        return f"{head}. {hint}" if hint else head

    def to_cli_text(self) -> str:
        """Human-friendly CLI error message.

        Format::

            Error: <detail>
            Hint: <hint>
        """
        hint = _CLI_HINTS.get(self.type, "")
        lines = [f"Error: {self.detail}"]
        if hint:
            lines.append(f"Hint: {hint}")
        return "\n".join(lines)


# ── Factory functions ────────────────────────────────────────────────


def _build(
    problem_type: ProblemType,
    detail: str,
    *,
    tool_context: str = "",
    instance: str = "",
    extensions: dict[str, Any] | None = None,
) -> ProblemDetail:
    status, title = _TYPE_METADATA[problem_type]
    return ProblemDetail(
        type=problem_type.uri,
        title=title,
        status=status,
        detail=sanitize_detail(detail),
        instance=instance,
        extensions=_sanitize_extensions(extensions or {}),
        _tool_context=tool_context,
    )


def from_exception(
    exc: Exception,
    *,
    tool_context: str = "",
    instance: str = "",
    extensions: dict[str, Any] | None = None,
) -> ProblemDetail:
    """Build a ProblemDetail from an exception.

    Known SemanticDOM exceptions map to their ProblemType and carry their
    structured attributes as extensions. Anything else becomes a generic
    ``about:blank`` detail with a sanitized message.
    """
    ext = dict(extensions) if extensions else {}
    for exc_type, problem_type in _EXCEPTION_TYPES:
        if isinstance(exc, exc_type):
            if isinstance(exc, InputTooLargeError):
                ext.setdefault("max_size", exc.max_size)
                ext.setdefault("actual_size", exc.actual_size)
            elif isinstance(exc, InvalidUrlProtocolError):
                ext.setdefault("scheme", exc.scheme)
            elif isinstance(exc, ElementNotFoundError) and exc.element_id:
                ext.setdefault("element_id", exc.element_id)
            return _build(problem_type, str(exc), tool_context=tool_context, instance=instance, extensions=ext)

    return ProblemDetail(
        type="about:blank",
        title="",
        status=500,
        detail=sanitize_detail(str(exc) or type(exc).__name__),
        instance=instance,
        extensions=_sanitize_extensions(ext),
        _tool_context=tool_context,
    )


def from_validation(
    detail: str,
    *,
    field_name: str = "",
    tool_context: str = "",
    instance: str = "",
) -> ProblemDetail:
    """Build a 422 ProblemDetail for argument validation errors."""
    ext: dict[str, Any] = {}
    if field_name:
        ext["field"] = field_name
    return _build(ProblemType.VALIDATION_ERROR, detail, tool_context=tool_context, instance=instance, extensions=ext)


def document_not_loaded(*, tool_context: str = "") -> ProblemDetail:
    return _build(ProblemType.DOCUMENT_NOT_LOADED, "No document loaded", tool_context=tool_context)
