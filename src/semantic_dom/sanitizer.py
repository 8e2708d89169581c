# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Content sanitization for prompt injection defense.

Labels, titles and link text come from untrusted pages and end up in an
agent's context verbatim. Two layers:

1. sanitize_text() for short fields (labels, titles)
2. add_content_boundary() wraps whole renderings with source-tagged markers
"""

from __future__ import annotations

import re
import secrets
from datetime import UTC, datetime

# Zero-width chars, bidi overrides, interlinear annotations, C0/C1 controls
_CONTROL_CHAR_RE = re.compile(
    r"[\u200B-\u200F\u202A-\u202E\u2060-\u2069\uFEFF\uFFF9-\uFFFB"
    r"\u0000-\u0008\u000B\u000C\u000E-\u001F\u007F-\u009F]"
)

_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]")

# Matches both line-start and mid-text patterns like "[SYSTEM: ...]"
_ROLE_PREFIX_RE = re.compile(
    r"\[?\s*(?:SYSTEM|ASSISTANT|USER|HUMAN|AI|ADMIN|INSTRUCTION|OVERRIDE"
    r"|IMPORTANT|IGNORE|HACK|COMMAND)\s*[:\]]\s*",
    re.IGNORECASE,
)

_BOUNDARY_TAG_RE = re.compile(
    r"<\s*/?\s*web_content[\w]*[^>]*>",
    re.IGNORECASE,
)

_MULTI_SPACE_RE = re.compile(r"\s{2,}")


def sanitize_text(text: str, max_len: int = 256) -> str:
    """Sanitize a short text field (labels, titles).

    - Strips Unicode control characters (zero-width, bidi overrides)
    - Removes ANSI escape sequences
    - Drops role-prefix patterns that could inject instructions
    - Collapses newlines and whitespace runs into single spaces
    - Truncates to max_len
    """
    if not text:
        return text

    text = _ANSI_ESCAPE_RE.sub("", text)
    text = _CONTROL_CHAR_RE.sub("", text)
    text = text.replace("\n", " ").replace("\r", " ")
    text = _ROLE_PREFIX_RE.sub("", text)
    text = _BOUNDARY_TAG_RE.sub("", text)
    text = _MULTI_SPACE_RE.sub(" ", text).strip()

    if len(text) > max_len:
        text = text[:max_len]
    return text


def add_content_boundary(text: str, source_url: str) -> str:
    """Wrap content with nonce-tagged boundary markers identifying the source.

    The random nonce in the tag name (e.g. ``<web_content_a8f3b2c1...>``)
    keeps page content from predicting and forging the closing tag.
    """
    nonce = secrets.token_hex(8)
    tag = f"web_content_{nonce}"
    text = _BOUNDARY_TAG_RE.sub("", text)
    ts = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f'<{tag} source="{_escape_attr(source_url)}" timestamp="{ts}">\n{text}\n</{tag}>'


def _escape_attr(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;").replace("<", "&lt;").replace(">", "&gt;")
