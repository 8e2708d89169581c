# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Input validation: size limits, link-target protocol allow-listing, CSS escaping."""

from __future__ import annotations

import re

from .errors import InputTooLargeError, InvalidUrlProtocolError

DEFAULT_MAX_INPUT_SIZE = 10 * 1024 * 1024  # 10 MiB

ALLOWED_SCHEMES = frozenset({"http", "https", "mailto", "tel"})
BLOCKED_SCHEMES = frozenset({"javascript", "vbscript", "data", "blob", "livescript"})

# Browsers drop ASCII tab/newline anywhere in a URL, and C0 controls + space at the ends
_URL_STRIP_RE = re.compile(r"[\t\n\r]")
_URL_EDGE_CHARS = "".join(chr(c) for c in range(0x21))

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")

# Browsers treat a backslash after the leading slash like a second slash
_NETWORK_PATH_PREFIXES = ("//", "/\\")

_CSS_SPECIAL = frozenset("!\"#$%&'()*+,./:;<=>?@[\\]^`{|}~")


def check_input_size(markup: str | bytes, max_size: int = DEFAULT_MAX_INPUT_SIZE) -> int:
    """Raise InputTooLargeError when *markup* exceeds *max_size* bytes.

    Returns the measured byte length.
    """
    size = len(markup) if isinstance(markup, bytes) else len(markup.encode("utf-8"))
    if size > max_size:
        raise InputTooLargeError(max_size=max_size, actual_size=size)
    return size


def validate_url(url: str) -> str:
    """Validate a link target and return it normalized.

    Accepts http(s), mailto and tel URLs, root-relative and relative paths,
    and fragment-only references. Raises InvalidUrlProtocolError for any
    other scheme, including script-execution and embedded-data schemes even
    when obfuscated with case changes or embedded whitespace.
    """
    cleaned = _URL_STRIP_RE.sub("", url).strip(_URL_EDGE_CHARS)
    if not cleaned:
        return ""

    if cleaned.startswith(_NETWORK_PATH_PREFIXES):
        # Protocol-relative: inherits the page scheme, points at another host
        return cleaned
    if cleaned.startswith(("/", "#", "?", "./", "../")):
        return cleaned

    match = _SCHEME_RE.match(cleaned)
    if match is None:
        # No scheme: plain relative path such as "about.html"
        return cleaned

    scheme = match.group(1).lower()
    if scheme in BLOCKED_SCHEMES or scheme not in ALLOWED_SCHEMES:
        raise InvalidUrlProtocolError(url=url, scheme=scheme)
    return cleaned


def is_internal_href(href: str) -> bool:
    """True for a fragment or a same-origin root-relative path; protocol-relative URLs are external."""
    if href.startswith("#"):
        return True
    return href.startswith("/") and not href.startswith(_NETWORK_PATH_PREFIXES)


def escape_css_identifier(value: str) -> str:
    """Escape *value* for use as a CSS identifier (``#id`` or ``.class``)."""
    out: list[str] = []
    for i, ch in enumerate(value):
        if ch in _CSS_SPECIAL:
            out.append("\\" + ch)
        elif i == 0 and ch.isdigit():
            out.append(f"\\3{ch} ")
        elif i == 0 and ch == "-" and len(value) > 1 and value[1].isdigit():
            out.append("\\-")
        elif ch.isspace():
            out.append(f"\\{ord(ch):x} ")
        else:
            out.append(ch)
    return "".join(out)


def escape_attribute_value(value: str) -> str:
    """Escape *value* for a double-quoted CSS attribute selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')
