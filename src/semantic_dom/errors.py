# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""SemanticDOM exception hierarchy.

All SemanticDOM-specific errors inherit from SemanticDOMError, allowing
callers to catch the base class for any failure or specific subclasses
for targeted handling.
"""

from __future__ import annotations


class SemanticDOMError(Exception):
    """Base exception for all SemanticDOM errors."""


class InputTooLargeError(SemanticDOMError):
    """Markup exceeds the configured byte limit (checked before parsing)."""

    def __init__(self, max_size: int, actual_size: int) -> None:
        super().__init__(f"Input exceeds maximum size of {max_size} bytes (got {actual_size})")
        self.max_size = max_size
        self.actual_size = actual_size


class MissingRootContainerError(SemanticDOMError):
    """Parsed element tree has no <body> to use as the semantic root."""


class InvalidUrlProtocolError(SemanticDOMError):
    """Link target uses a disallowed scheme (javascript:, data:, ...)."""

    def __init__(self, url: str, scheme: str) -> None:
        super().__init__(f"URL has disallowed protocol: {scheme}")
        self.url = url
        self.scheme = scheme


class DocumentNotLoadedError(SemanticDOMError):
    """Tool call needs a parsed document but none has been loaded."""


class ElementNotFoundError(SemanticDOMError):
    """No node with the requested semantic id or landmark."""

    def __init__(self, message: str, *, element_id: str = "") -> None:
        super().__init__(message)
        self.element_id = element_id


class DocumentFormatError(SemanticDOMError):
    """Structured (JSON) form could not be loaded back into a document."""


class ConfigError(SemanticDOMError):
    """Invalid parser configuration (file, env var, or CLI flag)."""
