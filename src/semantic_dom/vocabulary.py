# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Closed vocabularies for roles, intents and interaction states.

Raw attribute text never travels past classification: every value is
mapped through ``from_raw`` into one enum member, with an explicit
fallback member for anything unrecognized.
"""

from __future__ import annotations

from enum import StrEnum


class SemanticRole(StrEnum):
    # Landmarks
    NAVIGATION = "navigation"
    MAIN = "main"
    BANNER = "banner"
    CONTENTINFO = "contentinfo"
    COMPLEMENTARY = "complementary"
    SEARCH = "search"
    FORM = "form"
    REGION = "region"
    ARTICLE = "article"
    # Controls
    BUTTON = "button"
    LINK = "link"
    TEXTBOX = "textbox"
    SEARCHBOX = "searchbox"
    SPINBUTTON = "spinbutton"
    SLIDER = "slider"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    LISTBOX = "listbox"
    COMBOBOX = "combobox"
    MENUITEM = "menuitem"
    TAB = "tab"
    # Structure
    HEADING = "heading"
    LIST = "list"
    LISTITEM = "listitem"
    TABLE = "table"
    ROW = "row"
    CELL = "cell"
    IMG = "img"
    VIDEO = "video"
    AUDIO = "audio"
    DIALOG = "dialog"
    ALERT = "alert"
    MENU = "menu"
    TABPANEL = "tabpanel"
    GENERIC = "generic"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: str | None) -> SemanticRole:
        """Map raw ``role`` / ``data-agent-role`` text to a member.

        Matching is case-insensitive; the first token of a space-separated
        ARIA role list is used. Unrecognized values map to ``UNKNOWN``.
        """
        if not value:
            return cls.UNKNOWN
        tokens = value.strip().lower().split()
        if not tokens:
            return cls.UNKNOWN
        token = tokens[0]
        alias = _ROLE_ALIASES.get(token)
        if alias is not None:
            return alias
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_landmark(self) -> bool:
        return self in LANDMARK_ROLES

    @property
    def is_interactive(self) -> bool:
        return self in INTERACTIVE_ROLES


_ROLE_ALIASES: dict[str, SemanticRole] = {
    "nav": SemanticRole.NAVIGATION,
    "header": SemanticRole.BANNER,
    "footer": SemanticRole.CONTENTINFO,
    "aside": SemanticRole.COMPLEMENTARY,
    "section": SemanticRole.REGION,
    "text-input": SemanticRole.TEXTBOX,
    "input": SemanticRole.TEXTBOX,
    "textarea": SemanticRole.TEXTBOX,
    "select": SemanticRole.LISTBOX,
    "image": SemanticRole.IMG,
    "list-item": SemanticRole.LISTITEM,
    "tab-panel": SemanticRole.TABPANEL,
    "gridcell": SemanticRole.CELL,
    "columnheader": SemanticRole.CELL,
    "rowheader": SemanticRole.CELL,
    "grid": SemanticRole.TABLE,
    "switch": SemanticRole.CHECKBOX,
    "menuitemcheckbox": SemanticRole.MENUITEM,
    "menuitemradio": SemanticRole.MENUITEM,
    "alertdialog": SemanticRole.DIALOG,
    "container": SemanticRole.GENERIC,
    "presentation": SemanticRole.GENERIC,
    "none": SemanticRole.GENERIC,
}

# Page-level navigable regions
LANDMARK_ROLES = frozenset(
    {
        SemanticRole.NAVIGATION,
        SemanticRole.MAIN,
        SemanticRole.BANNER,
        SemanticRole.CONTENTINFO,
        SemanticRole.COMPLEMENTARY,
        SemanticRole.SEARCH,
        SemanticRole.FORM,
    }
)

# Roles that receive intents and local state machines
INTERACTIVE_ROLES = frozenset(
    {
        SemanticRole.BUTTON,
        SemanticRole.LINK,
        SemanticRole.TEXTBOX,
        SemanticRole.SEARCHBOX,
        SemanticRole.SPINBUTTON,
        SemanticRole.SLIDER,
        SemanticRole.CHECKBOX,
        SemanticRole.RADIO,
        SemanticRole.LISTBOX,
        SemanticRole.COMBOBOX,
        SemanticRole.MENUITEM,
        SemanticRole.TAB,
    }
)

TEXT_INPUT_ROLES = frozenset({SemanticRole.TEXTBOX, SemanticRole.SEARCHBOX})


class SemanticIntent(StrEnum):
    NAVIGATE = "navigate"
    SUBMIT = "submit"
    ACTION = "action"
    TOGGLE = "toggle"
    SELECT = "select"
    INPUT = "input"
    SEARCH = "search"
    PLAY = "play"
    PAUSE = "pause"
    OPEN = "open"
    CLOSE = "close"
    EXPAND = "expand"
    COLLAPSE = "collapse"
    DOWNLOAD = "download"
    DELETE = "delete"
    EDIT = "edit"
    CREATE = "create"
    EMAIL = "email"
    PHONE = "phone"
    UNKNOWN = "unknown"

    @classmethod
    def from_raw(cls, value: str | None) -> SemanticIntent:
        """Map a ``data-agent-intent`` value; unrecognized values map to ``UNKNOWN``."""
        if not value:
            return cls.UNKNOWN
        token = value.strip().lower()
        alias = _INTENT_ALIASES.get(token)
        if alias is not None:
            return alias
        try:
            return cls(token)
        except ValueError:
            return cls.UNKNOWN


_INTENT_ALIASES: dict[str, SemanticIntent] = {
    "cancel": SemanticIntent.CLOSE,
    "dismiss": SemanticIntent.CLOSE,
    "save": SemanticIntent.SUBMIT,
    "send": SemanticIntent.SUBMIT,
    "remove": SemanticIntent.DELETE,
    "add": SemanticIntent.CREATE,
    "mailto": SemanticIntent.EMAIL,
    "tel": SemanticIntent.PHONE,
}


class InteractionState(StrEnum):
    # Attribute-derived
    IDLE = "idle"
    DISABLED = "disabled"
    EXPANDED = "expanded"
    COLLAPSED = "collapsed"
    SELECTED = "selected"
    CHECKED = "checked"
    UNCHECKED = "unchecked"
    MIXED = "mixed"
    HIDDEN = "hidden"
    OPEN = "open"
    # Reached only through local transitions
    FOCUSED = "focused"
    PRESSED = "pressed"
    EDITING = "editing"
    VISITED = "visited"
