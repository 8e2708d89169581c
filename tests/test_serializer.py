# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the JSON form and loading it back."""

from __future__ import annotations

import copy
import json

import pytest

from semantic_dom.builder import build_document
from semantic_dom.config import ParserConfig
from semantic_dom.errors import DocumentFormatError
from semantic_dom.serializer import from_dict, from_json, to_dict, to_json


class TestToJson:
    def test_top_level_keys(self, example_doc):
        data = to_dict(example_doc)
        assert list(data) == [
            "version",
            "standard",
            "url",
            "title",
            "language",
            "generated_at",
            "root",
            "landmarks",
            "interactables",
            "headings",
            "state_graph",
            "certification",
        ]

    def test_nested_tree(self, example_doc):
        root = to_dict(example_doc)["root"]
        assert root["id"] == "el-home-submit"
        assert [c["id"] for c in root["children"]] == ["nav-main", "main-submit"]
        button = root["children"][1]["children"][0]
        assert button == {
            "id": "btn-submit",
            "tag": "button",
            "role": "button",
            "label": "Submit",
            "intent": "submit",
            "state": "idle",
            "a11y": {"name": "Submit", "focusable": True, "in_tab_order": True, "level": None},
            "selector": "button",
            "href": None,
            "children": [],
        }

    def test_transitions_use_from_to_keys(self, example_doc):
        nav = to_dict(example_doc)["state_graph"]["navigation"]
        assert nav["transitions"] == [
            {"from": "initial", "to": "state__home", "trigger": "link-home", "action": "navigate", "guard": None}
        ]

    def test_non_ascii_preserved(self):
        doc = build_document("<html><head><title>Café</title></head><body></body></html>")
        assert '"title": "Café"' in to_json(doc)

    def test_optional_parts_null(self, example_html):
        doc = build_document(example_html, config=ParserConfig(include_state_graph=False, validate=False))
        data = to_dict(doc)
        assert data["state_graph"] is None
        assert data["certification"] is None


class TestRoundTrip:
    def test_idempotent(self, rich_doc):
        text = to_json(rich_doc)
        assert to_json(from_json(text)) == text

    def test_rebuilt_document_usable(self, rich_doc):
        doc = from_json(to_json(rich_doc))
        assert doc.tree.verify() == []
        assert doc.landmarks == rich_doc.landmarks
        assert doc.query("chk-gift-wrap").depth == rich_doc.query("chk-gift-wrap").depth
        assert doc.query("chk-gift-wrap").parent == rich_doc.query("chk-gift-wrap").parent
        assert doc.state_graph.machine("chk-gift-wrap") == rich_doc.state_graph.machine("chk-gift-wrap")
        assert doc.certification == rich_doc.certification
        assert doc.timings == {}

    def test_without_optional_parts(self, example_html):
        doc = build_document(example_html, config=ParserConfig(include_state_graph=False, validate=False))
        text = to_json(doc)
        loaded = from_json(text)
        assert loaded.state_graph is None
        assert loaded.certification is None
        assert to_json(loaded) == text

    def test_accepts_bytes(self, example_doc):
        assert from_json(to_json(example_doc).encode("utf-8")).title == "Example"


class TestInvalidInput:
    @pytest.fixture
    def data(self, example_doc):
        return copy.deepcopy(to_dict(example_doc))

    def test_malformed_json(self):
        with pytest.raises(DocumentFormatError, match="Malformed JSON"):
            from_json("{not json")

    def test_not_an_object(self):
        with pytest.raises(DocumentFormatError):
            from_json("[1, 2, 3]")

    def test_extra_field_rejected(self, data):
        data["root"]["children"][0]["color"] = "red"
        with pytest.raises(DocumentFormatError, match="root.children.0"):
            from_dict(data)

    def test_unknown_role_rejected(self, data):
        data["root"]["role"] = "wizard"
        with pytest.raises(DocumentFormatError, match="Invalid document structure"):
            from_dict(data)

    def test_duplicate_id(self, data):
        data["root"]["children"][1]["id"] = "nav-main"
        with pytest.raises(DocumentFormatError, match="Duplicate node id"):
            from_dict(data)

    def test_unknown_landmark_id(self, data):
        data["landmarks"].append("ghost")
        with pytest.raises(DocumentFormatError, match="Unknown landmark"):
            from_dict(data)

    def test_machine_for_unknown_node(self, data):
        data["state_graph"]["machines"][0]["node_id"] = "ghost"
        with pytest.raises(DocumentFormatError, match="unknown node"):
            from_dict(data)

    def test_transition_to_unknown_state(self, data):
        data["state_graph"]["navigation"]["transitions"][0]["to"] = "nowhere"
        with pytest.raises(DocumentFormatError, match="Invalid navigation graph"):
            from_dict(data)

    def test_score_out_of_range(self, data):
        data["certification"]["score"] = 140
        with pytest.raises(DocumentFormatError):
            from_dict(data)

    def test_missing_field(self, data):
        del data["title"]
        with pytest.raises(DocumentFormatError, match="title"):
            from_json(json.dumps(data))
