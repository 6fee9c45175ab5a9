"""Tests for shared utilities."""

import pytest

from agenda_assistant.utils import looks_like_email, normalize_email, strip_json_decoration


class TestEmailHelpers:
    @pytest.mark.parametrize("value,expected", [("vini@x.com", True), ("Vini", False), ("a@b", True)])
    def test_looks_like_email(self, value, expected):
        assert looks_like_email(value) is expected

    def test_normalize_email(self):
        assert normalize_email("  Vini@X.com ") == "vini@x.com"


class TestStripJsonDecoration:
    def test_fenced(self):
        assert strip_json_decoration('```json\n{"intent": "greeting"}\n```') == '{"intent": "greeting"}'

    def test_uppercase_fence(self):
        assert strip_json_decoration('```JSON {"a": 1} ```') == '{"a": 1}'

    def test_prose_around(self):
        assert strip_json_decoration('Claro! {"a": {"b": 1}} Até mais.') == '{"a": {"b": 1}}'

    def test_no_braces_returns_cleaned(self):
        assert strip_json_decoration("```\nnada\n```") == "nada"
