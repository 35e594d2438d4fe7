# SPDX-License-Identifier: MIT
"""Tests for text and geo helpers."""

import pytest

from spot_pipeline.utils import base_name, compose_name, has_script, is_valid_coordinates, name_tags


class TestNameTags:
    """Test `#tag` handling of spot names."""

    def test_base_name(self):
        assert base_name("Himeji Castle #WorldHeritage #Japan") == "Himeji Castle"
        assert base_name("Mount Fuji") == "Mount Fuji"
        assert base_name(None) == ""

    def test_name_tags(self):
        assert name_tags("Himeji Castle #WorldHeritage #Japan") == ["WorldHeritage", "Japan"]
        assert name_tags("Mount Fuji") == []

    def test_compose_restores_tags(self):
        assert compose_name("姫路城", ["WorldHeritage"]) == "姫路城 #WorldHeritage"
        assert compose_name(" 姫路城 ", []) == "姫路城"


class TestHasScript:
    """Test script detection."""

    @pytest.mark.parametrize("text,language,expected", [
        ("姫路城", "ja", True),
        ("ひめじじょう", "ja", True),
        ("Himeji", "ja", False),
        ("姬路城", "zh", True),
        ("ひめじ", "zh", False),
        ("Himeji", "fr", True),
        (None, "ja", False),
    ])
    def test_has_script(self, text, language, expected):
        assert has_script(text, language) is expected


class TestCoordinates:
    """Test coordinate validation."""

    def test_valid(self):
        assert is_valid_coordinates(34.8394, 134.6939)
        assert is_valid_coordinates(-90, 180)

    def test_out_of_range(self):
        assert not is_valid_coordinates(91, 0)
        assert not is_valid_coordinates(0, -181)

    def test_missing(self):
        assert not is_valid_coordinates(None, 134.6939)
