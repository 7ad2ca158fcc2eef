"""Tests for generated asset names and paths."""

import re
from unittest.mock import patch

from sitevault.content.assets import asset_filename, asset_path, guess_content_type

_SAFE = re.compile(r"^[A-Za-z0-9._-]+$")


class TestAssetFilename:
    def test_keeps_extension(self):
        assert asset_filename("photo.jpg").endswith(".jpg")

    def test_extension_lowercased(self):
        assert asset_filename("PHOTO.PNG").endswith(".png")

    def test_only_last_extension(self):
        name = asset_filename("archive.tar.gz")
        assert name.endswith(".gz")
        assert "tar" not in name

    def test_no_extension(self):
        assert "." not in asset_filename("README")

    def test_token_and_timestamp(self):
        with patch("sitevault.content.assets.time") as mock_time:
            mock_time.time.return_value = 1700000000.5
            name = asset_filename("a.png")
        token, rest = name.split("_", 1)
        assert len(token) == 12
        assert rest == "1700000000500.png"

    def test_safe_characters_only(self):
        name = asset_filename("my file (1).we!rd ext")
        assert _SAFE.match(name)

    def test_unique(self):
        assert asset_filename("a.png") != asset_filename("a.png")


class TestAssetPath:
    def test_joins_prefix(self):
        assert asset_path("marketing", "x.png") == "marketing/x.png"

    def test_nested_prefix(self):
        assert asset_path("studio/hero", "x.png") == "studio/hero/x.png"

    def test_sanitizes_prefix(self):
        assert asset_path("/../team photos//", "x.png") == "team-photos/x.png"

    def test_empty_prefix(self):
        assert asset_path("", "x.png") == "x.png"


class TestGuessContentType:
    def test_known_type(self):
        assert guess_content_type("a.png") == "image/png"

    def test_unknown_type(self):
        assert guess_content_type("a.unknownext") == "application/octet-stream"
