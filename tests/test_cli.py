"""Smoke tests for the CLI."""

import json
import time
from pathlib import Path
from unittest.mock import patch

import jwt
import pytest
from typer.testing import CliRunner

from sitevault.cli import app
from sitevault.integrations.auth import AuthSession

_ENV_KEYS = (
    "SUPABASE_URL", "VITE_SUPABASE_URL", "SUPABASE_ANON_KEY",
    "SITEVAULT_BUCKET", "SITEVAULT_CONTENT_PATH", "SITEVAULT_ASSET_PREFIX",
    "SITEVAULT_ACCESS_TOKEN", "SITEVAULT_SCHEMA_FILE",
)


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def drafts_path(tmp_path: Path, monkeypatch) -> Path:
    """Isolate config and the draft store in a temp directory."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("sitevault.config.GLOBAL_CONFIG", tmp_path / "no-global.toml")
    path = tmp_path / "drafts.json"
    monkeypatch.setenv("SITEVAULT_DRAFTS_PATH", str(path))
    monkeypatch.setenv("SITEVAULT_DEBOUNCE_SECONDS", "0.01")
    return path


@pytest.fixture
def live_storage(monkeypatch):
    """Configure storage and stub out the network calls."""
    monkeypatch.setenv("SUPABASE_URL", "https://proj.example.co")
    token = jwt.encode(
        {"sub": "user-1", "exp": int(time.time()) + 3600}, "secret", algorithm="HS256"
    )
    monkeypatch.setenv("SITEVAULT_ACCESS_TOKEN", token)
    published: dict = {"document": {"hero": {"heading": "Live"}}, "uploads": []}

    def fake_fetch(self, path, cache_bust=True):
        return json.loads(json.dumps(published["document"]))

    def fake_upload(self, path, data, content_type, access_token, upsert=False):
        published["uploads"].append((path, data, upsert))
        if path == self.config.content_path:
            published["document"] = json.loads(data)
        return {}

    monkeypatch.setattr(
        "sitevault.integrations.storage.StorageClient.fetch_public_json", fake_fetch
    )
    monkeypatch.setattr("sitevault.integrations.storage.StorageClient.upload", fake_upload)
    return published


class TestCLI:
    """Tests for the CLI entry point."""

    def test_main_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "publish" in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "sitevault" in result.output


class TestDraftCommands:
    def test_set_then_get(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["set", "hero.heading", "Hello"])
        assert result.exit_code == 0, result.output
        assert "Draft updated" in result.output

        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] == {"hero": {"heading": "Hello"}}

        result = runner.invoke(app, ["get", "hero.heading"])
        assert result.exit_code == 0
        assert result.output.strip() == "Hello"

    def test_get_default(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["get", "hero.heading", "--default", "Fallback"])
        assert result.exit_code == 0
        assert result.output.strip() == "Fallback"

    def test_show(self, runner: CliRunner, drafts_path: Path) -> None:
        runner.invoke(app, ["set", "hero.heading", "Hello"])
        result = runner.invoke(app, ["show"])
        assert result.exit_code == 0
        assert "hero.heading" in result.output
        assert "Hello" in result.output

    def test_status_reports_draft(self, runner: CliRunner, drafts_path: Path) -> None:
        runner.invoke(app, ["set", "hero.heading", "Hello"])
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "not_configured" in result.output
        assert "unpublished changes" in result.output

    def test_save_draft(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["save-draft"])
        assert result.exit_code == 0
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] == {}

    def test_discard_with_yes(self, runner: CliRunner, drafts_path: Path) -> None:
        runner.invoke(app, ["set", "hero.heading", "Hello"])
        result = runner.invoke(app, ["discard", "--yes"])
        assert result.exit_code == 0
        assert "Draft discarded" in result.output

        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] is None

    def test_discard_declined(self, runner: CliRunner, drafts_path: Path) -> None:
        runner.invoke(app, ["set", "hero.heading", "Hello"])
        result = runner.invoke(app, ["discard"], input="n\n")
        assert result.exit_code == 0
        assert "Nothing changed" in result.output

        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] == {"hero": {"heading": "Hello"}}

    def test_bucket_option(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["--bucket", "media", "status"])
        assert result.exit_code == 0, result.output
        assert "media/config/content.json" in result.output

    def test_debounce_option(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["--debounce", "0.02", "set", "hero.heading", "Hello"])
        assert result.exit_code == 0, result.output
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] == {"hero": {"heading": "Hello"}}

    def test_corrupt_draft_store_reports_error(
        self, runner: CliRunner, drafts_path: Path
    ) -> None:
        drafts_path.write_text("{corrupt", encoding="utf-8")
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestPublishCommands:
    def test_publish_without_storage_fails(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["publish"])
        assert result.exit_code == 1
        assert "Failed to publish" in result.output

    def test_publish(self, runner: CliRunner, drafts_path: Path, live_storage: dict) -> None:
        runner.invoke(app, ["set", "hero.cta", "Book a demo"])
        result = runner.invoke(app, ["publish"])
        assert result.exit_code == 0, result.output
        assert "Published successfully" in result.output

        assert live_storage["document"] == {"hero": {"heading": "Live", "cta": "Book a demo"}}
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"] is None

    def test_upload_sets_key(
        self, runner: CliRunner, drafts_path: Path, live_storage: dict, tmp_path: Path
    ) -> None:
        image = tmp_path / "hero.png"
        image.write_bytes(b"\x89PNG")
        result = runner.invoke(app, ["upload", str(image), "--key", "hero.image"])
        assert result.exit_code == 0, result.output

        path, data, upsert = live_storage["uploads"][-1]
        assert path.startswith("marketing/")
        assert data == b"\x89PNG"
        assert upsert is False
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["content_draft"]["hero"]["image"].endswith(path)

    def test_asset_prefix_option(
        self, runner: CliRunner, drafts_path: Path, live_storage: dict, tmp_path: Path
    ) -> None:
        image = tmp_path / "logo.svg"
        image.write_bytes(b"<svg/>")
        result = runner.invoke(app, ["--asset-prefix", "brand", "upload", str(image)])
        assert result.exit_code == 0, result.output

        path, _, _ = live_storage["uploads"][-1]
        assert path.startswith("brand/")


class TestFieldsCommand:
    def test_requires_schema(self, runner: CliRunner, drafts_path: Path) -> None:
        result = runner.invoke(app, ["fields"])
        assert result.exit_code == 1

    def test_lists_fields(
        self, runner: CliRunner, drafts_path: Path, tmp_path: Path, monkeypatch
    ) -> None:
        schema = tmp_path / "fields.toml"
        schema.write_text(
            '[[sections]]\ntitle = "Hero"\n\n[[sections.fields]]\n'
            'label = "Heading"\nkey = "hero.heading"\ndefault = "Welcome"\n',
            encoding="utf-8",
        )
        monkeypatch.setenv("SITEVAULT_SCHEMA_FILE", str(schema))
        result = runner.invoke(app, ["fields"])
        assert result.exit_code == 0, result.output
        assert "Heading" in result.output
        assert "Welcome" in result.output

    def test_schema_option(self, runner: CliRunner, drafts_path: Path, tmp_path: Path) -> None:
        schema = tmp_path / "editor.toml"
        schema.write_text(
            '[[sections]]\ntitle = "Footer"\n\n[[sections.fields]]\n'
            'label = "Tagline"\nkey = "footer.tagline"\n',
            encoding="utf-8",
        )
        result = runner.invoke(app, ["--schema", str(schema), "fields"])
        assert result.exit_code == 0, result.output
        assert "Tagline" in result.output


class TestAuthCommands:
    def test_login_stores_session(self, runner: CliRunner, drafts_path: Path) -> None:
        session = AuthSession(access_token="tok", email="admin@example.com")
        with patch(
            "sitevault.cli.AuthClient.sign_in_with_password", return_value=session
        ) as mock_sign_in:
            result = runner.invoke(
                app, ["login", "--email", "admin@example.com", "--password", "pw"]
            )

        assert result.exit_code == 0, result.output
        mock_sign_in.assert_called_once_with("admin@example.com", "pw")
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert stored["auth_session"]["access_token"] == "tok"

    def test_logout(self, runner: CliRunner, drafts_path: Path) -> None:
        drafts_path.write_text(
            json.dumps({"auth_session": {"access_token": "tok"}}), encoding="utf-8"
        )
        result = runner.invoke(app, ["logout"])
        assert result.exit_code == 0
        stored = json.loads(drafts_path.read_text(encoding="utf-8"))
        assert "auth_session" not in stored
