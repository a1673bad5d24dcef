from __future__ import annotations

import json

import pytest

from core.errors import ConfigurationError
from settings import load_settings, resolve_config_path


def test_load_json_settings_with_defaults(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"filters": [{"name": "team"}]}), encoding="utf-8")

    settings = load_settings(str(path))

    assert settings.filters == [{"name": "team"}]
    assert settings.stream.wanted_collections == ("app.bsky.feed.post",)
    assert settings.stream.url.startswith("wss://")
    assert settings.directory.service_url == "https://public.api.bsky.app"
    assert settings.notifications.method == "console"
    assert settings.notifications.snippet_chars == 300
    assert settings.notifications.format == "plain"
    assert settings.db_path == str(tmp_path / "skyscope.db")


def test_load_yaml_settings(tmp_path) -> None:
    path = tmp_path / "filters.yaml"
    path.write_text(
        """
filters:
  - name: bluesky team
    subscribes:
      handles:
        - jay.bsky.team
    keywords:
      includes: [bluesky]
stream:
  wanted_collections: app.bsky.feed.post
notifications:
  method: log
  format: markdown
  snippet_chars: 50
db_path: /tmp/elsewhere.db
""",
        encoding="utf-8",
    )

    settings = load_settings(str(path))

    assert settings.filters[0]["subscribes"]["handles"] == ["jay.bsky.team"]
    assert settings.stream.wanted_collections == ("app.bsky.feed.post",)
    assert settings.notifications.method == "log"
    assert settings.notifications.snippet_chars == 50
    assert settings.notifications.format == "markdown"
    assert settings.db_path == "/tmp/elsewhere.db"


def test_empty_yaml_is_an_empty_config(tmp_path) -> None:
    path = tmp_path / "config.yml"
    path.write_text("", encoding="utf-8")
    assert load_settings(str(path)).filters == []


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "absent.json"))


@pytest.mark.parametrize(
    "config",
    [
        [1, 2],
        {"filters": {"name": "team"}},
        {"notifications": {"method": "pigeon"}},
        {"notifications": {"format": "html"}},
        {"stream": "wss://example"},
    ],
)
def test_malformed_config_raises(tmp_path, config) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(str(path))


def test_config_path_resolution(monkeypatch) -> None:
    monkeypatch.setenv("SKYSCOPE_CONFIG", "/etc/skyscope.yaml")
    assert resolve_config_path("explicit.json") == "explicit.json"
    assert resolve_config_path() == "/etc/skyscope.yaml"
