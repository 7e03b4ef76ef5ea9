#!/usr/bin/env python3

import json
from pathlib import Path

import raxcloud.utils.load_config as load_config_module
from raxcloud.utils.load_config import load_config_by_file


def test_load_config_jsonfile_and_env_fallback(tmp_path: Path, monkeypatch) -> None:
    """Credentials resolve from the secrets file first, then the environment."""
    json_path = tmp_path / "secrets.json"
    json_path.write_text(json.dumps({"rackspace": {"api_key": "key-from-json"}}), encoding="utf-8")

    toml_path = tmp_path / "config.toml"
    toml_path.write_text(
        "\n".join(
            [
                "[rackspace]",
                'api_key = "jsonfile,rackspace.api_key"',
                'username = "jsonfile,RAX_USERNAME"',
                'auth_url = "jsonfile,not.exists"',
                'location = "UK"',
            ]
        ),
        encoding="utf-8",
    )

    monkeypatch.setenv("RAX_USERNAME", "env-user")
    config = load_config_by_file(path=str(toml_path), jsonfile=str(json_path))

    section = config["rackspace"]
    assert section["api_key"] == "key-from-json"
    assert section["username"] == "env-user"
    assert section["auth_url"] == "jsonfile,not.exists"
    assert section["location"] == "UK"


def test_load_config_env_placeholder(tmp_path: Path, monkeypatch) -> None:
    toml_path = tmp_path / "config.toml"
    toml_path.write_text(
        "\n".join(
            [
                "[rackspace]",
                'api_key = "env,RAX_API_KEY"',
                'regions = ["env,RAX_REGION", "ORD"]',
                'username = "env,RAX_UNSET_VARIABLE"',
                "timeout_ms = 5000",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("RAX_API_KEY", "key-from-env")
    monkeypatch.setenv("RAX_REGION", "DFW")
    monkeypatch.delenv("RAX_UNSET_VARIABLE", raising=False)

    config = load_config_by_file(path=str(toml_path))

    assert config["rackspace"]["api_key"] == "key-from-env"
    assert config["rackspace"]["regions"] == ["DFW", "ORD"]
    assert config["rackspace"]["username"] == "env,RAX_UNSET_VARIABLE"
    assert config["rackspace"]["timeout_ms"] == 5000


def test_load_config_reads_json_files(tmp_path: Path) -> None:
    json_path = tmp_path / "config.json"
    json_path.write_text(json.dumps({"rackspace": {"username": "demo"}}), encoding="utf-8")
    assert load_config_by_file(path=str(json_path)) == {"rackspace": {"username": "demo"}}


def test_load_config_missing_secrets_file_keeps_placeholders(tmp_path: Path) -> None:
    toml_path = tmp_path / "config.toml"
    toml_path.write_text('api_key = "jsonfile,rackspace.api_key"', encoding="utf-8")
    config = load_config_by_file(path=str(toml_path), jsonfile=str(tmp_path / "absent.json"))
    assert config["api_key"] == "jsonfile,rackspace.api_key"


def test_load_config_jsonfile_is_loaded_once(tmp_path: Path, monkeypatch) -> None:
    """The secrets file is parsed once per config load."""
    json_path = tmp_path / "secrets.json"
    json_path.write_text(
        json.dumps({"rackspace": {"username": "demo", "api_key": "abc"}}),
        encoding="utf-8",
    )

    toml_path = tmp_path / "config.toml"
    toml_path.write_text(
        "\n".join(
            [
                "[rackspace]",
                'username = "jsonfile,rackspace.username"',
                'api_key = "jsonfile,rackspace.api_key"',
            ]
        ),
        encoding="utf-8",
    )

    original_json_load = load_config_module.json.load
    load_calls = {"count": 0}

    def _spy_json_load(*args, **kwargs):
        load_calls["count"] += 1
        return original_json_load(*args, **kwargs)

    monkeypatch.setattr(load_config_module.json, "load", _spy_json_load)
    config = load_config_by_file(path=str(toml_path), jsonfile=str(json_path))

    assert config["rackspace"] == {"username": "demo", "api_key": "abc"}
    assert load_calls["count"] == 1
