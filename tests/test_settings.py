from __future__ import annotations

import json

import pytest

from infra.paths import dumps_root, get_data_root
from infra.settings import ConfigError, DEFAULT_RESOURCES, load_settings


def test_defaults_without_file():
    settings = load_settings(environ={})

    assert settings.source_api.base_url == "https://web.roapp.io"
    assert settings.source_api.page_size == 50
    assert settings.source_api.max_pages == 200
    assert settings.source_api.resources == dict(DEFAULT_RESOURCES)
    assert settings.ledger.tolerance == 0.01
    assert settings.ledger.warehouse_matcher == "substring"


def test_yaml_file_with_env_overlay(tmp_path):
    path = tmp_path / "stockledger.yml"
    path.write_text(
        "source_api:\n"
        "  page_size: 25\n"
        "  username: from-file\n"
        "  resources:\n"
        "    postings: /postings\n"
        "ledger:\n"
        "  tolerance: 0.5\n"
        "  warehouse_matcher: EXACT\n",
        encoding="utf-8",
    )
    env = {
        "REMONLINE_BASE_URL": "https://legacy.example.test",
        "LOGIN_SERVICE_URL": "https://login.example.test",
        "REMONLINE_USERNAME": "from-env",
        "REMONLINE_PASSWORD": "secret",
    }

    settings = load_settings(path, environ=env)

    api = settings.source_api
    assert api.page_size == 25
    assert api.base_url == "https://legacy.example.test"
    assert api.login_service_url == "https://login.example.test"
    assert api.username == "from-env"
    assert api.password == "secret"
    assert api.resources["postings"] == "/postings"
    assert api.resources["goods_flow"] == DEFAULT_RESOURCES["goods_flow"]
    assert settings.ledger.tolerance == 0.5
    assert settings.ledger.warehouse_matcher == "exact"


def test_roapp_base_url_wins_over_legacy_name():
    settings = load_settings(
        environ={"ROAPP_BASE_URL": "https://new.example.test", "REMONLINE_BASE_URL": "https://old.example.test"}
    )
    assert settings.source_api.base_url == "https://new.example.test"


def test_config_path_from_environment(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"source_api": {"max_pages": 3}}), encoding="utf-8")

    settings = load_settings(environ={"STOCKLEDGER_CONFIG": str(path)})

    assert settings.source_api.max_pages == 3


@pytest.mark.parametrize(
    "payload",
    [
        {"source_api": {"page_size": 0}},
        {"source_api": {"timeout_seconds": "soon"}},
        {"source_api": {"resources": {"invoices": "/x"}}},
        {"ledger": {"tolerance": -1}},
        {"ledger": {"warehouse_matcher": "fuzzy"}},
        {"ledger": ["not", "a", "mapping"]},
    ],
)
def test_invalid_values_raise_config_error(tmp_path, payload):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ConfigError):
        load_settings(path, environ={})


def test_missing_and_malformed_files(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_settings(tmp_path / "absent.yml", environ={})
    broken = tmp_path / "broken.yml"
    broken.write_text("source_api: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="parse"):
        load_settings(broken, environ={})


def test_data_root_override(tmp_path, monkeypatch):
    monkeypatch.setenv("STOCKLEDGER_DATA_ROOT", str(tmp_path))

    assert get_data_root() == tmp_path
    assert dumps_root() == tmp_path / "dumps"
    assert dumps_root("1.json") == tmp_path / "dumps" / "1.json"
