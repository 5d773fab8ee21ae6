"""
test/test_cli.py — Configuration, logging setup and the ucp_cli tool

Run: pytest test/test_cli.py -v
"""

import io
import json
import logging
import os
import sys

# Add parent to path for direct execution
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from pydantic import ValidationError

from tools.ucp_cli import main
from ucp_core import UcpConfig, load_config, setup_logging
from ucp_core.logs import DEFAULT_LOGGERS


# ==================================================================
# Helpers
# ==================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("UCP_CONFIG", "UCP_DATABASE_PATH", "UCP_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_loggers():
    yield
    for name in DEFAULT_LOGGERS + ("test_ucp_logs",):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True


def _write(path, content):
    path.write_text(content, encoding="utf-8")
    return str(path)


# ==================================================================
# 1. Configuration
# ==================================================================

def test_load_config_defaults():
    config = load_config()
    assert config == UcpConfig()
    assert config.database_path == "./ucp_config.db"
    assert config.ucp_version == "2026-01-11"
    assert config.key_id_prefix == "ucp_"
    assert config.log_level == "INFO"
    assert config.profile_cache_max_entries == 256


def test_load_config_from_yaml(tmp_path):
    path = _write(tmp_path / "custom.yaml", (
        "database_path: /var/lib/ucp/keys.db\n"
        "key_id_prefix: shop_\n"
        "profile_cache_ttl: 60\n"
        "profile_cache_max_entries: 16\n"
        "log_level: debug\n"
    ))
    config = load_config(path)
    assert config.database_path == "/var/lib/ucp/keys.db"
    assert config.key_id_prefix == "shop_"
    assert config.profile_cache_ttl == 60
    assert config.profile_cache_max_entries == 16
    assert config.log_level == "DEBUG"


def test_load_config_default_file_and_env_path(tmp_path, monkeypatch):
    _write(tmp_path / "ucp.yaml", "key_id_prefix: local_\n")
    assert load_config().key_id_prefix == "local_"

    other = _write(tmp_path / "other.yaml", "key_id_prefix: env_\n")
    monkeypatch.setenv("UCP_CONFIG", other)
    assert load_config().key_id_prefix == "env_"


def test_load_config_env_overrides(tmp_path, monkeypatch):
    path = _write(tmp_path / "ucp.yaml", "database_path: from-file.db\nlog_level: INFO\n")
    monkeypatch.setenv("UCP_DATABASE_PATH", "from-env.db")
    monkeypatch.setenv("UCP_LOG_LEVEL", "warning")

    config = load_config(path)
    assert config.database_path == "from-env.db"
    assert config.log_level == "WARNING"


def test_load_config_empty_file(tmp_path):
    assert load_config(_write(tmp_path / "empty.yaml", "")) == UcpConfig()


def test_load_config_rejects_invalid_values(tmp_path, monkeypatch):
    with pytest.raises(ValidationError):
        load_config(_write(tmp_path / "bad.yaml", "log_level: LOUD\n"))
    with pytest.raises(ValidationError):
        load_config(_write(tmp_path / "bad2.yaml", "profile_timeout: 0\n"))

    monkeypatch.setenv("UCP_LOG_LEVEL", "verbose")
    with pytest.raises(ValidationError):
        load_config()


# ==================================================================
# 2. Logging
# ==================================================================

def test_setup_logging_emits_json_lines():
    stream = io.StringIO()
    (logger,) = setup_logging("info", logger_names=("test_ucp_logs",), stream=stream)

    logger.debug("hidden")
    logger.info("Generated key %s", "ucp_1", extra={"scope": "channel"})

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["level"] == "INFO"
    assert record["logger"] == "test_ucp_logs"
    assert record["message"] == "Generated key ucp_1"
    assert record["extra"] == {"scope": "channel"}
    assert "timestamp" in record


def test_setup_logging_includes_exceptions():
    stream = io.StringIO()
    (logger,) = setup_logging("ERROR", logger_names=("test_ucp_logs",), stream=stream)
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        logger.exception("failed")

    record = json.loads(stream.getvalue())
    assert "RuntimeError: boom" in record["exception"]


def test_setup_logging_rejects_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("CHATTY")


def test_setup_logging_configures_package_loggers():
    loggers = setup_logging("WARNING", stream=io.StringIO())
    assert [l.name for l in loggers] == list(DEFAULT_LOGGERS)
    assert all(l.level == logging.WARNING and not l.propagate for l in loggers)


# ==================================================================
# 3. CLI
# ==================================================================

def test_cli_keys_sign_verify(tmp_path, capsys):
    db = str(tmp_path / "keys.db")

    assert main(["--db", db, "keys", "generate", "--scope", "shop"]) == 0
    key_id = capsys.readouterr().out.strip()
    assert key_id.startswith("ucp_")

    assert main(["--db", db, "keys", "show", "--scope", "shop"]) == 0
    jwks = json.loads(capsys.readouterr().out)
    assert jwks[0]["kid"] == key_id
    jwks_path = _write(tmp_path / "jwks.json", json.dumps(jwks))

    body_path = _write(tmp_path / "body.json", '{"id":"chk_1"}')
    assert main(["--db", db, "sign", "--scope", "shop", body_path]) == 0
    signature = capsys.readouterr().out.strip()
    assert ".." in signature

    assert main(["verify", "--jwks", jwks_path, signature, body_path]) == 0
    assert "SIGNATURE VALID" in capsys.readouterr().out

    tampered_path = _write(tmp_path / "tampered.json", '{"id":"chk_2"}')
    assert main(["verify", "--jwks", jwks_path, signature, tampered_path]) == 1
    assert "SIGNATURE INVALID" in capsys.readouterr().out


def test_cli_verify_accepts_profile_document(tmp_path, capsys):
    db = str(tmp_path / "keys.db")
    body_path = _write(tmp_path / "body.txt", "hello")

    main(["--db", db, "keys", "show", "--scope", "shop"])
    keys = json.loads(capsys.readouterr().out)
    main(["--db", db, "sign", "--scope", "shop", body_path])
    signature = capsys.readouterr().out.strip()

    profile_path = _write(tmp_path / "profile.json", json.dumps({
        "ucp": {"version": "2026-01-11"},
        "signing_keys": keys,
    }))
    assert main(["verify", "--jwks", profile_path, signature, body_path]) == 0


def test_cli_uses_config_database(tmp_path, capsys):
    _write(tmp_path / "ucp.yaml", "database_path: configured.db\nkey_id_prefix: cfg_\n")
    assert main(["keys", "generate", "--scope", "s"]) == 0
    assert capsys.readouterr().out.startswith("cfg_")
    assert (tmp_path / "configured.db").exists()


def test_cli_closes_key_store(tmp_path, capsys, monkeypatch):
    import tools.ucp_cli as cli

    opened = []

    class TrackingStore(cli.SqliteConfigStore):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.closed = False
            opened.append(self)

        def close(self):
            self.closed = True
            super().close()

    monkeypatch.setattr(cli, "SqliteConfigStore", TrackingStore)
    db = str(tmp_path / "keys.db")
    body_path = _write(tmp_path / "body.txt", "hello")

    assert main(["--db", db, "keys", "generate", "--scope", "shop"]) == 0
    assert main(["--db", db, "keys", "show", "--scope", "shop"]) == 0
    assert main(["--db", db, "sign", "--scope", "shop", body_path]) == 0
    capsys.readouterr()

    assert len(opened) == 3
    assert all(store.closed for store in opened)


def test_cli_negotiate(tmp_path, capsys):
    available = _write(tmp_path / "available.json", json.dumps([
        {"name": "dev.ucp.shopping.checkout", "version": "2026-01-11"},
    ]))
    requested = _write(tmp_path / "requested.json", json.dumps([
        {"name": "dev.ucp.shopping.checkout", "version": "2026-01-11"},
        {"name": "dev.ucp.shopping.fulfillment", "version": "2026-01-11",
         "extends": "dev.ucp.shopping.checkout"},
    ]))
    assert main(["negotiate", available, requested]) == 0
    assert json.loads(capsys.readouterr().out) == [
        {"name": "dev.ucp.shopping.checkout", "version": "2026-01-11"},
    ]


def test_cli_missing_file(tmp_path, capsys):
    assert main(["--db", str(tmp_path / "k.db"), "sign", "--scope", "s", "nope.json"]) == 1
    assert "File not found: nope.json" in capsys.readouterr().out
