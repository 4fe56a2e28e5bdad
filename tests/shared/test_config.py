from __future__ import annotations

from pathlib import Path

import pytest

from sqliter.shared import paths
from sqliter.shared.config import AppConfig, load_config
from sqliter.shared.exceptions import ConfigurationError


def _env(tmp_path: Path, **extra: str) -> dict[str, str]:
    return {paths.CONFIG_DIR_ENV: str(tmp_path / "config"), **extra}


def test_load_config_defaults(tmp_path: Path) -> None:
    cfg = load_config(env=_env(tmp_path))

    assert isinstance(cfg, AppConfig)
    assert cfg.source_path == tmp_path / "config" / "config.yaml"
    assert cfg.database.path is None
    assert cfg.database.read_only is False
    assert cfg.server.host == "127.0.0.1"
    assert cfg.server.port == 2826
    assert cfg.server.default_page_size == 100
    assert cfg.server.max_page_size == 1000
    assert cfg.server.allow_raw_where is False
    assert cfg.server.static_dir == paths.PACKAGED_STATIC_DIR
    assert cfg.server.cors_origins == ("*",)


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_file = tmp_path / "sqliter.yaml"
    cfg_file.write_text(
        """
        database:
          path: ~/browse.db
          read_only: true
        server:
          port: 8080
          allow_raw_where: true
          cors_origins: [http://localhost:5173]
        """,
        encoding="utf-8",
    )

    cfg = load_config(config_path=cfg_file, env=_env(tmp_path))

    assert cfg.source_path == cfg_file
    assert cfg.database.path == paths.resolve_path("~/browse.db")
    assert cfg.database.read_only is True
    assert cfg.server.port == 8080
    assert cfg.server.host == "127.0.0.1"
    assert cfg.server.allow_raw_where is True
    assert cfg.server.cors_origins == ("http://localhost:5173",)


def test_load_config_env_overrides(tmp_path: Path) -> None:
    db_file = tmp_path / "env.db"
    env = _env(
        tmp_path,
        SQLITER_DATABASE_PATH=str(db_file),
        SQLITER_PORT="9001",
        SQLITER_HOST="0.0.0.0",
        SQLITER_READ_ONLY="yes",
        SQLITER_ALLOW_RAW_WHERE="off",
        SQLITER_CORS_ORIGINS="http://a.test, http://b.test",
        SQLITER_STATIC_DIR=str(tmp_path / "dist"),
    )

    cfg = load_config(env=env)

    assert cfg.database.path == db_file
    assert cfg.database.read_only is True
    assert cfg.server.port == 9001
    assert cfg.server.host == "0.0.0.0"
    assert cfg.server.allow_raw_where is False
    assert cfg.server.cors_origins == ("http://a.test", "http://b.test")
    assert cfg.server.static_dir == tmp_path / "dist"


def test_env_overrides_win_over_yaml(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    (cfg_dir / "config.yaml").write_text("server:\n  port: 8080\n", encoding="utf-8")

    cfg = load_config(env=_env(tmp_path, SQLITER_PORT="9090"))

    assert cfg.server.port == 9090


@pytest.mark.parametrize(
    "key, value",
    [("SQLITER_PORT", "eighty"), ("SQLITER_READ_ONLY", "maybe")],
)
def test_invalid_env_override_raises(tmp_path: Path, key: str, value: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        load_config(env=_env(tmp_path, **{key: value}))

    assert key in str(excinfo.value)


@pytest.mark.parametrize(
    "body",
    [
        "server:\n  port: 70000\n",
        "server:\n  default_page_size: 0\n",
        "server:\n  default_page_size: 500\n  max_page_size: 100\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_yaml_values_raise(tmp_path: Path, body: str) -> None:
    cfg_file = tmp_path / "bad.yaml"
    cfg_file.write_text(body, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env=_env(tmp_path))


def test_with_overrides_ignores_unset_values(tmp_path: Path) -> None:
    cfg = load_config(env=_env(tmp_path))

    updated = cfg.with_overrides(port=7000, host=None, static_dir=str(tmp_path / "ui"))

    assert updated.server.port == 7000
    assert updated.server.host == cfg.server.host
    assert updated.server.static_dir == tmp_path / "ui"
    assert cfg.with_overrides(port=None) is cfg


def test_with_database_path_and_read_only(tmp_path: Path) -> None:
    cfg = load_config(env=_env(tmp_path))

    updated = cfg.with_database_path(tmp_path / "other.db").with_read_only(True)

    assert updated.database.path == tmp_path / "other.db"
    assert updated.database.read_only is True
    assert cfg.database.path is None
