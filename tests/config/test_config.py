from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from leadmerge.config import (
    ConfigurationError,
    configure_logging,
    get_database_config,
    get_matching_config,
    get_resolve_config,
    get_storage_config,
)
from leadmerge.domain.model import Confidence

_MATCHING_VARS = (
    "LEADMERGE_MIN_PHONE_DIGITS",
    "LEADMERGE_MIN_CONFIDENCE",
    "LEADMERGE_SALES_STAGES",
    "LEADMERGE_SOURCE_PRECEDENCE",
)


def test_matching_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _MATCHING_VARS:
        monkeypatch.delenv(name, raising=False)

    config = get_matching_config()

    assert config.min_phone_digits == 6
    assert config.min_confidence is Confidence.MEDIUM
    assert config.sales_stages == frozenset({"opportunity", "customer", "deal"})
    assert config.source_precedence == ("close", "calendly", "typeform")


def test_matching_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEADMERGE_MIN_PHONE_DIGITS", "10")
    monkeypatch.setenv("LEADMERGE_MIN_CONFIDENCE", "High")
    monkeypatch.setenv("LEADMERGE_SALES_STAGES", "Customer, won")
    monkeypatch.setenv("LEADMERGE_SOURCE_PRECEDENCE", "hubspot,close")

    config = get_matching_config()

    assert config.min_confidence is Confidence.HIGH
    assert config.sales_stages == frozenset({"customer", "won"})
    assert config.source_precedence == ("hubspot", "close")
    assert config.build_normalizer().min_phone_digits == 10
    assert config.build_matcher().normalizer.min_phone_digits == 10
    assert config.build_merge_policy().sales_stages == frozenset({"customer", "won"})


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("LEADMERGE_MIN_PHONE_DIGITS", "six"),
        ("LEADMERGE_MIN_PHONE_DIGITS", "0"),
        ("LEADMERGE_MIN_CONFIDENCE", "certain"),
        ("LEADMERGE_SOURCE_PRECEDENCE", " , "),
    ],
)
def test_matching_config_rejects_invalid_values(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError, match=name):
        get_matching_config()


def test_resolve_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LEADMERGE_BATCH_SIZE", raising=False)
    assert get_resolve_config().batch_size == 200

    monkeypatch.setenv("LEADMERGE_BATCH_SIZE", "25")
    assert get_resolve_config().batch_size == 25


def test_storage_config_uses_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEADMERGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()
    database = get_database_config(storage=storage)

    assert storage.database_path == (tmp_path / "data" / "leadmerge.db").resolve()
    assert database.uri == f"sqlite+pysqlite:///{storage.database_path}"
    assert database.is_sqlite
    assert (tmp_path / "data").is_dir()


def test_database_uri_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"


def test_default_data_dir_follows_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    if os.name == "nt":
        pytest.skip("XDG layout applies to POSIX hosts only")
    monkeypatch.delenv("LEADMERGE_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    assert get_storage_config().data_dir == (tmp_path / "leadmerge").resolve()


def test_configuration_error_names_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEADMERGE_MIN_CONFIDENCE", "certain")

    with pytest.raises(ConfigurationError) as excinfo:
        get_matching_config()

    assert excinfo.value.variable == "LEADMERGE_MIN_CONFIDENCE"
    assert "certain" in excinfo.value.problem


def test_sqlite_busy_timeout_reaches_engine_options(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("LEADMERGE_DB_BUSY_TIMEOUT", "5")

    config = get_database_config()

    assert config.busy_timeout == 5
    assert config.engine_options() == {"connect_args": {"timeout": 5}}


def test_non_sqlite_database_has_no_driver_options(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/leads")
    monkeypatch.delenv("LEADMERGE_DB_BUSY_TIMEOUT", raising=False)

    config = get_database_config()

    assert not config.is_sqlite
    assert config.engine_options() == {}


def test_configure_logging_reads_level_from_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[dict[str, object]] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    sql_logger = logging.getLogger("sqlalchemy.engine")
    original = sql_logger.level
    try:
        monkeypatch.setenv("LEADMERGE_LOG_LEVEL", "debug")
        assert configure_logging() == logging.DEBUG
        assert sql_logger.level == logging.INFO

        monkeypatch.delenv("LEADMERGE_LOG_LEVEL")
        assert configure_logging() == logging.INFO
        assert sql_logger.level == logging.WARNING
    finally:
        sql_logger.setLevel(original)

    assert [call["level"] for call in calls] == [logging.DEBUG, logging.INFO]


def test_configure_logging_rejects_unknown_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LEADMERGE_LOG_LEVEL", "chatty")

    with pytest.raises(ConfigurationError, match="LEADMERGE_LOG_LEVEL"):
        configure_logging()
