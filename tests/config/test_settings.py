from __future__ import annotations

import pytest

from foliosync.config import (
    MAX_GROUP_OPERATIONS,
    BatchConfig,
    ConfigurationError,
    DirectoryRules,
    MissingConfigurationError,
    get_app_config,
    get_batch_config,
    get_directory_rules,
    get_identity_config,
)
from foliosync.domain.model import Role


def test_batch_size_defaults_to_store_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("FOLIOSYNC_BATCH_SIZE", raising=False)

    config = get_batch_config()

    assert config.group_size == MAX_GROUP_OPERATIONS == 500


def test_batch_size_above_cap_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOLIOSYNC_BATCH_SIZE", "501")

    with pytest.raises(ConfigurationError) as exc:
        get_batch_config()

    assert exc.value.variable == "FOLIOSYNC_BATCH_SIZE"


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        BatchConfig(group_size=0)


def test_directory_rules_defaults() -> None:
    rules = DirectoryRules()

    assert rules.default_department in rules.departments
    assert Role.TEAM_LEADER not in rules.roles
    assert rules.email_for("t01") == "t01@hongson.ac.th"


def test_directory_rules_reject_unknown_default_department() -> None:
    with pytest.raises(ConfigurationError):
        DirectoryRules(default_department="Astrology")


def test_email_domain_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTITY_EMAIL_DOMAIN", "school.example")

    assert get_directory_rules().email_for("k02") == "k02@school.example"


def test_identity_config_requires_url_and_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTITY_API_URL", "https://identity.example/v1")
    monkeypatch.delenv("IDENTITY_API_KEY", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        get_identity_config()

    assert exc.value.variables == ("IDENTITY_API_KEY",)


def test_identity_config_never_retries_account_creation(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IDENTITY_API_URL", "https://identity.example/v1")
    monkeypatch.setenv("IDENTITY_API_KEY", "secret")

    config = get_identity_config()

    assert config.api_key == "secret"
    assert config.resilience.base_url == "https://identity.example/v1"
    assert "POST" not in config.resilience.retry.allowed_methods


def test_app_config_without_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("IDENTITY_API_URL", raising=False)
    monkeypatch.delenv("IDENTITY_API_KEY", raising=False)
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")

    config = get_app_config(require_identity=False)

    assert config.identity is None
    assert config.database.uri == "sqlite+pysqlite:///:memory:"
