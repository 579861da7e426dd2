"""
Tests for configuration loading from the environment and .env files.
"""

import pytest
from pydantic import ValidationError

from dasbudget.config import DEFAULT_API_BASE_URL, ClientConfig, load_config


def test_defaults():
    config = ClientConfig(refresh_token="r", api_key="k")

    assert config.debug is False
    assert config.budget_id is None
    assert config.api_base_url == DEFAULT_API_BASE_URL
    assert config.identity_base_url == "https://securetoken.googleapis.com"
    assert config.max_attempts == 1


@pytest.mark.parametrize("field", ["refresh_token", "api_key"])
def test_blank_secrets_rejected(field):
    values = {"refresh_token": "r", "api_key": "k", field: "  "}

    with pytest.raises(ValidationError):
        ClientConfig(**values)


def test_trailing_slash_stripped():
    config = ClientConfig(refresh_token="r", api_key="k", api_base_url="https://example.test/")

    assert config.api_base_url == "https://example.test"


def test_load_from_environment(clean_env):
    clean_env.update(
        {
            "DASBUDGET_REFRESH_TOKEN": "env-refresh",
            "DASBUDGET_API_KEY": "env-key",
            "DASBUDGET_DEBUG": "true",
            "DASBUDGET_BUDGET_ID": "budget-3",
            "DASBUDGET_MAX_ATTEMPTS": "2",
        }
    )

    config = load_config()

    assert config.refresh_token == "env-refresh"
    assert config.api_key == "env-key"
    assert config.debug is True
    assert config.budget_id == "budget-3"
    assert config.max_attempts == 2


def test_load_from_env_file(clean_env, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("DASBUDGET_REFRESH_TOKEN=file-refresh\nDASBUDGET_API_KEY=file-key\n")
    clean_env["DASBUDGET_API_KEY"] = "process-key"

    config = load_config(env_file)

    assert config.refresh_token == "file-refresh"
    assert config.api_key == "process-key"


def test_overrides_win(clean_env):
    clean_env.update({"DASBUDGET_REFRESH_TOKEN": "env-refresh", "DASBUDGET_API_KEY": "env-key"})

    config = load_config(budget_id="override")

    assert config.budget_id == "override"


def test_missing_credentials(clean_env, tmp_path):
    empty = tmp_path / ".env"
    empty.write_text("")

    with pytest.raises(ValueError):
        load_config(empty)
