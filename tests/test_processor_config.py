from pathlib import Path

import pytest

from dochub.config import (
    ProcessorConfig,
    RelayConfig,
    check_environment,
    default_config,
    describe_config,
    load_runtime_env,
    validate_config,
)
from dochub.errors import InvalidConfigError, MissingCredentialError


def test_defaults_applied():
    config = ProcessorConfig(credential="secret")

    assert config.image_directory == "./images"
    assert config.image_url_prefix == "/images"
    assert config.max_retries == 3
    assert config.retry_delay_ms == 1000
    assert config.custom_transformers is None


@pytest.mark.parametrize("credential", ["", "   "])
def test_blank_credential_is_rejected(credential):
    with pytest.raises(MissingCredentialError):
        ProcessorConfig(credential=credential)


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("max_retries", 11),
        ("max_retries", -1),
        ("max_retries", True),
        ("retry_delay_ms", -1),
        ("image_directory", ""),
        ("image_url_prefix", 5),
    ],
)
def test_invalid_values_name_the_field(field, value):
    with pytest.raises(InvalidConfigError) as excinfo:
        ProcessorConfig(credential="secret", **{field: value})

    assert excinfo.value.field == field


def test_from_env_reads_variables_and_overrides_win():
    env = {
        "NOTION_API_KEY": " env-key ",
        "NOTION_IMAGE_DIR": "/tmp/media",
        "NOTION_IMAGE_PREFIX": "/static",
        "NOTION_MAX_RETRIES": "4",
        "NOTION_RETRY_DELAY": "250",
    }

    from_env = ProcessorConfig.from_env(env)
    overridden = ProcessorConfig.from_env(env, max_retries=0, image_url_prefix="/media")

    assert from_env.credential == "env-key"
    assert from_env.image_directory == "/tmp/media"
    assert from_env.image_url_prefix == "/static"
    assert (from_env.max_retries, from_env.retry_delay_ms) == (4, 250)
    assert overridden.max_retries == 0
    assert overridden.image_url_prefix == "/media"


def test_from_env_rejects_unparsable_numbers():
    with pytest.raises(InvalidConfigError) as excinfo:
        ProcessorConfig.from_env({"NOTION_API_KEY": "k", "NOTION_RETRY_DELAY": "soon"})

    assert excinfo.value.field == "retry_delay_ms"


def test_from_env_without_key_fails():
    with pytest.raises(MissingCredentialError):
        ProcessorConfig.from_env({})


def test_validate_config_and_defaults():
    config = validate_config({"credential": "k", "max_retries": "2"})

    assert config.max_retries == 2
    assert default_config()["credential"] == ""
    with pytest.raises(InvalidConfigError):
        validate_config({"credential": "k", "colour": "blue"})


def test_check_environment_reports_missing_and_warnings():
    report = check_environment({})
    ready = check_environment(
        {
            "NOTION_API_KEY": "k",
            "NOTION_IMAGE_DIR": "./img",
            "NOTION_IMAGE_PREFIX": "/img",
            "NOTION_TEST_PAGE_ID": "abc",
        }
    )

    assert report.valid is False
    assert report.missing == ("NOTION_API_KEY",)
    assert len(report.warnings) == 3
    assert ready.valid is True
    assert ready.warnings == ()


def test_describe_config_redacts_credential():
    summary = describe_config(
        ProcessorConfig(credential="top-secret", custom_transformers={"x": lambda b: ""})
    )

    assert summary["credential"] == "set"
    assert summary["custom_transformers"] == 1
    assert "top-secret" not in str(summary)


def test_load_runtime_env_merges_file_under_process_env(tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nNOTION_API_KEY='from-file'\nexport NOTION_IMAGE_DIR=./file-images\n",
        encoding="utf-8",
    )

    merged = load_runtime_env(
        env_file=env_file, base_env={"NOTION_IMAGE_DIR": "./process-images"}
    )

    assert merged["NOTION_API_KEY"] == "from-file"
    assert merged["NOTION_IMAGE_DIR"] == "./process-images"


def test_relay_config_requires_all_values():
    config = RelayConfig.from_env(
        {"GITHUB_TOKEN": "t", "GITHUB_OWNER": "octo", "GITHUB_REPO": "site"}
    )

    assert (config.github_owner, config.github_repo) == ("octo", "site")
    with pytest.raises(InvalidConfigError) as excinfo:
        RelayConfig.from_env({"GITHUB_TOKEN": "t"})
    assert excinfo.value.field == "github_owner"
