"""Configuration for the article processor and the webhook relay."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dochub.errors import InvalidConfigError, MissingCredentialError
from dochub.logging import get_logger

if TYPE_CHECKING:
    from dochub.core.transforms import BlockTransform

logger = get_logger(__name__)

DEFAULT_IMAGE_DIRECTORY = "./images"
DEFAULT_IMAGE_URL_PREFIX = "/images"
DEFAULT_MAX_RETRIES = 3
MAX_RETRIES_LIMIT = 10
DEFAULT_RETRY_DELAY_MS = 1000

ENV_API_KEY = "NOTION_API_KEY"
ENV_IMAGE_DIR = "NOTION_IMAGE_DIR"
ENV_IMAGE_PREFIX = "NOTION_IMAGE_PREFIX"
ENV_MAX_RETRIES = "NOTION_MAX_RETRIES"
ENV_RETRY_DELAY = "NOTION_RETRY_DELAY"
ENV_TEST_PAGE_ID = "NOTION_TEST_PAGE_ID"


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].lstrip()
        key, _, value = stripped.partition("=")
        key = key.strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        if key:
            env_values[key] = value
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime values, letting the process environment override ``.env``."""

    env: dict[str, str] = {}
    path = Path(env_file) if env_file is not None else Path(".env")
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))
    source = dict(base_env if base_env is not None else os.environ)
    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(field_name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidConfigError(field_name, f"{field_name} must be an integer")
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        raise InvalidConfigError(
            field_name, f"{field_name} must be an integer, got {raw!r}"
        ) from exc


@dataclass(slots=True, frozen=True)
class ProcessorConfig:
    """Explicit settings consumed by the fetch/convert core."""

    credential: str
    image_directory: str = DEFAULT_IMAGE_DIRECTORY
    image_url_prefix: str = DEFAULT_IMAGE_URL_PREFIX
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    custom_transformers: Mapping[str, BlockTransform] | None = field(
        default=None, compare=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.credential, str) or not self.credential.strip():
            raise MissingCredentialError()
        if not isinstance(self.image_directory, str):
            raise InvalidConfigError(
                "image_directory", "image_directory must be a string"
            )
        if not self.image_directory:
            raise InvalidConfigError(
                "image_directory", "image_directory must not be empty"
            )
        if not isinstance(self.image_url_prefix, str):
            raise InvalidConfigError(
                "image_url_prefix", "image_url_prefix must be a string"
            )
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise InvalidConfigError("max_retries", "max_retries must be an integer")
        if not 0 <= self.max_retries <= MAX_RETRIES_LIMIT:
            raise InvalidConfigError(
                "max_retries",
                f"max_retries must be between 0 and {MAX_RETRIES_LIMIT}",
            )
        if isinstance(self.retry_delay_ms, bool) or not isinstance(
            self.retry_delay_ms, int
        ):
            raise InvalidConfigError(
                "retry_delay_ms", "retry_delay_ms must be an integer"
            )
        if self.retry_delay_ms < 0:
            raise InvalidConfigError("retry_delay_ms", "retry_delay_ms must be >= 0")

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> ProcessorConfig:
        """Build a config from environment values; explicit overrides win."""

        source = env if env is not None else load_runtime_env()
        values: dict[str, Any] = {}
        if not _blank(source.get(ENV_API_KEY)):
            values["credential"] = str(source[ENV_API_KEY]).strip()
        if not _blank(source.get(ENV_IMAGE_DIR)):
            values["image_directory"] = str(source[ENV_IMAGE_DIR])
        if not _blank(source.get(ENV_IMAGE_PREFIX)):
            values["image_url_prefix"] = str(source[ENV_IMAGE_PREFIX])
        if not _blank(source.get(ENV_MAX_RETRIES)):
            values["max_retries"] = _parse_int("max_retries", source[ENV_MAX_RETRIES])
        if not _blank(source.get(ENV_RETRY_DELAY)):
            values["retry_delay_ms"] = _parse_int(
                "retry_delay_ms", source[ENV_RETRY_DELAY]
            )
        values.update({key: value for key, value in overrides.items() if value is not None})
        return validate_config(values)


def validate_config(values: Mapping[str, Any]) -> ProcessorConfig:
    """Validate a loose mapping and apply defaults."""

    known = {
        "credential",
        "image_directory",
        "image_url_prefix",
        "max_retries",
        "retry_delay_ms",
        "custom_transformers",
    }
    unknown = sorted(set(values) - known)
    if unknown:
        raise InvalidConfigError(unknown[0], f"Unknown configuration key: {unknown[0]}")
    if _blank(values.get("credential")):
        raise MissingCredentialError()

    kwargs = {key: value for key, value in values.items() if value is not None}
    for name in ("max_retries", "retry_delay_ms"):
        if name in kwargs:
            kwargs[name] = _parse_int(name, kwargs[name])
    return ProcessorConfig(**kwargs)


def default_config() -> dict[str, Any]:
    """Return the default settings (credential left empty)."""

    return {
        "credential": "",
        "image_directory": DEFAULT_IMAGE_DIRECTORY,
        "image_url_prefix": DEFAULT_IMAGE_URL_PREFIX,
        "max_retries": DEFAULT_MAX_RETRIES,
        "retry_delay_ms": DEFAULT_RETRY_DELAY_MS,
    }


@dataclass(slots=True, frozen=True)
class EnvironmentCheck:
    valid: bool
    missing: tuple[str, ...]
    warnings: tuple[str, ...]


def check_environment(env: Mapping[str, Any] | None = None) -> EnvironmentCheck:
    """Report required and recommended variables that are not set."""

    source = env if env is not None else load_runtime_env()
    missing: list[str] = []
    warnings: list[str] = []
    if _blank(source.get(ENV_API_KEY)):
        missing.append(ENV_API_KEY)
    if _blank(source.get(ENV_IMAGE_DIR)):
        warnings.append(f"{ENV_IMAGE_DIR} (default: {DEFAULT_IMAGE_DIRECTORY})")
    if _blank(source.get(ENV_IMAGE_PREFIX)):
        warnings.append(f"{ENV_IMAGE_PREFIX} (default: {DEFAULT_IMAGE_URL_PREFIX})")
    if _blank(source.get(ENV_TEST_PAGE_ID)):
        warnings.append(f"{ENV_TEST_PAGE_ID} (used by connection checks)")
    return EnvironmentCheck(
        valid=not missing, missing=tuple(missing), warnings=tuple(warnings)
    )


def describe_config(config: ProcessorConfig) -> dict[str, Any]:
    """Return a loggable summary of ``config`` without the credential."""

    transformers = config.custom_transformers or {}
    summary = {
        "credential": "set" if config.credential else "missing",
        "image_directory": config.image_directory,
        "image_url_prefix": config.image_url_prefix,
        "max_retries": config.max_retries,
        "retry_delay_ms": config.retry_delay_ms,
        "custom_transformers": len(transformers),
    }
    logger.info("Processor configuration", extra={"event": "config.loaded", **summary})
    return summary


@dataclass(slots=True, frozen=True)
class RelayConfig:
    """Settings for forwarding webhooks to a GitHub repository dispatch."""

    github_token: str
    github_owner: str
    github_repo: str

    @classmethod
    def from_env(cls, env: Mapping[str, Any] | None = None) -> RelayConfig:
        source = env if env is not None else load_runtime_env()
        values = {}
        for attr, key in (
            ("github_token", "GITHUB_TOKEN"),
            ("github_owner", "GITHUB_OWNER"),
            ("github_repo", "GITHUB_REPO"),
        ):
            raw = source.get(key)
            if _blank(raw):
                raise InvalidConfigError(attr, f"{key} must be set for the webhook relay")
            values[attr] = str(raw).strip()
        return cls(**values)


__all__ = [
    "DEFAULT_IMAGE_DIRECTORY",
    "DEFAULT_IMAGE_URL_PREFIX",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY_MS",
    "ENV_API_KEY",
    "ENV_TEST_PAGE_ID",
    "EnvironmentCheck",
    "ProcessorConfig",
    "RelayConfig",
    "check_environment",
    "default_config",
    "describe_config",
    "load_runtime_env",
    "validate_config",
]
