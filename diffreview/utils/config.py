"""Configuration management for diffreview."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from diffreview.review.errors import ConfigError

CONFIG_DIR_NAME = ".diffreview"

API_KEY_ENV_VARS = ("ANTHROPIC_API_KEY", "DIFFREVIEW_API_KEY")
MODEL_ENV_VAR = "DIFFREVIEW_MODEL"


def _api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name)
        if value:
            return value
    return None


@dataclass
class LLMConfig:
    """Review backend configuration."""

    provider: str = "anthropic"
    model: str = field(
        default_factory=lambda: os.getenv(MODEL_ENV_VAR) or "claude-sonnet-4-20250514"
    )
    base_url: str = "https://api.anthropic.com"
    api_version: str = "2023-06-01"
    api_key: Optional[str] = field(default_factory=_api_key_from_env)
    max_tokens: int = 4096
    context_window: int = 200_000  # tokens

    # Timeouts (seconds)
    request_timeout: float = 120.0  # single attempt
    connect_timeout: float = 10.0
    deadline: float = 300.0  # all attempts together

    # Retry policy
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    # Statuses treated as transient; everything else non-2xx fails fast
    transient_status_codes: List[int] = field(
        default_factory=lambda: [429, 500, 502, 503, 504, 529]
    )

    def validate(self, require_api_key: bool = True) -> None:
        """Validate LLM configuration.

        Raises:
            ConfigError: On invalid values.
            AuthError: If ``require_api_key`` and no key is configured.
        """
        if require_api_key and not self.api_key:
            from diffreview.review.errors import AuthError

            raise AuthError(
                "no API key configured; set ANTHROPIC_API_KEY "
                "(or use --dry-run to inspect the request without sending it)"
            )

        if not self.model:
            raise ConfigError("model must not be empty")
        if self.max_tokens <= 0:
            raise ConfigError("max_tokens must be positive")
        if self.context_window <= 0:
            raise ConfigError("context_window must be positive")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive")
        if self.connect_timeout <= 0:
            raise ConfigError("connect_timeout must be positive")
        if self.deadline <= 0:
            raise ConfigError("deadline must be positive")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be non-negative")
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            raise ConfigError("retry delays must be non-negative")
        for code in self.transient_status_codes:
            if not 400 <= int(code) <= 599:
                raise ConfigError(f"transient status code out of range: {code}")


@dataclass
class ReviewConfig:
    """Prompt and report configuration."""

    style_dir: str = "docs/styles"
    include_readme: bool = True
    max_context_chars: int = 8000  # per style guide / README

    # Payload budget: context_window * chars_per_token * (1 - reserved_fraction)
    chars_per_token: int = 4
    reserved_fraction: float = 0.25
    max_payload_chars: Optional[int] = None  # explicit override

    required_sections: List[str] = field(
        default_factory=lambda: ["Summary", "Key Review Points"]
    )

    def validate(self) -> None:
        if self.chars_per_token <= 0:
            raise ConfigError("chars_per_token must be positive")
        if not (0.0 <= self.reserved_fraction < 1.0):
            raise ConfigError("reserved_fraction must be in [0, 1)")
        if self.max_payload_chars is not None and self.max_payload_chars <= 0:
            raise ConfigError("max_payload_chars must be positive")
        if self.max_context_chars < 0:
            raise ConfigError("max_context_chars must be non-negative")

    def payload_budget(self, context_window: int) -> int:
        """Character budget for the user message."""
        if self.max_payload_chars is not None:
            return self.max_payload_chars
        return int(context_window * self.chars_per_token * (1.0 - self.reserved_fraction))


@dataclass
class FilterConfig:
    """Which changed files are sent for review."""

    include_patterns: List[str] = field(default_factory=list)  # empty = everything
    exclude_patterns: List[str] = field(
        default_factory=lambda: [
            # Lock files
            "*.lock",
            "package-lock.json",
            "pnpm-lock.yaml",
            # Generated / minified
            "*.min.js",
            "*.min.css",
            "*.map",
            # Build output and vendored code
            "target/*",
            "dist/*",
            "build/*",
            "node_modules/*",
            "vendor/*",
        ]
    )
    ignore_file: str = ".reviewignore"


@dataclass
class Config:
    """diffreview configuration."""

    project_path: Path
    llm: LLMConfig = field(default_factory=LLMConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    filter: FilterConfig = field(default_factory=FilterConfig)

    def __post_init__(self):
        self.project_path = Path(self.project_path).resolve()

    @property
    def config_dir(self) -> Path:
        return self.project_path / CONFIG_DIR_NAME

    def validate(self, require_api_key: bool = True) -> None:
        self.llm.validate(require_api_key=require_api_key)
        self.review.validate()

    @classmethod
    def load(cls, project_path: Path) -> "Config":
        """Load configuration from .diffreview/config.yaml or config.json.

        Missing files give the defaults. The API key is only ever read from
        the environment.
        """
        project_path = Path(project_path).resolve()
        config_yaml = project_path / CONFIG_DIR_NAME / "config.yaml"
        config_json = project_path / CONFIG_DIR_NAME / "config.json"

        try:
            if config_yaml.exists():
                with open(config_yaml) as f:
                    data = yaml.safe_load(f) or {}
            elif config_json.exists():
                with open(config_json) as f:
                    data = json.load(f)
            else:
                data = {}
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"could not parse configuration: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError("configuration root must be a mapping")

        llm_data = dict(data.pop("llm", None) or {})
        review_data = dict(data.pop("review", None) or {})
        filter_data = dict(data.pop("filter", None) or {})

        # Keys never come from disk
        llm_data.pop("api_key", None)
        # Environment wins over the file
        if os.getenv(MODEL_ENV_VAR):
            llm_data.pop("model", None)

        try:
            return cls(
                project_path=project_path,
                llm=LLMConfig(**llm_data),
                review=ReviewConfig(**review_data),
                filter=FilterConfig(**filter_data),
            )
        except TypeError as e:
            raise ConfigError(f"unknown configuration key: {e}") from e
