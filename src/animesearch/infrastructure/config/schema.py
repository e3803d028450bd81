"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .defaults import DEFAULT_USER_AGENT

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


def _sectioned(flat: str, section: str, key: str) -> AliasChoices:
    return AliasChoices(flat, AliasPath(section, key))


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (rules/http/search/updater/logging).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="animesearch", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Rules (YAML section: rules.*)
    rule_dir: Path = Field(
        default=Path("./rules"),
        validation_alias=_sectioned("rule_dir", "rules", "rule_dir"),
        description="Directory containing Kazumi JSON rule files.",
    )

    # Fetch client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=_sectioned("http_timeout_seconds", "http", "timeout_seconds"),
        description="Timeout of the direct request in seconds.",
    )
    http_retry_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=_sectioned(
            "http_retry_timeout_seconds", "http", "retry_timeout_seconds"
        ),
        description="Timeout of the single proxy retry in seconds.",
    )
    http_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        validation_alias=_sectioned("http_user_agent", "http", "user_agent"),
        description="User-Agent for outgoing requests (rules may override it).",
    )
    http_proxy_prefix: str = Field(
        default="https://rp.30hb.cn/?target=",
        validation_alias=_sectioned("http_proxy_prefix", "http", "proxy_prefix"),
        description="Prefix prepended to the target URL for the proxy retry.",
    )
    http_reactive_proxy_fallback: bool = Field(
        default=True,
        validation_alias=_sectioned(
            "http_reactive_proxy_fallback", "http", "reactive_proxy_fallback"
        ),
        description=(
            "Retry through the proxy after a blocked/failed direct request even "
            "for rules not flagged as proxy-eligible."
        ),
    )

    # Search orchestration (YAML section: search.*)
    search_deadline_seconds: float = Field(
        default=60.0,
        validation_alias=_sectioned(
            "search_deadline_seconds", "search", "deadline_seconds"
        ),
        description="Wall-clock limit of one multi-site search.",
    )
    search_max_concurrent_fetches: int = Field(
        default=16,
        validation_alias=_sectioned(
            "search_max_concurrent_fetches", "search", "max_concurrent_fetches"
        ),
        description="Global limit of simultaneous outgoing fetches.",
    )
    search_episode_concurrency: int = Field(
        default=3,
        validation_alias=_sectioned(
            "search_episode_concurrency", "search", "episode_concurrency"
        ),
        description="Detail pages fetched concurrently per site.",
    )
    search_episode_interval_seconds: float = Field(
        default=0.3,
        validation_alias=_sectioned(
            "search_episode_interval_seconds", "search", "episode_interval_seconds"
        ),
        description="Minimum spacing between detail page requests per site.",
    )
    search_episode_item_limit: int = Field(
        default=5,
        validation_alias=_sectioned(
            "search_episode_item_limit", "search", "episode_item_limit"
        ),
        description="Only the first N results of a site get their episodes.",
    )

    # Rule updater (YAML section: updater.*)
    updater_repo: str = Field(
        default="Predidit/KazumiRules",
        validation_alias=_sectioned("updater_repo", "updater", "repo"),
        description="GitHub repository (owner/name) holding the rule files.",
    )
    updater_branch: str = Field(
        default="main",
        validation_alias=_sectioned("updater_branch", "updater", "branch"),
    )
    updater_github_proxy: str = Field(
        default="https://gh-proxy.com/",
        validation_alias=_sectioned("updater_github_proxy", "updater", "github_proxy"),
        description="Prefix used when a direct GitHub request fails.",
    )
    updater_auto_update: bool = Field(
        default=False,
        validation_alias=_sectioned("updater_auto_update", "updater", "auto_update"),
        description="Synchronise rules from GitHub at startup.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=_sectioned("log_level", "logging", "level"),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=_sectioned("log_format", "logging", "format"),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    @field_validator("rule_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator(
        "http_timeout_seconds",
        "http_retry_timeout_seconds",
        "search_deadline_seconds",
    )
    @classmethod
    def _validate_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("search_max_concurrent_fetches", "search_episode_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("concurrency limits must be >= 1")
        return v

    @field_validator("search_episode_interval_seconds", "search_episode_item_limit")
    @classmethod
    def _validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "rules": {"rule_dir": str(self.rule_dir)},
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "retry_timeout_seconds": self.http_retry_timeout_seconds,
                "user_agent": self.http_user_agent,
                "proxy_prefix": self.http_proxy_prefix,
                "reactive_proxy_fallback": self.http_reactive_proxy_fallback,
            },
            "search": {
                "deadline_seconds": self.search_deadline_seconds,
                "max_concurrent_fetches": self.search_max_concurrent_fetches,
                "episode_concurrency": self.search_episode_concurrency,
                "episode_interval_seconds": self.search_episode_interval_seconds,
                "episode_item_limit": self.search_episode_item_limit,
            },
            "updater": {
                "repo": self.updater_repo,
                "branch": self.updater_branch,
                "github_proxy": self.updater_github_proxy,
                "auto_update": self.updater_auto_update,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read ANIMESEARCH_* variables, keeps the
    values that were set and merges them over YAML/defaults before
    validating AppConfig.

    Supported env var examples (flat, explicit):
    - ANIMESEARCH_RULE_DIR
    - ANIMESEARCH_HTTP_TIMEOUT_SECONDS
    - ANIMESEARCH_SEARCH_DEADLINE_SECONDS
    - ANIMESEARCH_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="ANIMESEARCH_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    rule_dir: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_retry_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    http_proxy_prefix: Optional[str] = None
    http_reactive_proxy_fallback: Optional[bool] = None

    search_deadline_seconds: Optional[float] = None
    search_max_concurrent_fetches: Optional[int] = None
    search_episode_concurrency: Optional[int] = None
    search_episode_interval_seconds: Optional[float] = None
    search_episode_item_limit: Optional[int] = None

    updater_repo: Optional[str] = None
    updater_branch: Optional[str] = None
    updater_github_proxy: Optional[str] = None
    updater_auto_update: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    @field_validator("rule_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
