"""Pydantic validation model for Kazumi rule JSON files."""

from __future__ import annotations

from typing import Any, List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from animesearch.domain.rules import KEYWORD_PLACEHOLDER


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class RuleDefinitionPydantic(BaseModel):
    """
    Validation model for one Kazumi rule.

    Accepts the camelCase keys of the Kazumi format (``baseURL``,
    ``searchList``, ...) as well as snake_case.  Kazumi-only keys this
    service has no use for (``api``, ``type``, ``useWebview``, ...) are
    ignored.  After validation the model is converted to
    :class:`animesearch.domain.rules.SiteRule` by ``adapters.to_site_rule``.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    version: str = "1.0"

    base_url: str = Field(validation_alias=_alias("baseURL", "baseUrl", "base_url"))
    search_url: str = Field(
        validation_alias=_alias("searchURL", "searchUrl", "search_url")
    )

    search_list: str = Field(validation_alias=_alias("searchList", "search_list"))
    search_name: str = Field(validation_alias=_alias("searchName", "search_name"))
    search_result: str = Field(
        default="", validation_alias=_alias("searchResult", "search_result")
    )
    chapter_roads: str = Field(
        default="", validation_alias=_alias("chapterRoads", "chapter_roads")
    )
    chapter_result: str = Field(
        default="", validation_alias=_alias("chapterResult", "chapter_result")
    )

    use_post: bool = Field(default=False, validation_alias=_alias("usePost", "use_post"))
    user_agent: str = Field(
        default="", validation_alias=_alias("userAgent", "user_agent")
    )
    referer: str = ""

    color: str = "white"
    tags: List[str] = Field(default_factory=list)
    proxy: bool = Field(
        default=False, validation_alias=_alias("proxy", "useProxy", "magic")
    )

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, v: Any) -> str:
        # Some published rules store the version as a number.
        return str(v)

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("baseURL must be an absolute http(s) URL")
        return v

    @field_validator("search_url")
    @classmethod
    def _validate_search_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("searchURL must be an absolute http(s) URL")
        if v.count(KEYWORD_PLACEHOLDER) != 1:
            raise ValueError(
                f"searchURL must contain exactly one {KEYWORD_PLACEHOLDER!r} placeholder"
            )
        return v

    @field_validator("search_list", "search_name")
    @classmethod
    def _require_selector(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("selector must not be empty")
        return v

    @field_validator("search_result", "chapter_roads", "chapter_result")
    @classmethod
    def _strip_selector(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v
