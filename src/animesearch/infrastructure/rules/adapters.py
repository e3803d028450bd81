"""Convert validated rule models into compiled domain rules."""

from __future__ import annotations

from dataclasses import replace

from animesearch.domain.rules import (
    CompileError,
    CompiledSelector,
    RuleSelectors,
    SiteRule,
)
from animesearch.infrastructure.rules.validation_schema import RuleDefinitionPydantic
from animesearch.infrastructure.selectors.xpath_compiler import compile_xpath


def _compile_container(xpath: str) -> CompiledSelector:
    # Containers are elements to search within, never values.
    compiled = compile_xpath(xpath)
    if compiled.attribute is not None or compiled.text:
        raise CompileError(xpath, "container selector cannot end in /@attr or /text()")
    return compiled


def to_rule_selectors(pydantic: RuleDefinitionPydantic) -> RuleSelectors:
    """Compile every selector of *pydantic* once.

    A rule without ``searchResult`` takes its detail link from the name
    element; an attribute step on ``searchName`` then only names the title.
    Episode selectors are only compiled when both are present.

    Raises:
        CompileError: a selector is outside the supported XPath subset, or
            ``searchList`` / ``chapterRoads`` ends in a value step.
    """
    search_name = compile_xpath(pydantic.search_name)
    search_result = (
        compile_xpath(pydantic.search_result)
        if pydantic.search_result
        else replace(search_name, attribute=None)
    )

    chapter_roads = chapter_result = None
    if pydantic.chapter_roads and pydantic.chapter_result:
        chapter_roads = _compile_container(pydantic.chapter_roads)
        chapter_result = compile_xpath(pydantic.chapter_result)

    return RuleSelectors(
        search_list=_compile_container(pydantic.search_list),
        search_name=search_name,
        search_result=search_result,
        chapter_roads=chapter_roads,
        chapter_result=chapter_result,
    )


def to_site_rule(pydantic: RuleDefinitionPydantic) -> SiteRule:
    """Admit a validated rule: compile its selectors and freeze it."""
    return SiteRule(
        name=pydantic.name,
        base_url=pydantic.base_url,
        search_url=pydantic.search_url,
        search_list=pydantic.search_list,
        search_name=pydantic.search_name,
        search_result=pydantic.search_result,
        chapter_roads=pydantic.chapter_roads,
        chapter_result=pydantic.chapter_result,
        selectors=to_rule_selectors(pydantic),
        use_post=pydantic.use_post,
        color=pydantic.color,
        tags=tuple(pydantic.tags),
        proxy=pydantic.proxy,
        version=pydantic.version,
        user_agent=pydantic.user_agent,
        referer=pydantic.referer,
    )
