"""Tests for the XPath-subset to CSS compiler."""

from __future__ import annotations

import lxml.html
import pytest

from animesearch.domain.rules import CompileError
from animesearch.infrastructure.common.html_selectors import parse_html
from animesearch.infrastructure.selectors.xpath_compiler import compile_xpath

# ---------------------------------------------------------------------------
# Translation table
# ---------------------------------------------------------------------------


class TestTranslation:
    @pytest.mark.parametrize(
        ("xpath", "css"),
        [
            ("//ul/li/a", "ul > li > a"),
            ("//div[2]/div/section", "div:nth-of-type(2) > div > section"),
            ("//div[@class='item']//a", 'div[class="item"] a'),
            ("//*[@id='main']/a", "#main > a"),
            ("//div[@id='main']", "div#main"),
            ("//li[last()]", "li:last-of-type"),
            ("//*[last()]", ":last-child"),
            ("//*[2]", ":nth-child(2)"),
            ("//li[position()>1]", "li:nth-of-type(n+2)"),
            ("//li[position()>=3]", "li:nth-of-type(n+3)"),
            ("//li[position()=2]", "li:nth-of-type(2)"),
            ("//a[@href]", "a[href]"),
            ("//a[contains(@href,'/video/')]", 'a[href*="/video/"]'),
            ("//a[starts-with(@href, '/v')]", 'a[href^="/v"]'),
            ('//a[@title="say \'hi\'"]', 'a[title="say \'hi\'"]'),
            ("//DIV/A", "div > a"),
            ("/html/body/div", "html:root > body > div"),
        ],
    )
    def test_document_css(self, xpath: str, css: str) -> None:
        assert compile_xpath(xpath).css == css

    @pytest.mark.parametrize(
        ("xpath", "scoped"),
        [
            ("//h3/a", ":scope h3 > a"),
            (".//h3/a", ":scope h3 > a"),
            ("./div/a", ":scope > div > a"),
            ("div/a", ":scope > div > a"),
            ("/li", ":scope > li"),
        ],
    )
    def test_scoped_css(self, xpath: str, scoped: str) -> None:
        assert compile_xpath(xpath).scoped_css == scoped

    def test_id_that_is_not_a_css_identifier_stays_attribute(self) -> None:
        assert compile_xpath("//div[@id='1st']").css == 'div[id="1st"]'

    def test_class_is_exact_match_not_token(self) -> None:
        compiled = compile_xpath("//div[@class='a b']")
        assert compiled.css == 'div[class="a b"]'

    def test_empty_contains_means_attribute_present(self) -> None:
        assert compile_xpath("//a[contains(@href,'')]").css == "a[href]"

    def test_trailing_text_is_a_hint(self) -> None:
        compiled = compile_xpath("//h3/a/text()")
        assert compiled.css == "h3 > a"
        assert compiled.text is True
        assert compiled.attribute is None

    def test_trailing_attribute_is_a_hint(self) -> None:
        compiled = compile_xpath("//div/a/@data-href")
        assert compiled.css == "div > a"
        assert compiled.attribute == "data-href"
        assert compiled.text is False

    def test_source_is_kept(self) -> None:
        assert compile_xpath("//ul/li/a").source == "//ul/li/a"


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


class TestRejection:
    @pytest.mark.parametrize(
        "xpath",
        [
            "",
            "   ",
            "//div/ancestor::section",
            "//following-sibling::a",
            "//a | //b",
            "//div/../a",
            "//div/./a",
            ".",
            "//a[@x='1' and @y='2']",
            "//a[@x='1' or @y='2']",
            "//a[not(@href)]",
            "//a[text()='next']",
            "//a[normalize-space(.)='x']",
            "//div[@class='x'][1]",
            "//div[1][2]",
            "//div[0]",
            "//a[@href",
            "//a[@title='x]",
            "//div/@href/a",
            "//div//@href",
            "//text()",
            "//div[",
            "//div]",
        ],
    )
    def test_unsupported_raises_compile_error(self, xpath: str) -> None:
        with pytest.raises(CompileError):
            compile_xpath(xpath)

    def test_error_carries_expression_and_reason(self) -> None:
        with pytest.raises(CompileError) as exc_info:
            compile_xpath("//a | //b")
        assert exc_info.value.xpath == "//a | //b"
        assert "union" in exc_info.value.reason

    def test_literal_with_and_is_not_a_boolean(self) -> None:
        compiled = compile_xpath("//a[@title='tom and jerry']")
        assert compiled.css == 'a[title="tom and jerry"]'


# ---------------------------------------------------------------------------
# Node-set equivalence with lxml's XPath engine
# ---------------------------------------------------------------------------

_CORPUS = [
    """
    <html><body>
      <div id="main" class="container">
        <div class="item"><h3><a href="/v/1">One</a></h3><span>x</span></div>
        <div class="item hot"><h3><a href="/v/2" title="two">Two</a></h3></div>
        <div class="item"><h3><a href="/video/3">Three</a></h3><p>p</p><a href="/x">extra</a></div>
        <section>
          <ul>
            <li><a href="/e/1">1</a></li>
            <li class="cur"><a href="/e/2">2</a></li>
            <li><a href="/e/3">3</a></li>
          </ul>
        </section>
      </div>
      <div class="footer"><a href="https://ext.test/">ext</a></div>
    </body></html>
    """,
    """
    <html><body>
      <p>intro</p>
      <div><span>a</span><div><span>b</span><span>c</span></div></div>
      <div id="list">
        <ul><li><a href="/1" data-href="/d1">x</a></li></ul>
        <ul><li><a>no link</a></li><li><a href="/2">y</a></li></ul>
      </div>
      <table><tr><td>1</td><td>2</td></tr><tr><td>3</td></tr></table>
    </body></html>
    """,
]

_EXPRESSIONS = [
    "//div[@class='item']",
    "//div[contains(@class,'item')]",
    "//div[@id='main']/div[2]",
    "//div[@id='main']//a",
    "//div[3]/a",
    "//div[2]",
    "//ul/li[last()]/a",
    "//ul/li[position()>1]",
    "//ul[2]/li",
    "//li[2]/a",
    "//li[@class='cur']/a",
    "//h3/a[@href]",
    "//a[starts-with(@href,'/v')]",
    "//a[@title='two']",
    "//section//a",
    "//*[@id='main']/*[2]",
    "//div[@id='main']/*[last()]",
    "/html/body/div",
    "/html/body/div[2]/a",
    "//div/span",
    "//div//span[2]",
    "//tr/td[1]",
    "//tr[last()]/td",
    "//a[@data-href]",
    "//*[@id='list']/ul/li/a[contains(@href,'2')]",
]


def _annotate(html: str) -> tuple[lxml.html.HtmlElement, str]:
    """Give every element a unique data-nid and return (lxml root, html)."""
    root = lxml.html.document_fromstring(html)
    for index, element in enumerate(root.iter()):
        if isinstance(element.tag, str):
            element.set("data-nid", str(index))
    return root, lxml.html.tostring(root, encoding="unicode")


@pytest.mark.parametrize("html", _CORPUS, ids=["listing", "nested"])
@pytest.mark.parametrize("xpath", _EXPRESSIONS)
def test_compiled_selector_matches_lxml_node_set(html: str, xpath: str) -> None:
    root, annotated = _annotate(html)
    expected = [el.get("data-nid") for el in root.getroottree().xpath(xpath)]

    document = parse_html(annotated)
    compiled = compile_xpath(xpath)
    actual = [el["data-nid"] for el in document.select(compiled.css)]

    assert actual == expected


def test_scoped_selector_matches_lxml_relative_evaluation() -> None:
    root, annotated = _annotate(_CORPUS[0])
    container_xpath = "//div[@id='main']"
    item_xpath = ".//h3/a"

    (lxml_container,) = root.getroottree().xpath(container_xpath)
    expected = [el.get("data-nid") for el in lxml_container.xpath(item_xpath)]

    document = parse_html(annotated)
    (container,) = document.select(compile_xpath(container_xpath).css)
    actual = [
        el["data-nid"] for el in container.select(compile_xpath(item_xpath).scoped_css)
    ]

    assert actual == expected
    assert len(actual) == 3
