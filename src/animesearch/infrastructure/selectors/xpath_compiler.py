"""Compile the XPath subset used by Kazumi rules into CSS selectors.

Kazumi rule files describe every selector as XPath, but the HTML stack here
(BeautifulSoup + soupsieve) only speaks CSS.  Rather than shipping an XPath
engine, each selector is translated once, when the rule is admitted, into an
equivalent CSS selector.

Supported grammar (per location step)::

    //div              descendant              -> div
    /div, ./div        child of the context    -> :scope > div
    div[2]             positional              -> div:nth-of-type(2)
    *[2]               positional, any element -> :nth-child(2)
    li[last()]                                 -> li:last-of-type
    li[position()>1]                           -> li:nth-of-type(n+2)
    a[@href]           attribute exists        -> a[href]
    a[@rel='nofollow'] attribute equals        -> a[rel="nofollow"]
    *[@id='main']      id                      -> #main
    a[contains(@class,'x')]                    -> a[class*="x"]
    a[starts-with(@href,'/v')]                 -> a[href^="/v"]
    .../text(), .../@href                      -> extraction hints

Everything else (axes, unions, ``and``/``or``, other functions, positional
predicates after a filtering predicate) raises :class:`CompileError`.  A
selector that silently compiles to something different would corrupt
extraction without anyone noticing, so the compiler refuses instead.

``[@class='a b']`` compiles to the exact attribute match ``[class="a b"]``,
not to ``.a.b``: XPath compares the whole attribute string, the CSS class
selector matches single tokens.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from animesearch.domain.rules import CompileError, CompiledSelector

Anchor = Literal["descendant", "child", "root"]
Combinator = Literal[">", " "]

_NAME_RE = re.compile(r"^(\*|[A-Za-z_][\w-]*)")
_ATTR_NAME = r"[A-Za-z_][\w-]*"
_LITERAL = r"(?:'([^']*)'|\"([^\"]*)\")"

_RE_INDEX = re.compile(r"^\d+$")
_RE_LAST = re.compile(r"^last\s*\(\s*\)$")
_RE_POSITION = re.compile(r"^position\s*\(\s*\)\s*(>=|>|=)\s*(\d+)$")
_RE_ATTR_EXISTS = re.compile(rf"^@({_ATTR_NAME})$")
_RE_ATTR_EQ = re.compile(rf"^@({_ATTR_NAME})\s*=\s*{_LITERAL}$")
_RE_CONTAINS = re.compile(
    rf"^contains\s*\(\s*@({_ATTR_NAME})\s*,\s*{_LITERAL}\s*\)$"
)
_RE_STARTS_WITH = re.compile(
    rf"^starts-with\s*\(\s*@({_ATTR_NAME})\s*,\s*{_LITERAL}\s*\)$"
)
_RE_BOOLEAN = re.compile(r"\s(and|or)\s|^not\s*\(")
_RE_ATTR_STEP = re.compile(rf"^@({_ATTR_NAME})$")
_RE_CSS_IDENT = re.compile(r"^-?[_a-zA-Z][_a-zA-Z0-9-]*$")


@dataclass
class _Step:
    combinator: Combinator
    name: str
    filters: list[str] = field(default_factory=list)
    position: str | None = None


def compile_xpath(xpath: str) -> CompiledSelector:
    """Translate *xpath* into a :class:`CompiledSelector`.

    Raises:
        CompileError: the expression uses XPath outside the supported subset.
    """
    expr = xpath.strip()
    if not expr:
        raise CompileError(xpath, "empty expression")

    anchor, rest = _split_anchor(xpath, expr)
    raw_steps = _split_steps(xpath, rest)

    text = False
    attribute: str | None = None
    last_combinator, last_raw = raw_steps[-1]
    if last_raw.replace(" ", "") == "text()":
        text = True
        raw_steps = raw_steps[:-1]
    elif last_raw.startswith("@"):
        m = _RE_ATTR_STEP.match(last_raw)
        if m is None or last_combinator != ">":
            raise CompileError(xpath, f"unsupported attribute step {last_raw!r}")
        attribute = m.group(1).lower()
        raw_steps = raw_steps[:-1]

    if not raw_steps:
        raise CompileError(xpath, "expression selects no element")

    steps = [_parse_step(xpath, combinator, raw) for combinator, raw in raw_steps]

    return CompiledSelector(
        source=xpath,
        css=_render_document(anchor, steps),
        scoped_css=_render_scoped(anchor, steps),
        text=text,
        attribute=attribute,
    )


def _split_anchor(xpath: str, expr: str) -> tuple[Anchor, str]:
    if expr.startswith(".//"):
        return "descendant", expr[3:]
    if expr.startswith("//"):
        return "descendant", expr[2:]
    if expr.startswith("./"):
        return "child", expr[2:]
    if expr.startswith("/"):
        return "root", expr[1:]
    if expr.startswith("."):
        raise CompileError(xpath, "self and parent steps are not supported")
    return "child", expr


def _split_steps(xpath: str, rest: str) -> list[tuple[Combinator, str]]:
    """Split a path into ``(combinator, step)`` pairs.

    The first step's combinator is a placeholder; the anchor decides how
    the first step attaches to the context.
    """
    steps: list[tuple[Combinator, str]] = []
    combinator: Combinator = ">"
    current: list[str] = []
    depth = 0
    quote: str | None = None
    i = 0

    while i < len(rest):
        ch = rest[i]
        if quote is not None:
            if ch == quote:
                quote = None
            current.append(ch)
        elif ch in ("'", '"'):
            quote = ch
            current.append(ch)
        elif ch == "[":
            depth += 1
            current.append(ch)
        elif ch == "]":
            depth -= 1
            if depth < 0:
                raise CompileError(xpath, "unbalanced brackets")
            current.append(ch)
        elif ch == "|" and depth == 0:
            raise CompileError(xpath, "union expressions are not supported")
        elif ch == "/" and depth == 0:
            steps.append((combinator, _finish_step(xpath, current)))
            current = []
            if rest[i + 1 : i + 2] == "/":
                combinator = " "
                i += 1
            else:
                combinator = ">"
        else:
            current.append(ch)
        i += 1

    if quote is not None:
        raise CompileError(xpath, "unterminated string literal")
    if depth != 0:
        raise CompileError(xpath, "unbalanced brackets")
    steps.append((combinator, _finish_step(xpath, current)))
    return steps


def _finish_step(xpath: str, chars: list[str]) -> str:
    step = "".join(chars).strip()
    if not step:
        raise CompileError(xpath, "empty location step")
    return step


def _parse_step(xpath: str, combinator: Combinator, raw: str) -> _Step:
    if "::" in raw.split("[", 1)[0]:
        raise CompileError(xpath, f"axis steps are not supported ({raw!r})")
    if raw in (".", ".."):
        raise CompileError(xpath, "self and parent steps are not supported")

    m = _NAME_RE.match(raw)
    if m is None:
        raise CompileError(xpath, f"unsupported node test in {raw!r}")
    name = m.group(1)
    if name != "*":
        name = name.lower()

    step = _Step(combinator=combinator, name=name)
    for predicate in _split_predicates(xpath, raw[m.end() :]):
        _apply_predicate(xpath, step, predicate)
    return step


def _split_predicates(xpath: str, tail: str) -> list[str]:
    predicates: list[str] = []
    i = 0
    while i < len(tail):
        if tail[i].isspace():
            i += 1
            continue
        if tail[i] != "[":
            raise CompileError(xpath, f"unexpected {tail[i:]!r} after node test")
        depth = 0
        quote: str | None = None
        start = i + 1
        while i < len(tail):
            ch = tail[i]
            if quote is not None:
                if ch == quote:
                    quote = None
            elif ch in ("'", '"'):
                quote = ch
            elif ch == "[":
                depth += 1
            elif ch == "]":
                depth -= 1
                if depth == 0:
                    break
            i += 1
        predicates.append(tail[start:i].strip())
        i += 1
    return predicates


def _apply_predicate(xpath: str, step: _Step, predicate: str) -> None:
    if _RE_INDEX.match(predicate):
        index = int(predicate)
        if index < 1:
            raise CompileError(xpath, f"position {index} never matches")
        _set_position(xpath, step, _nth(step, str(index)))
        return

    if _RE_LAST.match(predicate):
        pseudo = ":last-child" if step.name == "*" else ":last-of-type"
        _set_position(xpath, step, pseudo)
        return

    m = _RE_POSITION.match(predicate)
    if m is not None:
        op, value = m.group(1), int(m.group(2))
        if op == "=":
            if value < 1:
                raise CompileError(xpath, f"position {value} never matches")
            _set_position(xpath, step, _nth(step, str(value)))
        else:
            first = value + 1 if op == ">" else max(value, 1)
            _set_position(xpath, step, _nth(step, f"n+{first}"))
        return

    m = _RE_ATTR_EXISTS.match(predicate)
    if m is not None:
        step.filters.append(f"[{m.group(1).lower()}]")
        return

    m = _RE_ATTR_EQ.match(predicate)
    if m is not None:
        attr, value = m.group(1).lower(), _literal(m)
        if attr == "id" and _RE_CSS_IDENT.match(value):
            step.filters.append(f"#{value}")
        else:
            step.filters.append(f"[{attr}={_css_string(value)}]")
        return

    m = _RE_CONTAINS.match(predicate)
    if m is not None:
        attr, value = m.group(1).lower(), _literal(m)
        # contains(@a, '') is true for every element carrying @a
        step.filters.append(
            f"[{attr}*={_css_string(value)}]" if value else f"[{attr}]"
        )
        return

    m = _RE_STARTS_WITH.match(predicate)
    if m is not None:
        attr, value = m.group(1).lower(), _literal(m)
        step.filters.append(
            f"[{attr}^={_css_string(value)}]" if value else f"[{attr}]"
        )
        return

    if _RE_BOOLEAN.search(predicate):
        raise CompileError(xpath, "compound boolean predicates are not supported")
    raise CompileError(xpath, f"unsupported predicate [{predicate}]")


def _nth(step: _Step, argument: str) -> str:
    # XPath counts positions among siblings matching the node test:
    # same-name siblings for a name, all element siblings for '*'.
    if step.name == "*":
        return f":nth-child({argument})"
    return f":nth-of-type({argument})"


def _set_position(xpath: str, step: _Step, pseudo: str) -> None:
    if step.filters:
        # div[@class='x'][2] counts among filtered nodes, not among siblings.
        raise CompileError(
            xpath, "positional predicates after a filter are not supported"
        )
    if step.position is not None:
        raise CompileError(xpath, "multiple positional predicates")
    step.position = pseudo


def _literal(m: re.Match[str]) -> str:
    single, double = m.group(2), m.group(3)
    return single if single is not None else double


def _css_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("\n", "\\a ")
    return f'"{escaped}"'


def _render_step(step: _Step, *, root: bool = False) -> str:
    out = "" if step.name == "*" else step.name
    out += "".join(step.filters)
    if step.position:
        out += step.position
    if root:
        out += ":root"
    return out or "*"


def _join(steps: list[_Step], first: str) -> str:
    parts = [first]
    for step in steps[1:]:
        parts.append(" > " if step.combinator == ">" else " ")
        parts.append(_render_step(step))
    return "".join(parts)


def _render_document(anchor: Anchor, steps: list[_Step]) -> str:
    """CSS for evaluation against the whole document.

    With the document node as context, a child step can only select the
    root element.
    """
    if anchor == "descendant":
        return _join(steps, _render_step(steps[0]))
    return _join(steps, _render_step(steps[0], root=True))


def _render_scoped(anchor: Anchor, steps: list[_Step]) -> str:
    """CSS for evaluation below a container element.

    Kazumi evaluates item selectors relative to the list container, so a
    leading ``//`` means "descendant of the container" and a leading ``/``
    "child of the container".
    """
    if anchor == "descendant":
        return _join(steps, ":scope " + _render_step(steps[0]))
    return _join(steps, ":scope > " + _render_step(steps[0]))
