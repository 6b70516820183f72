from __future__ import annotations

import html
import re
from html.parser import HTMLParser
from typing import Any

import mistune

from notra.core.logging import get_logger

logger = get_logger(__name__)


# ----------------------------
# Patterns
# ----------------------------

# caption artifacts from transcripts, e.g. [Music], [Applause]
_STAGE_DIR_RE = re.compile(
    r"\[\s*(?:music|laughter|applause|inaudible|silence|noise|crosstalk)\s*\]",
    re.IGNORECASE,
)

_HTML_HINT_RE = re.compile(
    r"<!--|</?(?:html|head|body|p|div|span|br|hr|a|b|i|em|strong|u|ul|ol|li|h[1-6]|table|thead|tbody|tr|td|th|"
    r"pre|code|blockquote|section|article|header|footer|nav|script|style|img|sup|sub)\b[^>]*>",
    re.IGNORECASE,
)
_TAG_RE = re.compile(r"<[^>]+>")

# $$block$$, or $inline$ that opens on a non-space, closes on a non-space,
# is not followed by a digit and holds no markup. "$5 for **x** and $10"
# and "$5<br>$3" are prices, not math.
_MATH_RE = re.compile(
    r"\$\$.+?\$\$"
    r"|\$(?!\s)(?!\d+(?:[.,]\d+)*\s)(?:(?!\*\*|__)[^$\n<>])+?(?<!\s)\$(?!\d)",
    re.DOTALL,
)
_MATH_TOKEN_RE = re.compile("\ue000(\\d+)\ue001")

_HSPACE_RE = re.compile(r"[^\S\n]+")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")

_markdown = mistune.create_markdown(renderer="ast", plugins=["strikethrough", "table"])


# ----------------------------
# HTML
# ----------------------------

class _TextExtractor(HTMLParser):
    _SKIP = {"script", "style", "head", "noscript"}
    _BLOCK = {
        "p", "div", "br", "hr", "li", "ul", "ol", "tr", "table", "section", "article",
        "header", "footer", "pre", "blockquote", "h1", "h2", "h3", "h4", "h5", "h6",
    }

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self._parts: list[str] = []
        self._skip = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._SKIP:
            self._skip += 1
        elif tag in self._BLOCK:
            self._parts.append("\n")
        elif tag in ("td", "th"):
            self._parts.append(" ")

    def handle_endtag(self, tag):
        if tag in self._SKIP:
            self._skip = max(0, self._skip - 1)
        elif tag in self._BLOCK:
            self._parts.append("\n")

    def handle_data(self, data):
        if not self._skip:
            self._parts.append(data)

    def text(self) -> str:
        return "".join(self._parts)


def _strip_html(text: str) -> str:
    if not _HTML_HINT_RE.search(text):
        return text
    try:
        parser = _TextExtractor()
        parser.feed(text)
        parser.close()
        return parser.text()
    except Exception as e:
        # malformed markup: plain tag strip keeps every text node
        logger.debug("html_strip_fallback", error=str(e))
        return html.unescape(_TAG_RE.sub(" ", text))


# ----------------------------
# Markdown
# ----------------------------

def _inline(tokens: list[dict[str, Any]]) -> str:
    parts = []
    for t in tokens:
        kind = t["type"]
        if kind in ("softbreak", "linebreak"):
            parts.append("\n")
        elif kind == "inline_html":
            continue
        elif "children" in t:
            parts.append(_inline(t["children"]))
        else:
            parts.append(t.get("raw", ""))
    return "".join(parts)


def _block(t: dict[str, Any]) -> str:
    kind = t["type"]
    children = t.get("children") or []

    if kind in ("blank_line", "thematic_break"):
        return ""
    if kind == "block_code":
        return t.get("raw", "").rstrip("\n")
    if kind == "block_html":
        return _TAG_RE.sub(" ", t.get("raw", ""))
    if kind in ("paragraph", "heading", "block_text", "table_cell"):
        return _inline(children)
    if kind in ("table_head", "table_row"):
        return " ".join(_block(c) for c in children)
    if kind in ("list", "list_item", "table", "table_body"):
        return _blocks(children, "\n")
    if children:
        return _blocks(children)
    return t.get("raw", "")


def _blocks(tokens: list[dict[str, Any]], sep: str = "\n\n") -> str:
    return sep.join(s for s in (_block(t) for t in tokens) if s.strip())


def _strip_markdown(text: str) -> str:
    return _blocks(_markdown(text))


def _protect_math(text: str) -> tuple[str, list[str]]:
    spans: list[str] = []

    def _stash(m: re.Match) -> str:
        spans.append(m.group(0))
        return f"\ue000{len(spans) - 1}\ue001"

    return _MATH_RE.sub(_stash, text), spans


def _restore_math(text: str, spans: list[str]) -> str:
    if not spans:
        return text
    return _MATH_TOKEN_RE.sub(lambda m: spans[int(m.group(1))], text)


# ----------------------------
# Public API
# ----------------------------

def normalize(raw: str | None) -> str:
    """
    Canonical form of incoming study text.

    Strips HTML and Markdown syntax (keeping the words and any $math$),
    drops caption stage directions, collapses horizontal whitespace to single
    spaces, trims each line and caps blank runs at one empty line.
    Never raises; empty in gives empty out.
    """
    if not raw:
        return ""

    s = raw.replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    s = s.replace("\ue000", "").replace("\ue001", "")
    s, math_spans = _protect_math(s)

    s = _strip_html(s)
    s = _strip_markdown(s)
    s = _STAGE_DIR_RE.sub(" ", s)
    s = _restore_math(s, math_spans)

    s = _HSPACE_RE.sub(" ", s)
    s = "\n".join(line.strip() for line in s.split("\n"))
    s = _MANY_NEWLINES_RE.sub("\n\n", s)
    return s.strip()
