"""HTML report exports -> line-oriented text.

Some EHR report screens are saved with "print to HTML" rather than pasted.
Each table row, paragraph, list item, heading and <br> becomes one line so the
line-scanning report parsers see the same shape they get from pasted text.
"""

from __future__ import annotations

import re

from lxml import etree
from lxml import html as lxml_html

# A complete opening tag; "SBP <p 160" in pasted text is not markup
_HTML_MARKER_RE = re.compile(r"<\s*(?:html|body|table|tr|td|div|p|br|li)\b[^<>]*>", re.IGNORECASE)
_XML_DECL_RE = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)

_LINE_TAGS = ("tr", "p", "div", "li", "br", "h1", "h2", "h3", "h4", "h5", "h6", "table")
_CELL_TAGS = ("td", "th")


def looks_like_html(raw: str) -> bool:
    return bool(raw) and bool(_HTML_MARKER_RE.search(raw))


def html_to_text(raw: str) -> str:
    """Flatten an HTML export to newline-separated text.

    Table cells on one row are joined with a single space. Returns raw unchanged
    when it is not HTML or lxml cannot make sense of it.
    """
    if not looks_like_html(raw):
        return raw
    try:
        # lxml refuses str input that carries an encoding declaration
        doc = lxml_html.fromstring(_XML_DECL_RE.sub("", raw, count=1))
    except (etree.ParserError, ValueError):
        return raw

    for el in doc.iter(*_CELL_TAGS):
        el.tail = " " + (el.tail or "")
    for el in doc.iter(*_LINE_TAGS):
        el.tail = "\n" + (el.tail or "")

    # Page title and script/style payloads are not report lines
    for el in doc.xpath(".//head|.//title|.//script|.//style"):
        el.drop_tree()

    text = doc.text_content() or ""
    lines = [line.replace("\xa0", " ").strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)
