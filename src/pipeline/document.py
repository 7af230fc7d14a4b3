from __future__ import annotations

from typing import Iterator

from selectolax.parser import HTMLParser, Node


NON_VISIBLE_TAGS = ["script", "style"]

# Elements whose boundaries separate text; inline elements (b, span, a ...) join
BLOCK_TAGS = frozenset({
    "address", "article", "aside", "blockquote", "body", "br", "caption", "dd",
    "details", "dialog", "div", "dl", "dt", "fieldset", "figcaption", "figure",
    "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li",
    "main", "nav", "ol", "option", "p", "pre", "section", "summary", "table",
    "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
})


class HtmlDocument:
    """Read-only view over a parsed HTML page.

    - Parsing is best-effort (selectolax/lexbor never rejects markup)
    - script/style subtrees are removed at construction time
    - Exposes element iteration, attribute maps, body text and mailto targets
    """

    def __init__(self, markup: str | None) -> None:
        self._parser = HTMLParser(markup or "")
        self._parser.strip_tags(NON_VISIBLE_TAGS)

    def elements(self) -> Iterator[Node]:
        yield from self._parser.css("*")

    @staticmethod
    def attribute_values(node: Node) -> list[str]:
        attrs = node.attributes or {}
        # Boolean attributes come back as None
        return [v for v in attrs.values() if v]

    def body_text(self) -> str:
        body = self._parser.body
        if body is None:
            return ""
        parts: list[str] = []
        # Iterative walk; a str on the stack is a pending block-end separator
        stack: list = [body]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            if item.tag == "-text":
                parts.append(item.text_content or "")
                continue
            if item.tag in BLOCK_TAGS:
                parts.append(" ")
                stack.append(" ")
            stack.extend(reversed(list(item.iter(include_text=True))))
        return "".join(parts)

    def mailto_targets(self) -> list[str]:
        """Address portion of every mailto: link, query string dropped."""
        out: list[str] = []
        for a in self._parser.css("a[href]"):
            href = (a.attributes.get("href") or "").strip()
            if not href.lower().startswith("mailto:"):
                continue
            address = href[len("mailto:"):].split("?", 1)[0].strip()
            if address:
                out.append(address)
        return out

    def title(self) -> str | None:
        node = self._parser.css_first("title")
        if node is None:
            return None
        text = (node.text() or "").strip()
        return text or None
