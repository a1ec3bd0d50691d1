from __future__ import annotations

import re
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Iterable
from urllib.parse import urljoin


@dataclass(frozen=True)
class HtmlLink:
    href: str
    text: str


class _AnchorParser(HTMLParser):
    """Collects every ``<a href>`` in document order.

    Anchors without an href (or with an empty one) are skipped. An anchor
    left open is flushed when the next one starts.
    """

    def __init__(self) -> None:
        super().__init__()
        self._in_a = False
        self._current_href: str | None = None
        self._current_text_parts: list[str] = []
        self.links: list[HtmlLink] = []

    def _flush(self) -> None:
        if self._in_a and self._current_href:
            text = " ".join("".join(self._current_text_parts).split())
            self.links.append(HtmlLink(href=self._current_href, text=text))

        self._in_a = False
        self._current_href = None
        self._current_text_parts = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag.lower() != "a":
            return

        self._flush()

        href = None
        for k, v in attrs:
            if k.lower() == "href" and v and v.strip():
                href = v.strip()
                break

        self._in_a = True
        self._current_href = href

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() != "a":
            return
        self._flush()

    def handle_data(self, data: str) -> None:
        if self._in_a:
            self._current_text_parts.append(data)

    def close(self) -> None:
        super().close()
        self._flush()


def extract_links(html: str, base_url: str | None = None) -> list[HtmlLink]:
    """Return anchor links in document order, resolved against ``base_url``."""
    parser = _AnchorParser()
    parser.feed(html)
    parser.close()

    if not base_url:
        return list(parser.links)

    normalized: list[HtmlLink] = []
    for link in parser.links:
        href = urljoin(base_url, link.href)
        normalized.append(HtmlLink(href=href, text=link.text))

    return normalized


def filter_links(
    links: Iterable[HtmlLink],
    *,
    href_pattern: str | re.Pattern[str] | None = None,
    text_contains: str | None = None,
) -> list[HtmlLink]:
    """Keep links matching every given filter; order and duplicates are kept."""
    pattern = re.compile(href_pattern) if isinstance(href_pattern, str) else href_pattern

    out: list[HtmlLink] = []
    for l in links:
        if pattern is not None and not pattern.search(l.href or ""):
            continue
        if text_contains and text_contains.lower() not in (l.text or "").lower():
            continue
        out.append(l)
    return out
