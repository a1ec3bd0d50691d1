from __future__ import annotations

from html.parser import HTMLParser


_VOID_TAGS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}


def _attrs_to_dict(attrs: list[tuple[str, str | None]]) -> dict[str, str]:
    out: dict[str, str] = {}
    for k, v in attrs:
        if v is None:
            continue
        out[k.lower()] = v
    return out


def _clean(value: str) -> str:
    return " ".join(value.split())


class _ScopedParser(HTMLParser):
    """Base parser that only reacts inside the first element with ``element_id``.

    The scope closes on the end tag matching the target element's own tag,
    counting same-name nesting only, so omitted ``</td>`` or ``</option>``
    tags inside the scope do not throw the depth off.
    """

    def __init__(self, *, element_id: str) -> None:
        super().__init__(convert_charrefs=True)
        self._target_id = element_id
        self._target_tag: str | None = None
        self._same_tag_depth = 0
        self.found = False
        self.finished = False

    @property
    def in_scope(self) -> bool:
        return self._same_tag_depth > 0 and not self.finished

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self.finished:
            return
        t = tag.lower()
        attrs_map = _attrs_to_dict(attrs)

        if self._target_tag is None:
            if attrs_map.get("id") != self._target_id:
                return
            self.found = True
            if t in _VOID_TAGS:
                self.finished = True
                return
            self._target_tag = t
            self._same_tag_depth = 1
            self.scope_opened(t, attrs_map)
            return

        if t == self._target_tag:
            self._same_tag_depth += 1
        self.scoped_starttag(t, attrs_map)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self.in_scope:
            self.scoped_starttag(tag.lower(), _attrs_to_dict(attrs))
            self.scoped_endtag(tag.lower())
        elif self._target_tag is None and not self.finished:
            # A self-closed target has no content.
            if _attrs_to_dict(attrs).get("id") == self._target_id:
                self.found = True
                self.finished = True

    def handle_endtag(self, tag: str) -> None:
        if not self.in_scope:
            return
        t = tag.lower()
        if t == self._target_tag:
            self._same_tag_depth -= 1
            if self._same_tag_depth == 0:
                self.scope_closed()
                self.finished = True
                return
        self.scoped_endtag(t)

    def handle_data(self, data: str) -> None:
        if self.in_scope:
            self.scoped_data(data)

    def close(self) -> None:
        super().close()
        if self.in_scope:
            self.scope_closed()
            self.finished = True

    # Hooks for subclasses.
    def scope_opened(self, tag: str, attrs: dict[str, str]) -> None:
        pass

    def scope_closed(self) -> None:
        pass

    def scoped_starttag(self, tag: str, attrs: dict[str, str]) -> None:
        pass

    def scoped_endtag(self, tag: str) -> None:
        pass

    def scoped_data(self, data: str) -> None:
        pass


class _TextParser(_ScopedParser):
    def __init__(self, *, element_id: str) -> None:
        super().__init__(element_id=element_id)
        self.parts: list[str] = []

    def scoped_data(self, data: str) -> None:
        self.parts.append(data)


class _TableRowsParser(_ScopedParser):
    """Collects the direct rows of a table scope as lists of cell text.

    When the scope element is not itself a table, rows of the first table
    level inside it are collected instead.
    """

    def __init__(self, *, element_id: str) -> None:
        super().__init__(element_id=element_id)
        self.rows: list[list[str]] = []
        self._nested_tables = 0
        self._row_level = 0
        self._row: list[str] | None = None
        self._cell: list[str] | None = None

    def scope_opened(self, tag: str, attrs: dict[str, str]) -> None:
        self._row_level = 0 if tag == "table" else 1

    def _close_cell(self) -> None:
        if self._row is not None and self._cell is not None:
            self._row.append(_clean("".join(self._cell)))
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None:
            self.rows.append(self._row)
        self._row = None

    def scoped_starttag(self, tag: str, attrs: dict[str, str]) -> None:
        if tag == "table":
            self._nested_tables += 1
            return
        if self._nested_tables != self._row_level:
            return
        if tag == "tr":
            self._close_row()
            self._row = []
        elif tag in ("td", "th"):
            self._close_cell()
            if self._row is None:
                self._row = []
            self._cell = []

    def scoped_endtag(self, tag: str) -> None:
        if tag == "table":
            if self._nested_tables == self._row_level:
                self._close_row()
            self._nested_tables = max(0, self._nested_tables - 1)
            return
        if self._nested_tables != self._row_level:
            return
        if tag in ("td", "th"):
            self._close_cell()
        elif tag == "tr":
            self._close_row()

    def scoped_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)

    def scope_closed(self) -> None:
        self._close_row()


class _FirstOptionParser(_ScopedParser):
    def __init__(self, *, element_id: str) -> None:
        super().__init__(element_id=element_id)
        self.text: str | None = None
        self._parts: list[str] | None = None

    def _finish_option(self) -> None:
        if self._parts is not None and self.text is None:
            self.text = _clean("".join(self._parts))
        self._parts = None

    def scoped_starttag(self, tag: str, attrs: dict[str, str]) -> None:
        if tag != "option":
            return
        if self._parts is not None:
            self._finish_option()
        elif self.text is None:
            self._parts = []

    def scoped_endtag(self, tag: str) -> None:
        if tag == "option":
            self._finish_option()

    def scoped_data(self, data: str) -> None:
        if self._parts is not None:
            self._parts.append(data)

    def scope_closed(self) -> None:
        self._finish_option()


class _MarkedValueRowsParser(_ScopedParser):
    """For the first table in scope, records one marked value per direct row.

    A value is the text of the first element in the row carrying an attribute
    whose value equals ``marker`` (``<span class="value">``). Rows without one
    record ``None`` so row indexes stay positional.
    """

    def __init__(self, *, element_id: str, marker: str) -> None:
        super().__init__(element_id=element_id)
        self._marker = marker
        self.values: list[str | None] = []
        self._table_depth = 0
        self._tables_seen = 0
        self._in_row = False
        self._capture_tag: str | None = None
        self._capture_depth = 0
        self._capture_parts: list[str] = []
        self._row_value: str | None = None

    def _end_row(self) -> None:
        if self._in_row:
            self.values.append(self._row_value)
        self._in_row = False
        self._row_value = None
        self._capture_tag = None

    def scoped_starttag(self, tag: str, attrs: dict[str, str]) -> None:
        if tag == "table":
            self._table_depth += 1
            if self._table_depth == 1:
                self._tables_seen += 1
            return
        if self._table_depth != 1 or self._tables_seen != 1:
            if self._capture_tag == tag:
                self._capture_depth += 1
            return
        if tag == "tr":
            self._end_row()
            self._in_row = True
            return
        if not self._in_row:
            return
        if self._capture_tag is not None:
            if tag == self._capture_tag:
                self._capture_depth += 1
            return
        if self._row_value is None and self._marker in attrs.values():
            if tag in _VOID_TAGS:
                self._row_value = _clean(attrs.get("value", ""))
                return
            self._capture_tag = tag
            self._capture_depth = 1
            self._capture_parts = []

    def scoped_endtag(self, tag: str) -> None:
        if self._capture_tag is not None and tag == self._capture_tag:
            self._capture_depth -= 1
            if self._capture_depth == 0:
                self._row_value = _clean("".join(self._capture_parts))
                self._capture_tag = None
            return
        if tag == "table":
            if self._table_depth == 1 and self._tables_seen == 1:
                self._end_row()
            self._table_depth = max(0, self._table_depth - 1)
            return
        if tag == "tr" and self._table_depth == 1 and self._tables_seen == 1:
            self._end_row()

    def scoped_data(self, data: str) -> None:
        if self._capture_tag is not None:
            self._capture_parts.append(data)

    def scope_closed(self) -> None:
        if self._tables_seen == 1:
            self._end_row()


def element_text(html: str, *, element_id: str) -> str | None:
    """Whitespace-normalized text of the element, or None if it is absent."""
    parser = _TextParser(element_id=element_id)
    parser.feed(html)
    parser.close()
    if not parser.found:
        return None
    return _clean("".join(parser.parts))


def table_rows(html: str, *, element_id: str) -> list[list[str]]:
    parser = _TableRowsParser(element_id=element_id)
    parser.feed(html)
    parser.close()
    return parser.rows


def first_option_text(html: str, *, element_id: str) -> str | None:
    parser = _FirstOptionParser(element_id=element_id)
    parser.feed(html)
    parser.close()
    return parser.text


def marked_row_values(
    html: str, *, element_id: str, marker: str = "value"
) -> list[str | None]:
    parser = _MarkedValueRowsParser(element_id=element_id, marker=marker)
    parser.feed(html)
    parser.close()
    return parser.values
