"""
Tests for utils/html_scoped.py and utils/html_links.py.

The parsers only look inside one element id, so neighbouring markup must
never leak into the result.
"""

import re

from utils.html_links import extract_links, filter_links
from utils.html_scoped import element_text, first_option_text, marked_row_values, table_rows


class TestElementText:
    def test_text_of_target_only(self):
        html = '<p>before</p><span id="cap">Air <b>Quality</b>\n - x</span><p>after</p>'
        assert element_text(html, element_id="cap") == "Air Quality - x"

    def test_missing_element_is_none(self):
        assert element_text("<p>nothing</p>", element_id="cap") is None

    def test_nested_same_tag(self):
        html = '<div id="d">a<div>b</div>c</div><div>outside</div>'
        assert element_text(html, element_id="d") == "abc"

    def test_void_tag_inside_scope_does_not_break_depth(self):
        html = '<span id="cap">one<br>two</span><span>three</span>'
        assert element_text(html, element_id="cap") == "onetwo"


class TestTableRows:
    def test_rows_and_cells(self):
        html = (
            '<table id="g"><tr><th>Date</th><th>SO2</th></tr>'
            "<tr><td></td><td>ppb</td></tr></table>"
        )
        assert table_rows(html, element_id="g") == [["Date", "SO2"], ["", "ppb"]]

    def test_unclosed_cells_and_rows(self):
        html = '<table id="g"><tr><td>a<td>b<tr><td>c</table><table><tr><td>z</table>'
        assert table_rows(html, element_id="g") == [["a", "b"], ["c"]]

    def test_nested_table_rows_are_not_direct_rows(self):
        html = '<table id="g"><tr><td>x<table><tr><td>in</td></tr></table></td></tr></table>'
        rows = table_rows(html, element_id="g")
        assert len(rows) == 1
        assert rows[0] == ["xin"]

    def test_wrapper_element_uses_first_table_level(self):
        html = '<div id="g"><table><tr><td>1</td></tr><tr><td>2</td></tr></table></div>'
        assert table_rows(html, element_id="g") == [["1"], ["2"]]

    def test_absent_table(self):
        assert table_rows("<table><tr><td>1</td></tr></table>", element_id="g") == []


class TestFirstOption:
    def test_first_option_without_closing_tags(self):
        html = '<select id="s"><option>30 Minutes<option>1 Hour</select>'
        assert first_option_text(html, element_id="s") == "30 Minutes"

    def test_closed_options(self):
        html = '<select id="s"><option value="1"> 5  Minutes </option><option>x</option></select>'
        assert first_option_text(html, element_id="s") == "5 Minutes"

    def test_empty_select(self):
        assert first_option_text('<select id="s"></select>', element_id="s") is None


class TestMarkedRowValues:
    def test_positional_values(self):
        html = (
            '<div id="info"><table>'
            '<tr><td>Name</td><td><span class="value">North</span></td></tr>'
            "<tr><td>No value here</td></tr>"
            '<tr><td><span class="value">34.5</span></td></tr>'
            "</table></div>"
        )
        assert marked_row_values(html, element_id="info") == ["North", None, "34.5"]

    def test_only_first_table(self):
        html = (
            '<div id="info"><table><tr><td><span class="value">a</span></td></tr></table>'
            '<table><tr><td><span class="value">b</span></td></tr></table></div>'
        )
        assert marked_row_values(html, element_id="info") == ["a"]


class TestLinks:
    def test_document_order_and_missing_href(self):
        html = '<a href="b.aspx">B</a><a>none</a><a href="">empty</a><a href="a.aspx">A</a>'
        links = extract_links(html)
        assert [l.href for l in links] == ["b.aspx", "a.aspx"]

    def test_resolved_against_base(self):
        links = extract_links('<a href="x.aspx?id=1">x</a>', "http://site.test/")
        assert links[0].href == "http://site.test/x.aspx?id=1"

    def test_filter_keeps_duplicates_and_order(self):
        html = '<a href="S5?a=2">1</a><a href="Other">2</a><a href="S5?a=1">3</a><a href="S5?a=2">4</a>'
        links = filter_links(extract_links(html), href_pattern=re.compile("S5"))
        assert [l.text for l in links] == ["1", "3", "4"]
