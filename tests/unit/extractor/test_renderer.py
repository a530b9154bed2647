"""
Unit tests for the BeautifulSoup renderer.
"""

from sievetext.extractor.renderer import SoupRenderer


def rendered(html: str):
    return [line.strip() for line in SoupRenderer().render(html) if line.strip()]


def test_block_elements_start_new_lines():
    html = "<html><body><h1>Title</h1><p>First paragraph.</p><div>Second block.</div></body></html>"

    assert rendered(html) == ["Title", "First paragraph.", "Second block."]


def test_inline_elements_flow_into_line():
    html = "<p>Read <a href='/x'>the <b>linked</b> article</a> today.</p>"

    assert rendered(html) == ["Read the linked article today."]


def test_non_visible_content_dropped():
    html = (
        "<html><head><title>Hidden title</title><style>p { color: red; }</style></head>"
        "<body><script>var x = 1;</script><p>Visible text.</p><noscript>Enable JS</noscript>"
        "<!-- a comment --></body></html>"
    )

    assert rendered(html) == ["Visible text."]


def test_line_breaks_split_lines():
    assert rendered("<p>One<br>Two<br/>Three</p>") == ["One", "Two", "Three"]


def test_list_and_table_items():
    html = "<ul><li>Alpha</li><li>Beta</li></ul><table><tr><td>Cell</td></tr></table>"

    assert rendered(html) == ["Alpha", "Beta", "Cell"]


def test_doctype_skipped():
    assert rendered("<!DOCTYPE html><p>Body</p>") == ["Body"]


def test_plain_text():
    assert rendered("Just some text") == ["Just some text"]


def test_empty_document():
    assert SoupRenderer().render("") == []


def test_deeply_nested_inline_elements():
    html = "<font>" * 3000 + "hello world" + "</font>" * 3000

    assert rendered(html) == ["hello world"]


def test_deeply_nested_blocks_keep_line_order():
    html = "<div>before" * 2000 + "<p>inside</p>" + "after</div>" * 2000

    lines = rendered(html)

    assert lines[0] == "before"
    assert lines[2000] == "inside"
    assert lines[2001] == "after"
    assert len(lines) == 4001
