"""Unit tests for the in-memory page document."""

from __future__ import annotations

from privacypal.document import PageDocument

HTML = """
<html>
  <body>
    <nav><a href="/about">About</a></nav>
    <footer>
      <a href="/privacy-policy">Privacy Policy</a>
      <a href="https://legal.example.com/data">Data <b>Policy</b></a>
      <a name="anchor-without-href">Top</a>
    </footer>
  </body>
</html>
"""


class TestAnchors:
    def test_document_order_and_absolute_hrefs(self) -> None:
        document = PageDocument("https://www.example.com/shop/", HTML)
        anchors = document.anchors()
        assert [a.href for a in anchors] == [
            "https://www.example.com/about",
            "https://www.example.com/privacy-policy",
            "https://legal.example.com/data",
        ]

    def test_text_includes_nested_markup(self) -> None:
        document = PageDocument("https://www.example.com/", HTML)
        assert document.anchors()[2].text == "Data Policy"

    def test_empty_document(self) -> None:
        assert PageDocument("https://example.com/").anchors() == []


class TestMutations:
    def test_append_notifies_and_adds_anchor(self) -> None:
        document = PageDocument("https://example.com/", "<html><body></body></html>")
        notified: list[int] = []
        document.observe(lambda: notified.append(1))

        document.append_html('<a href="/privacy">Privacy</a>')

        assert notified == [1]
        assert [a.href for a in document.anchors()] == ["https://example.com/privacy"]

    def test_remove_anchor(self) -> None:
        document = PageDocument("https://www.example.com/", HTML)
        notified: list[int] = []
        document.observe(lambda: notified.append(1))

        assert document.remove_anchor("https://www.example.com/privacy-policy") is True
        assert notified == [1]
        assert "https://www.example.com/privacy-policy" not in [a.href for a in document.anchors()]

    def test_remove_missing_anchor_does_not_notify(self) -> None:
        document = PageDocument("https://www.example.com/", HTML)
        notified: list[int] = []
        document.observe(lambda: notified.append(1))
        assert document.remove_anchor("https://www.example.com/nope") is False
        assert notified == []

    def test_navigate_replaces_location_and_content(self) -> None:
        document = PageDocument("https://www.example.com/", HTML)
        document.navigate("https://other.org/", '<a href="/p">Privacy</a>')
        assert document.url == "https://other.org/"
        assert [a.href for a in document.anchors()] == ["https://other.org/p"]

    def test_disconnect_stops_notifications(self) -> None:
        document = PageDocument("https://example.com/")
        notified: list[int] = []
        disconnect = document.observe(lambda: notified.append(1))
        assert document.observer_count == 1

        disconnect()
        disconnect()
        document.append_html("<p>hi</p>")

        assert notified == []
        assert document.observer_count == 0

    def test_failing_observer_does_not_block_others(self) -> None:
        document = PageDocument("https://example.com/")
        notified: list[int] = []

        def broken() -> None:
            raise RuntimeError("observer bug")

        document.observe(broken)
        document.observe(lambda: notified.append(1))
        document.append_html("<p>hi</p>")

        assert notified == [1]
