from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest

from diropds.opds.catalog_index import CatalogIndex
from diropds.opds.clock import frozen_clock
from diropds.opds.errors import SerializationError
from diropds.opds.feed import FeedAssembler, FeedAuthor
from diropds.opds.metadata import FeedKind
from diropds.opds.serializer import ATOM_NS, NS, parse_feed, render_feed
from tests.conftest import FIXED_NOW, write_book


def _assembler() -> FeedAssembler:
    return FeedAssembler(
        clock=frozen_clock(FIXED_NOW),
        author=FeedAuthor(name="Librarian", email="librarian@example.org"),
    )


def test_rendered_feed_starts_with_xml_declaration_and_is_indented():
    payload = render_feed(_assembler().build_root_feed(), FeedKind.NAVIGATION)
    text = payload.decode("utf-8")

    assert text.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<feed xmlns="http://www.w3.org/2005/Atom"')
    assert "\n  <id>/</id>" in text
    assert "\n    <link rel=\"subsection\"" in text


def test_navigation_feed_has_no_opds_namespaces():
    text = render_feed(_assembler().build_root_feed(), FeedKind.NAVIGATION).decode("utf-8")
    assert "xmlns:dc" not in text
    assert "xmlns:opds" not in text


def test_acquisition_feed_declares_dc_and_opds_namespaces(catalog_root):
    feed = _assembler().build_directory_feed(catalog_root / "sub", "/sub")
    text = render_feed(feed, FeedKind.ACQUISITION).decode("utf-8")

    assert 'xmlns:dc="http://purl.org/dc/terms/"' in text
    assert 'xmlns:opds="http://opds-spec.org/2010/catalog"' in text
    root = ET.fromstring(text.encode("utf-8"))
    assert root.tag == f"{{{ATOM_NS}}}feed"
    link = root.find("atom:entry/atom:link", NS)
    assert link is not None
    assert link.attrib["rel"] == "http://opds-spec.org/acquisition"
    assert link.attrib["type"] == "application/epub+zip"


def test_round_trip_preserves_ids_titles_and_links(catalog_root):
    write_book(catalog_root / "cover.png")
    write_book(catalog_root / "Tom & Jerry <1>.epub")
    index = CatalogIndex(catalog_root)
    index.rebuild()
    feed = _assembler().build_virtual_feed(index.by_title(), "/titles")

    parsed = parse_feed(render_feed(feed, FeedKind.ACQUISITION))

    assert parsed == feed


def test_author_without_optional_fields_round_trips():
    feed = FeedAssembler(clock=frozen_clock(FIXED_NOW), author=FeedAuthor(name="Solo")).build_root_feed()
    parsed = parse_feed(render_feed(feed, FeedKind.NAVIGATION))

    assert parsed.author == FeedAuthor(name="Solo")
    assert parsed.updated == FIXED_NOW


def test_control_characters_raise_serialization_error(tmp_path):
    shelf = tmp_path / "shelf"
    write_book(shelf / "bad\x01name.epub")
    feed = _assembler().build_directory_feed(shelf, "/shelf")

    with pytest.raises(SerializationError) as excinfo:
        render_feed(feed, FeedKind.ACQUISITION)
    assert excinfo.value.path == "/shelf"


def test_parse_rejects_malformed_xml():
    with pytest.raises(SerializationError):
        parse_feed(b"<feed><unclosed></feed>")
