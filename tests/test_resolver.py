from __future__ import annotations

import pytest

from diropds.opds.classifier import PathClassification, classify
from diropds.opds.clock import frozen_clock
from diropds.opds.errors import MalformedRequestError, NotFoundError
from diropds.opds.metadata import FeedKind, LinkRelation
from diropds.opds.resolver import FeedResult, FileResult, build_resolver, decode_request_path
from tests.conftest import FIXED_NOW, write_book


@pytest.fixture
def resolver(catalog_root):
    return build_resolver(catalog_root, clock=frozen_clock(FIXED_NOW))


def _titles(result) -> list[str]:
    assert isinstance(result, FeedResult)
    return [entry.title for entry in result.document.entries]


def test_root_lists_only_the_virtual_collections(resolver):
    result = resolver.resolve("/")

    assert isinstance(result, FeedResult)
    assert result.kind is FeedKind.NAVIGATION
    assert _titles(result) == ["Latest", "By Title"]


def test_root_feed_is_the_same_for_an_empty_catalog(tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    result = build_resolver(empty).resolve("/")
    assert _titles(result) == ["Latest", "By Title"]


def test_latest_lists_newest_first(resolver):
    resolver.resolve("/")
    result = resolver.resolve("/latest")

    assert result.kind is FeedKind.ACQUISITION
    assert _titles(result) == ["b.epub", "a.epub"]


def test_titles_lists_alphabetically(resolver):
    resolver.resolve("/")
    assert _titles(resolver.resolve("/titles")) == ["a.epub", "b.epub"]


def test_virtual_collections_are_empty_before_the_root_is_requested(resolver):
    assert _titles(resolver.resolve("/latest")) == []
    assert _titles(resolver.resolve("/titles")) == []


def test_virtual_collections_use_the_snapshot_from_the_last_root_request(resolver, catalog_root):
    resolver.resolve("/")
    write_book(catalog_root / "c.epub")
    assert _titles(resolver.resolve("/titles")) == ["a.epub", "b.epub"]

    resolver.resolve("/")
    assert _titles(resolver.resolve("/titles")) == ["a.epub", "b.epub", "c.epub"]


def test_directory_of_files_is_an_acquisition_feed(resolver, catalog_root):
    assert classify(catalog_root / "sub") is PathClassification.DIRECTORY_OF_FILES

    result = resolver.resolve("/sub")

    assert isinstance(result, FeedResult)
    assert result.kind is FeedKind.ACQUISITION
    assert [(entry.title, entry.link.rel) for entry in result.document.entries] == [
        ("b.epub", LinkRelation.ACQUISITION.value)
    ]


def test_directory_of_directories_is_a_navigation_feed(tmp_path):
    root = tmp_path / "library"
    write_book(root / "shelves" / "fiction" / "novel.epub")

    result = build_resolver(root).resolve("/shelves")

    assert result.kind is FeedKind.NAVIGATION
    assert _titles(result) == ["fiction"]


def test_trailing_slash_resolves_like_the_bare_path(resolver):
    result = resolver.resolve("/sub/")
    assert result.document.id == "/sub"


def test_file_is_handed_off_for_streaming(resolver, catalog_root):
    result = resolver.resolve("/sub/b.epub")

    assert isinstance(result, FileResult)
    assert result.path == catalog_root / "sub" / "b.epub"
    assert result.media_type == "application/epub+zip"


def test_encoded_paths_are_decoded(tmp_path):
    root = tmp_path / "books"
    write_book(root / "sci fi" / "dune.epub")
    resolver = build_resolver(root)

    result = resolver.resolve("/sci%20fi%2Fdune.epub")

    assert isinstance(result, FileResult)
    assert result.path.name == "dune.epub"


def test_encoded_path_to_missing_file_is_not_found(resolver):
    with pytest.raises(NotFoundError):
        resolver.resolve("/sub%2Fmissing.epub")


def test_missing_path_is_not_found(resolver):
    with pytest.raises(NotFoundError):
        resolver.resolve("/nope")


def test_paths_escaping_the_root_are_not_found(resolver):
    with pytest.raises(NotFoundError):
        resolver.resolve("/sub/../../etc/passwd")
    with pytest.raises(NotFoundError):
        resolver.resolve("/%2E%2E/outside")


@pytest.mark.parametrize("raw", ["/bad%zzpath", "/truncated%4", "/trailing%", "/latin%E9"])
def test_invalid_percent_encoding_is_malformed(resolver, raw):
    with pytest.raises(MalformedRequestError):
        resolver.resolve(raw)


def test_decode_request_path_normalises_slashes():
    assert decode_request_path("") == "/"
    assert decode_request_path("//") == "/"
    assert decode_request_path("/a%20b/") == "/a b"
    assert decode_request_path("latest") == "/latest"


def test_build_resolver_rejects_missing_root(tmp_path):
    with pytest.raises(ValueError):
        build_resolver(tmp_path / "missing")
