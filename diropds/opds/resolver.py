from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote

from werkzeug.security import safe_join

from diropds.opds.catalog_index import CatalogIndex
from diropds.opds.classifier import PathClassification, classify
from diropds.opds.clock import Clock, frozen_clock
from diropds.opds.errors import MalformedRequestError, NotFoundError
from diropds.opds.feed import LATEST_PATH, TITLES_PATH, FeedAssembler, FeedAuthor, FeedDocument
from diropds.opds.metadata import FeedKind, MetadataMapper

logger = logging.getLogger(__name__)

_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class FeedResult:
    document: FeedDocument
    kind: FeedKind

    @property
    def media_type(self) -> str:
        return self.kind.media_type


@dataclass(frozen=True)
class FileResult:
    path: Path
    media_type: str


Resolution = Union[FeedResult, FileResult]


def decode_request_path(raw_path: str) -> str:
    """Percent-decode ``raw_path`` strictly and normalise it to ``/``-rooted form."""

    match = _BAD_ESCAPE_RE.search(raw_path)
    if match:
        raise MalformedRequestError(f"Invalid percent-encoding in {raw_path!r}", path=raw_path)
    try:
        decoded = unquote(raw_path, errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedRequestError(f"Request path {raw_path!r} is not valid UTF-8", path=raw_path) from exc
    if "\x00" in decoded:
        raise MalformedRequestError(f"Request path {raw_path!r} contains a NUL byte", path=raw_path)
    decoded = "/" + decoded.lstrip("/")
    if len(decoded) > 1:
        decoded = decoded.rstrip("/")
    return decoded


class FeedResolver:
    """Turn a request path into a feed document or a file to stream."""

    def __init__(
        self,
        root: "str | os.PathLike[str]",
        *,
        index: Optional[CatalogIndex] = None,
        assembler: Optional[FeedAssembler] = None,
        mapper: Optional[MetadataMapper] = None,
    ) -> None:
        self._root = os.path.abspath(os.fspath(root))
        self._index = index or CatalogIndex(self._root)
        self._mapper = mapper or MetadataMapper()
        self._assembler = assembler or FeedAssembler(self._mapper)

    @property
    def root(self) -> str:
        return self._root

    @property
    def index(self) -> CatalogIndex:
        return self._index

    @property
    def mapper(self) -> MetadataMapper:
        return self._mapper

    @property
    def clock(self) -> Clock:
        return self._assembler.clock

    def filesystem_path(self, url_path: str) -> str:
        relative = url_path.lstrip("/")
        if not relative:
            return self._root
        joined = safe_join(self._root, relative)
        if joined is None:
            raise NotFoundError(f"Path {url_path!r} is outside the catalog root", path=url_path)
        return os.path.normpath(joined)

    def resolve(self, raw_path: str) -> Resolution:
        url_path = decode_request_path(raw_path)

        if url_path == "/":
            logger.debug("urlPath:%r rebuilding catalog index", url_path)
            self._index.rebuild()
            return FeedResult(self._assembler.build_root_feed(), FeedKind.NAVIGATION)
        if url_path == LATEST_PATH:
            logger.debug("urlPath:%r serving recently modified files", url_path)
            document = self._assembler.build_virtual_feed(self._index.latest(), url_path)
            return FeedResult(document, FeedKind.ACQUISITION)
        if url_path == TITLES_PATH:
            logger.debug("urlPath:%r serving files by title", url_path)
            document = self._assembler.build_virtual_feed(self._index.by_title(), url_path)
            return FeedResult(document, FeedKind.ACQUISITION)

        fs_path = self.filesystem_path(url_path)
        logger.debug("urlPath:%r fsPath:%r", url_path, fs_path)
        classification = classify(fs_path)
        if classification is PathClassification.FILE:
            return FileResult(Path(fs_path), self._mapper.file_media_type(fs_path))

        kind = (
            FeedKind.ACQUISITION
            if classification is PathClassification.DIRECTORY_OF_FILES
            else FeedKind.NAVIGATION
        )
        return FeedResult(self._assembler.build_directory_feed(fs_path, url_path, kind), kind)


def build_resolver(
    root: "str | os.PathLike[str]",
    *,
    author: Optional[FeedAuthor] = None,
    catalog_title: str = "Catalog",
    clock: Optional[Clock] = None,
    mapper: Optional[MetadataMapper] = None,
) -> FeedResolver:
    root_path = os.path.abspath(os.fspath(root))
    if not os.path.isdir(root_path):
        raise ValueError(f"Catalog root {root_path} is not a directory")
    mapper = mapper or MetadataMapper()
    assembler = FeedAssembler(
        mapper,
        clock=clock or frozen_clock(),
        author=author,
        catalog_title=catalog_title,
    )
    return FeedResolver(root_path, index=CatalogIndex(root_path), assembler=assembler, mapper=mapper)
