from __future__ import annotations

import logging
import os
import posixpath
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote

from diropds.opds.catalog_index import ContentEntry
from diropds.opds.classifier import PathClassification, classify
from diropds.opds.clock import Clock, frozen_clock
from diropds.opds.errors import AccessError, NotFoundError
from diropds.opds.metadata import FeedKind, LinkRelation, MetadataMapper, NAVIGATION_TYPE

logger = logging.getLogger(__name__)

LATEST_PATH = "/latest"
TITLES_PATH = "/titles"

_WORD_START_RE = re.compile(r"(^|\W)(\w)")


@dataclass(frozen=True)
class FeedLink:
    href: str
    rel: str
    type: str = ""
    title: Optional[str] = None


@dataclass(frozen=True)
class FeedAuthor:
    name: str = ""
    email: Optional[str] = None
    uri: Optional[str] = None


@dataclass(frozen=True)
class FeedEntry:
    id: str
    title: str
    updated: datetime
    published: datetime
    link: FeedLink


@dataclass(frozen=True)
class FeedDocument:
    id: str
    title: str
    updated: datetime
    author: FeedAuthor = field(default_factory=FeedAuthor)
    links: Tuple[FeedLink, ...] = ()
    entries: Tuple[FeedEntry, ...] = ()


def href_for(catalog_path: str) -> str:
    """Percent-encode a decoded root-relative path one segment at a time."""
    return quote("/" + catalog_path.lstrip("/"), safe="/")


def title_for(request_path: str) -> str:
    segment = posixpath.basename(request_path.rstrip("/"))
    return _WORD_START_RE.sub(lambda match: match.group(1) + match.group(2).upper(), segment)


class FeedAssembler:
    """Compose feed documents for the root, the virtual collections and directories."""

    def __init__(
        self,
        mapper: Optional[MetadataMapper] = None,
        *,
        clock: Optional[Clock] = None,
        author: Optional[FeedAuthor] = None,
        catalog_title: str = "Catalog",
    ) -> None:
        self._mapper = mapper or MetadataMapper()
        self._clock = clock or frozen_clock()
        self._author = author or FeedAuthor()
        self._catalog_title = catalog_title

    @property
    def clock(self) -> Clock:
        return self._clock

    def _document(self, request_path: str, kind: FeedKind, entries: Iterable[FeedEntry]) -> FeedDocument:
        title = title_for(request_path) or self._catalog_title
        return FeedDocument(
            id=request_path,
            title=title,
            updated=self._clock(),
            author=self._author,
            links=(
                FeedLink(href="/", rel=LinkRelation.START.value, type=NAVIGATION_TYPE),
                FeedLink(href=href_for(request_path), rel=LinkRelation.SELF.value, type=kind.media_type),
            ),
            entries=tuple(entries),
        )

    def _entry(self, catalog_path: str, title: str, rel: str, media_type: str) -> FeedEntry:
        now = self._clock()
        return FeedEntry(
            id=catalog_path,
            title=title,
            updated=now,
            published=now,
            link=FeedLink(href=href_for(catalog_path), rel=rel, type=media_type, title=title),
        )

    def _entry_for_path(self, filesystem_path: str, catalog_path: str, title: str) -> FeedEntry:
        classification = classify(filesystem_path)
        return self._entry(
            catalog_path,
            title,
            self._mapper.relation(filesystem_path, classification).value,
            self._mapper.media_type(filesystem_path, classification),
        )

    def build_root_feed(self) -> FeedDocument:
        synthetic = [
            self._entry(LATEST_PATH, "Latest", LinkRelation.SUBSECTION.value, NAVIGATION_TYPE),
            self._entry(TITLES_PATH, "By Title", LinkRelation.SUBSECTION.value, NAVIGATION_TYPE),
        ]
        return self._document("/", FeedKind.NAVIGATION, synthetic)

    def build_virtual_feed(self, entries: Iterable[ContentEntry], request_path: str) -> FeedDocument:
        feed_entries: List[FeedEntry] = []
        for content in entries:
            try:
                feed_entries.append(
                    self._entry_for_path(content.path, "/" + content.relative_path, content.name)
                )
            except NotFoundError:
                logger.warning("Indexed file %s no longer exists; leaving it out of %s", content.path, request_path)
        return self._document(request_path, FeedKind.ACQUISITION, feed_entries)

    def build_directory_feed(
        self,
        directory: "str | os.PathLike[str]",
        request_path: str,
        kind: Optional[FeedKind] = None,
    ) -> FeedDocument:
        directory = os.fspath(directory)
        if kind is None:
            classification = classify(directory)
            kind = (
                FeedKind.ACQUISITION
                if classification is PathClassification.DIRECTORY_OF_FILES
                else FeedKind.NAVIGATION
            )
        try:
            with os.scandir(directory) as iterator:
                names = sorted(child.name for child in iterator)
        except FileNotFoundError as exc:
            raise NotFoundError(f"No such directory: {directory}", path=directory) from exc
        except OSError as exc:
            raise AccessError(f"Unable to list {directory}: {exc}", path=directory) from exc
        entries = [
            self._entry_for_path(
                os.path.join(directory, name),
                posixpath.join(request_path, name),
                name,
            )
            for name in names
        ]
        return self._document(request_path, kind, entries)
