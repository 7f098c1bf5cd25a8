from __future__ import annotations

import mimetypes
import os
from enum import Enum
from pathlib import PurePath
from types import MappingProxyType
from typing import Mapping, Optional

from diropds.opds.classifier import PathClassification, PathLike

NAVIGATION_TYPE = "application/atom+xml;profile=opds-catalog;kind=navigation"
ACQUISITION_TYPE = "application/atom+xml;profile=opds-catalog;kind=acquisition"

BUILTIN_MEDIA_TYPES: Mapping[str, str] = MappingProxyType(
    {
        ".mobi": "application/x-mobipocket-ebook",
        ".epub": "application/epub+zip",
        ".cbz": "application/x-cbz",
        ".cbr": "application/x-cbr",
        ".fb2": "text/fb2+xml",
        ".pdf": "application/pdf",
    }
)

_THUMBNAIL_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif"})


class LinkRelation(str, Enum):
    SUBSECTION = "subsection"
    ACQUISITION = "http://opds-spec.org/acquisition"
    THUMBNAIL = "http://opds-spec.org/image/thumbnail"
    START = "start"
    SELF = "self"


class FeedKind(str, Enum):
    NAVIGATION = NAVIGATION_TYPE
    ACQUISITION = ACQUISITION_TYPE

    @property
    def media_type(self) -> str:
        return self.value


def build_media_types(extra: Optional[Mapping[str, str]] = None) -> Mapping[str, str]:
    """Merge the system MIME associations with the e-book table.

    Built-in entries win over system ones and ``extra`` wins over both. The
    result is read-only.
    """

    if not mimetypes.inited:
        mimetypes.init()
    table = {ext.lower(): mime for ext, mime in mimetypes.types_map.items()}
    table.update(BUILTIN_MEDIA_TYPES)
    for ext, mime in (extra or {}).items():
        normalized = ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        table[normalized] = mime
    return MappingProxyType(table)


def _extension(path: PathLike) -> str:
    return PurePath(os.fspath(path)).suffix.lower()


class MetadataMapper:
    """Derive link relations and media types for catalog paths."""

    def __init__(self, media_types: Optional[Mapping[str, str]] = None) -> None:
        self._media_types = media_types if media_types is not None else build_media_types()

    @property
    def media_types(self) -> Mapping[str, str]:
        return self._media_types

    def relation(self, path: PathLike, classification: PathClassification) -> LinkRelation:
        if classification.is_directory:
            return LinkRelation.SUBSECTION
        if _extension(path) in _THUMBNAIL_EXTENSIONS:
            return LinkRelation.THUMBNAIL
        return LinkRelation.ACQUISITION

    def media_type(self, path: PathLike, classification: PathClassification) -> str:
        if classification is PathClassification.DIRECTORY_OF_FILES:
            return ACQUISITION_TYPE
        if classification is PathClassification.DIRECTORY_OF_DIRECTORIES:
            return NAVIGATION_TYPE
        return self.file_media_type(path)

    def file_media_type(self, path: PathLike) -> str:
        # Unknown extensions map to an empty type rather than an error.
        return self._media_types.get(_extension(path), "")
