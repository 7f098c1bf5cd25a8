from diropds.opds.classifier import PathClassification, classify
from diropds.opds.catalog_index import CatalogIndex, ContentEntry, Snapshot
from diropds.opds.errors import (
    AccessError,
    CatalogError,
    MalformedRequestError,
    NotFoundError,
    SerializationError,
)
from diropds.opds.feed import FeedAssembler, FeedAuthor, FeedDocument, FeedEntry, FeedLink
from diropds.opds.metadata import FeedKind, LinkRelation, MetadataMapper
from diropds.opds.resolver import FeedResolver, FeedResult, FileResult, build_resolver
from diropds.opds.serializer import parse_feed, render_feed

__all__ = [
    "AccessError",
    "CatalogError",
    "CatalogIndex",
    "ContentEntry",
    "FeedAssembler",
    "FeedAuthor",
    "FeedDocument",
    "FeedEntry",
    "FeedKind",
    "FeedLink",
    "FeedResolver",
    "FeedResult",
    "FileResult",
    "LinkRelation",
    "MalformedRequestError",
    "MetadataMapper",
    "NotFoundError",
    "PathClassification",
    "SerializationError",
    "Snapshot",
    "build_resolver",
    "classify",
    "parse_feed",
    "render_feed",
]
