import logging
from urllib.parse import quote

from flask import Blueprint, Response, request, send_file
from flask.typing import ResponseReturnValue

from diropds.opds.errors import (
    AccessError,
    CatalogError,
    MalformedRequestError,
    NotFoundError,
    SerializationError,
)
from diropds.opds.resolver import FileResult
from diropds.opds.serializer import render_feed
from diropds.webui.routes.utils.service import get_resolver

logger = logging.getLogger(__name__)

catalog_bp = Blueprint("catalog", __name__)

_FALLBACK_FILE_TYPE = "application/octet-stream"


def _raw_request_path() -> str:
    # Servers that expose the undecoded URI let us reject bad escapes.
    raw_uri = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if raw_uri:
        path = raw_uri.split("?", 1)[0].split("#", 1)[0]
        if "://" in path:
            path = "/" + path.split("://", 1)[1].partition("/")[2]
        return path or "/"
    return quote(request.path, safe="/")


def _plain_error(exc: CatalogError, status: int) -> ResponseReturnValue:
    return Response(f"{exc}\n", status=status, mimetype="text/plain")


@catalog_bp.errorhandler(MalformedRequestError)
def handle_malformed_request(exc: MalformedRequestError) -> ResponseReturnValue:
    return _plain_error(exc, 400)


@catalog_bp.errorhandler(NotFoundError)
def handle_not_found(exc: NotFoundError) -> ResponseReturnValue:
    return _plain_error(exc, 404)


@catalog_bp.errorhandler(AccessError)
def handle_access_error(exc: AccessError) -> ResponseReturnValue:
    logger.error("Unable to read catalog path %s: %s", exc.path, exc)
    return _plain_error(exc, 500)


@catalog_bp.errorhandler(SerializationError)
def handle_serialization_error(exc: SerializationError) -> ResponseReturnValue:
    logger.exception("Unable to serialize feed for %s", exc.path)
    return _plain_error(exc, 500)


@catalog_bp.get("/", defaults={"subpath": ""})
@catalog_bp.get("/<path:subpath>")
def serve_catalog(subpath: str) -> ResponseReturnValue:
    resolver = get_resolver()
    result = resolver.resolve(_raw_request_path())

    if isinstance(result, FileResult):
        return send_file(
            result.path,
            mimetype=result.media_type or _FALLBACK_FILE_TYPE,
            conditional=True,
        )

    content = render_feed(result.document, result.kind)
    response = Response(content, content_type=result.media_type)
    response.last_modified = resolver.clock()
    response.add_etag()
    return response.make_conditional(request, accept_ranges=True)
