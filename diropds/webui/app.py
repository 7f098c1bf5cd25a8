from __future__ import annotations

import logging
import os
from typing import Any, Optional

from flask import Flask

from diropds.opds.feed import FeedAuthor
from diropds.opds.resolver import build_resolver
from diropds.utils import get_version, load_settings


class _SuppressSuccessfulAccessFilter(logging.Filter):
    """Filter out successful werkzeug access logs."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - small utility
        try:
            message = record.getMessage()
        except Exception:  # pragma: no cover - defensive
            return True
        # Werkzeug access logs include the status code near the end, e.g.
        # "GET /path HTTP/1.1" 200 -
        return not any(f" {status} " in message for status in ("200", "206", "304"))


_access_log_filter_attached = False


def _feed_author(app: Flask) -> FeedAuthor:
    return FeedAuthor(
        name=app.config["CATALOG_AUTHOR"] or "",
        email=app.config["CATALOG_AUTHOR_EMAIL"] or None,
        uri=app.config["CATALOG_AUTHOR_URI"] or None,
    )


def create_app(config: Optional[dict[str, Any]] = None) -> Flask:
    settings = load_settings()

    app = Flask(__name__, static_folder=None)
    base_config = {
        "CATALOG_ROOT": settings["catalog_root"],
        "CATALOG_TITLE": settings["catalog_title"],
        "CATALOG_AUTHOR": settings["author"],
        "CATALOG_AUTHOR_EMAIL": settings["author_email"],
        "CATALOG_AUTHOR_URI": settings["author_uri"],
    }
    if config:
        base_config.update(config)
    app.config.update(base_config)

    resolver = build_resolver(
        app.config["CATALOG_ROOT"],
        author=_feed_author(app),
        catalog_title=app.config["CATALOG_TITLE"],
        clock=app.config.get("CATALOG_CLOCK"),
    )
    app.extensions["feed_resolver"] = resolver

    from diropds.webui.routes import catalog_bp

    app.register_blueprint(catalog_bp)

    global _access_log_filter_attached
    if not _access_log_filter_attached:
        logging.getLogger("werkzeug").addFilter(_SuppressSuccessfulAccessFilter())
        _access_log_filter_attached = True

    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def main() -> None:
    settings = load_settings()
    configure_logging(settings["log_level"])
    app = create_app()
    logging.getLogger(__name__).info(
        "diropds %s serving %s on %s:%s",
        get_version(),
        app.config["CATALOG_ROOT"],
        settings["host"],
        settings["port"],
    )
    app.run(host=settings["host"], port=settings["port"], debug=settings["debug"])


if __name__ == "__main__":  # pragma: no cover
    main()
