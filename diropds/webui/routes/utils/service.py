from flask import current_app

from diropds.opds.resolver import FeedResolver


def get_resolver() -> FeedResolver:
    return current_app.extensions["feed_resolver"]
