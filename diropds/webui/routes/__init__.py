from diropds.webui.routes.catalog import catalog_bp

__all__ = [
    "catalog_bp",
]
