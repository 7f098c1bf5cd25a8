"""Console entry point that launches the catalog server."""

from __future__ import annotations

from diropds.webui.app import main as _run_web_ui


def main() -> None:
    """Launch the Flask-based catalog server."""

    _run_web_ui()


if __name__ == "__main__":  # pragma: no cover - manual execution hook
    main()
