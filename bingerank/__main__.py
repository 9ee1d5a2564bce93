"""Serve the BingeRank API with uvicorn (``python -m bingerank`` or ``bingerank``)."""

from __future__ import annotations

import uvicorn

from .config import settings


def main() -> None:
    """Serve ``bingerank.main:app`` on the configured host and port.

    Auto-reload is enabled only when ``ENVIRONMENT`` is ``development``.
    """

    uvicorn.run(
        "bingerank.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":  # pragma: no cover - runtime entrypoint
    main()
