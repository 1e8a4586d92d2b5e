"""
Serves the built admin panel for paths the API routers do not own.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

ENTRY_DOCUMENT = "index.html"


def resolve_asset(dist_dir: Path, path: str) -> Path | None:
    """Return the file under ``dist_dir`` for ``path``, or None if there is none."""
    root = dist_dir.resolve()
    candidate = (root / path.lstrip("/")).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    if candidate.is_file():
        return candidate
    return None


def install_spa_fallback(app: FastAPI, dist_dir: str, api_prefix: str) -> None:
    root = Path(dist_dir)
    entry = root / ENTRY_DOCUMENT
    if not entry.is_file():
        logger.warning("SPA_DIST_DIR %s has no %s; static fallback disabled", dist_dir, ENTRY_DOCUMENT)
        return

    async def _spa_not_found(request: Request, exc: StarletteHTTPException):
        path = request.url.path
        is_api = path == api_prefix or path.startswith(f"{api_prefix}/")
        if request.method in ("GET", "HEAD") and not is_api:
            asset = resolve_asset(root, path)
            if asset is not None:
                return FileResponse(asset)
            # Paths that look like files stay 404; anything else is a client-side route.
            if "." not in Path(path).name:
                return FileResponse(entry)
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    app.add_exception_handler(404, _spa_not_found)
    logger.info("Serving admin panel from %s", root)
