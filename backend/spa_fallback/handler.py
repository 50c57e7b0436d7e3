"""ASGI handler serving a single-page application with index.html fallback."""

import logging
import os
import posixpath
import stat
from typing import Optional, Union

import anyio.to_thread
from starlette.staticfiles import StaticFiles
from starlette.types import Receive, Scope, Send

from spa_fallback.config import settings
from spa_fallback.sources import AssetSource, select_asset_source

logger = logging.getLogger(__name__)

ROOT_DOCUMENT = "index.html"


def clean_path(path: str) -> str:
    """Return the shortest rooted path equivalent to ``path``.

    Collapses duplicate slashes, ``.`` and ``..`` elements; ``..`` above the
    root is dropped and trailing slashes are removed. ``""`` becomes ``"/"``.
    """
    cleaned = posixpath.normpath("/" + path)
    # POSIX keeps a leading "//" as implementation-defined; we do not.
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def can_serve_file(source: AssetSource, path: str) -> bool:
    """True if ``path`` names an existing, non-directory entry of ``source``.

    Every failure (missing, permission, invalid name, closed source, I/O
    error) counts as not servable.
    """
    try:
        with source.open(path.lstrip("/")) as fh:
            st = os.fstat(fh.fileno())
    except (OSError, ValueError):
        return False
    return not stat.S_ISDIR(st.st_mode)


def route_path(scope: Scope) -> str:
    """Request path relative to the mount point (``root_path``).

    Same rules as Starlette's ``get_route_path``, which lives in the private
    ``starlette._utils`` module and so is not imported here.
    """
    path = scope["path"]
    root_path = scope.get("root_path", "")
    if not root_path or not path.startswith(root_path):
        return path
    if path == root_path:
        return ""
    if path[len(root_path)] == "/":
        return path[len(root_path):]
    return path


class SinglePageAppHandler:
    """Serve files from an asset source, falling back to the root document.

    Requests for paths that are servable files are passed untouched to a
    Starlette ``StaticFiles`` delegate. Every other path (missing files,
    directories) is rewritten to ``/`` so the delegate answers with
    ``index.html`` and the client-side router can take over.

    The handler owns its asset source; close it on shutdown with ``close()``
    or by using the handler as a (async) context manager. When run as the
    top-level ASGI app this happens on lifespan shutdown.
    """

    def __init__(self, source: AssetSource):
        self.source = source
        self._static = StaticFiles(directory=source.directory, html=True)
        if not can_serve_file(source, ROOT_DOCUMENT):
            logger.warning(
                f"Root document {ROOT_DOCUMENT} not found in {source.directory}; "
                "unknown paths will return 404"
            )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "lifespan":
            await self._lifespan(receive, send)
            return
        if scope["type"] != "http":
            await send({"type": "websocket.close", "code": 1000})
            return

        canonical = clean_path(route_path(scope))
        servable = await anyio.to_thread.run_sync(can_serve_file, self.source, canonical)
        if not servable:
            logger.debug(f"No servable file for {canonical}, serving {ROOT_DOCUMENT}")
            scope = self.fallback_scope(scope)
        await self._static(scope, receive, send)

    @staticmethod
    def fallback_scope(scope: Scope) -> Scope:
        """Shallow copy of ``scope`` pointing at the application root.

        Only ``path`` and ``raw_path`` change; everything else, including the
        query string and the state shared with the server, is kept.
        """
        fallback = dict(scope)
        fallback["path"] = scope.get("root_path", "") + "/"
        fallback["raw_path"] = fallback["path"].encode("utf-8")
        return fallback

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                self.close()
                await send({"type": "lifespan.shutdown.complete"})
                return

    @property
    def closed(self) -> bool:
        return self.source.closed

    def close(self) -> None:
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()


def create_handler(
    bundled: AssetSource,
    development_path: Union[str, os.PathLike],
    *,
    development: Optional[bool] = None,
    base_dir: Optional[Union[str, os.PathLike]] = None,
) -> SinglePageAppHandler:
    """
    Build the single-page-app handler.

    Args:
        bundled: The packaged asset source used in regular runs.
        development_path: Directory with the assets, used only in development
            mode. Relative paths resolve against ``base_dir`` (or the
            configured ``SPA_BASE_DIR``, or the working directory).
        development: Select the live directory instead of ``bundled``.
            Defaults to ``settings.SPA_DEVELOPMENT``.
        base_dir: Base for a relative ``development_path``.

    Returns:
        A handler owning exactly one asset source.

    Raises:
        AssetSourceError: If the development location cannot be resolved.
        OSError: If the development directory cannot be opened.
    """
    if development is None:
        development = settings.SPA_DEVELOPMENT

    try:
        source = select_asset_source(
            bundled, development_path, development=development, base_dir=base_dir
        )
    except BaseException:
        bundled.close()
        raise

    logger.info(f"Serving single-page app from {source.kind} source at {source.directory}")
    return SinglePageAppHandler(source)
