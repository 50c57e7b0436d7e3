"""Asset sources: the read-only file stores the SPA handler serves from.

Two variants exist:

* ``BundledAssetSource`` – assets shipped as package data of an importable
  package (``importlib.resources``). Immutable for the life of the process.
* ``LiveDirectoryAssetSource`` – a local directory read on every request,
  used during development so edits show up without a rebuild.

Both are confined to their root directory and own their resources
explicitly: call ``close()`` (or use them as context managers) when done.
"""

import errno
import logging
import os
from abc import ABC, abstractmethod
from contextlib import ExitStack
from importlib import resources
from pathlib import Path
from typing import BinaryIO, Optional, Union

from spa_fallback.config import settings

logger = logging.getLogger(__name__)


class AssetSourceError(Exception):
    """Raised when an asset source cannot be located or is no longer usable."""


class AssetSource(ABC):
    """Read-only hierarchical file store rooted at ``directory``.

    Names are slash-separated and relative to the root (``"assets/app.js"``).
    The empty name and ``"."`` refer to the root itself.
    """

    kind = "abstract"

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._real_root = os.path.realpath(self.directory)
        self._closed = False

    # ── Capabilities ────────────────────────────────────────────────────────

    def open(self, name: str) -> BinaryIO:
        """Open ``name`` for binary reading."""
        return open(self.resolve(name), "rb")

    def stat(self, name: str) -> os.stat_result:
        """Return the ``os.stat_result`` of ``name``."""
        return os.stat(self.resolve(name))

    def resolve(self, name: str) -> Path:
        """Map ``name`` to a path inside the root.

        Raises ValueError for malformed names and PermissionError when the
        name resolves (through symlinks) outside the root.
        """
        if self._closed:
            raise ValueError(f"I/O operation on closed asset source {self!r}")
        parts = _split_name(name)
        full_path = self.directory.joinpath(*parts)
        real_path = os.path.realpath(full_path)
        if os.path.commonpath([real_path, self._real_root]) != self._real_root:
            raise PermissionError(errno.EACCES, "path escapes asset root", name)
        return full_path

    # ── Lifecycle ───────────────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._release()
        logger.info(f"Closed {self.kind} asset source at {self.directory}")

    @abstractmethod
    def _release(self) -> None:
        ...

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self) -> str:
        state = " closed" if self._closed else ""
        return f"<{type(self).__name__} {str(self.directory)!r}{state}>"


class BundledAssetSource(AssetSource):
    """Assets packaged as ``<package>/<resource>`` package data.

    For regular on-disk installs the resource directory is used in place;
    for zip imports it is extracted once and removed again on ``close()``.
    """

    kind = "bundled"

    def __init__(self, package: str, resource: str = "dist"):
        self.package = package
        self.resource = resource
        self._stack = ExitStack()
        try:
            traversable = resources.files(package).joinpath(resource)
            if not traversable.is_dir():
                raise NotADirectoryError(
                    errno.ENOTDIR,
                    "bundled asset resource is not a directory",
                    f"{package}/{resource}",
                )
            directory = self._stack.enter_context(resources.as_file(traversable))
        except BaseException:
            self._stack.close()
            raise
        super().__init__(Path(directory))

    def _release(self) -> None:
        self._stack.close()


class LiveDirectoryAssetSource(AssetSource):
    """A local directory read live, by path, on every lookup.

    The directory is opened once so a missing or unreadable directory fails
    at construction; the handle only tracks ownership. Lookups go through the
    path, like the static-file delegate does, so a rebuilt or replaced
    directory is picked up by both.
    """

    kind = "live-directory"

    def __init__(self, path: Union[str, os.PathLike]):
        path = Path(path)
        flags = os.O_RDONLY | getattr(os, "O_DIRECTORY", 0)
        # Fails with FileNotFoundError / NotADirectoryError / PermissionError
        self._fd = os.open(path, flags)
        if not hasattr(os, "O_DIRECTORY") and not path.is_dir():
            os.close(self._fd)
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), str(path))
        super().__init__(path.resolve())

    def _release(self) -> None:
        os.close(self._fd)


def _split_name(name: str) -> list:
    """Split a relative asset name into path components.

    Only clean, rooted-at-source names are accepted: no leading slash,
    no empty, ``.`` or ``..`` elements (``""`` and ``"."`` mean the root).
    """
    if name in ("", "."):
        return []
    if "\\" in name or "\x00" in name:
        raise ValueError(f"invalid asset name: {name!r}")
    parts = name.split("/")
    if any(part in ("", ".", "..") for part in parts):
        raise ValueError(f"invalid asset name: {name!r}")
    return parts


def resolve_development_path(
    development_path: Union[str, os.PathLike],
    base_dir: Optional[Union[str, os.PathLike]] = None,
) -> Path:
    """Resolve the development asset directory.

    Absolute paths are returned as they are. Relative paths are joined to
    ``base_dir``, then to the configured ``SPA_BASE_DIR``, then to the cwd.
    """
    if not str(development_path):
        raise AssetSourceError("No development asset path configured")
    path = Path(development_path)
    if path.is_absolute():
        return path
    if base_dir is None:
        base_dir = settings.base_dir
    return Path(base_dir) / path


def select_asset_source(
    bundled: AssetSource,
    development_path: Union[str, os.PathLike],
    *,
    development: bool,
    base_dir: Optional[Union[str, os.PathLike]] = None,
) -> AssetSource:
    """Choose the asset source a handler will own for its whole lifetime.

    In production mode ``bundled`` is returned unchanged. In development
    mode the resolved directory is opened as a ``LiveDirectoryAssetSource``
    and ``bundled`` is closed; any error opening the directory propagates.
    """
    if not development:
        return bundled

    location = resolve_development_path(development_path, base_dir)
    source = LiveDirectoryAssetSource(location)
    bundled.close()
    return source
