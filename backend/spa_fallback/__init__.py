"""Single-page application serving with index.html fallback."""

from spa_fallback.handler import SinglePageAppHandler, can_serve_file, clean_path, create_handler
from spa_fallback.sources import (
    AssetSource,
    AssetSourceError,
    BundledAssetSource,
    LiveDirectoryAssetSource,
    select_asset_source,
)

__all__ = [
    "AssetSource",
    "AssetSourceError",
    "BundledAssetSource",
    "LiveDirectoryAssetSource",
    "SinglePageAppHandler",
    "can_serve_file",
    "clean_path",
    "create_handler",
    "select_asset_source",
]
