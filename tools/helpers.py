"""Shared helper functions for tool implementations"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from errors import DiscoveryError
from managers.directory_source import DirectorySource
from managers.gallery_state import GalleryState
from managers.metadata_enricher import MetadataEnricher
from models.asset import GalleryAsset, GalleryStatus

logger = logging.getLogger("MCP_Server")


def load_gallery(
    source: DirectorySource,
    enricher: MetadataEnricher,
    state: GalleryState,
    background: bool = True,
) -> List[GalleryAsset]:
    """Discover assets, publish them to the gallery, then start size probes.

    The listing is available as soon as discovery returns; size probes run
    afterwards (on a daemon thread when ``background`` is set) and fill in
    sizes one asset at a time.

    Raises:
        DiscoveryError: If the listing cannot be retrieved (status set to ERROR)
    """
    state.set_status(GalleryStatus.FETCHING)
    try:
        assets = source.discover()
    except DiscoveryError as e:
        state.set_status(GalleryStatus.ERROR, str(e))
        raise

    state.load(assets)
    if not assets:
        return assets

    if background:
        thread = threading.Thread(
            target=enricher.enrich_all,
            args=(assets, state.apply_size),
            name="size-enrichment",
            daemon=True,
        )
        thread.start()
    else:
        enricher.enrich_all(assets, state.apply_size)
    return assets


def build_asset_response(state: GalleryState, asset: GalleryAsset) -> Dict[str, Any]:
    data = asset.to_dict()
    data["selected"] = state.is_selected(asset.asset_id)
    data["processing"] = state.progress.processing_id == asset.asset_id
    return data


def safe_output_path(directory: Path, filename: str) -> Path:
    """Join a bare filename (no directories) to ``directory``"""
    name = Path(filename).name
    if not name or name in (".", ".."):
        raise ValueError(f"Invalid output filename: {filename!r}")
    return directory / name


def write_output(directory: Optional[Path], filename: str, data: bytes) -> Path:
    if directory is None:
        raise OSError("Export directory is not available")
    path = safe_output_path(directory, filename)
    with open(path, "wb") as f:
        f.write(data)
    logger.info(f"Wrote {len(data)} bytes to {path}")
    return path
