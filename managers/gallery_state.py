"""In-memory gallery state: assets, selection, filter and export markers"""

import dataclasses
import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Set

from asset_processor import format_dimensions, format_size
from models.asset import GalleryAsset, GalleryStatus, SizeInfo
from models.export import IDLE_PROGRESS, ExportProgress

logger = logging.getLogger("MCP_Server")


class GalleryState:
    """Owns the asset collection and everything derived from it.

    Assets are stored by id and are immutable; every write replaces exactly
    one entry, so enrichment and tagging callbacks arriving from worker
    threads in any order never disturb unrelated entries.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._assets: "OrderedDict[str, GalleryAsset]" = OrderedDict()
        self._selection: Set[str] = set()
        self._filter_text = ""
        self._status = GalleryStatus.IDLE
        self._error: Optional[str] = None
        self._export_active = False
        self._progress = IDLE_PROGRESS

    # -- collection -------------------------------------------------------

    def load(self, assets: Iterable[GalleryAsset]):
        """Replace the collection with a fresh discovery result"""
        with self._lock:
            self._assets = OrderedDict((asset.asset_id, asset) for asset in assets)
            self._selection = set()
            self._status = GalleryStatus.READY
            self._error = None
            logger.info(f"Gallery loaded with {len(self._assets)} assets")

    def set_status(self, status: GalleryStatus, error: Optional[str] = None):
        with self._lock:
            self._status = status
            self._error = error

    @property
    def status(self) -> GalleryStatus:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    def get(self, asset_id: str) -> Optional[GalleryAsset]:
        with self._lock:
            return self._assets.get(asset_id)

    def assets(self) -> List[GalleryAsset]:
        """All assets in display (discovery) order"""
        with self._lock:
            return list(self._assets.values())

    def update(self, asset_id: str, **changes: Any) -> Optional[GalleryAsset]:
        """Replace one asset with a copy carrying ``changes``; unknown ids are ignored"""
        with self._lock:
            current = self._assets.get(asset_id)
            if current is None:
                logger.debug(f"Ignoring update for unknown asset {asset_id}")
                return None
            updated = dataclasses.replace(current, **changes)
            self._assets[asset_id] = updated
            return updated

    def apply_size(self, asset_id: str, size_info: SizeInfo) -> Optional[GalleryAsset]:
        return self.update(asset_id, formatted_size=size_info.formatted, size_bytes=size_info.size_bytes)

    def set_dimensions(self, asset_id: str, width: int, height: int) -> Optional[GalleryAsset]:
        return self.update(asset_id, dimensions=format_dimensions(width, height))

    # -- filter -------------------------------------------------------------

    def set_filter(self, text: Optional[str]):
        with self._lock:
            self._filter_text = text or ""

    @property
    def filter_text(self) -> str:
        return self._filter_text

    def filtered(self) -> List[GalleryAsset]:
        """Assets visible under the current filter, in display order"""
        with self._lock:
            query = self._filter_text
            return [asset for asset in self._assets.values() if asset.matches(query)]

    def neighbor(self, asset_id: str, step: int) -> Optional[GalleryAsset]:
        """Asset ``step`` places away in the filtered view, wrapping around"""
        visible = self.filtered()
        for index, asset in enumerate(visible):
            if asset.asset_id == asset_id:
                return visible[(index + step) % len(visible)]
        return None

    # -- selection ----------------------------------------------------------

    def toggle(self, asset_id: str) -> bool:
        """Flip selection of one asset. Returns whether it is selected afterwards."""
        with self._lock:
            if self._export_active or asset_id not in self._assets:
                return asset_id in self._selection
            if asset_id in self._selection:
                self._selection.discard(asset_id)
                return False
            self._selection.add(asset_id)
            return True

    def select_all(self) -> int:
        """Select every discovered asset, or none if all are already selected"""
        with self._lock:
            if self._export_active:
                return len(self._selection)
            if self._assets and len(self._selection) == len(self._assets):
                self._selection = set()
            else:
                self._selection = set(self._assets)
            return len(self._selection)

    def selected_ids(self) -> Set[str]:
        with self._lock:
            return set(self._selection)

    def is_selected(self, asset_id: str) -> bool:
        with self._lock:
            return asset_id in self._selection

    def selected_assets(self) -> List[GalleryAsset]:
        """Selected assets in display order, regardless of the filter"""
        with self._lock:
            return [asset for asset_id, asset in self._assets.items() if asset_id in self._selection]

    def selected_size(self) -> Optional[str]:
        """Aggregate size of the selection, None when nothing known adds up"""
        total = sum(asset.size_bytes or 0 for asset in self.selected_assets())
        if total == 0:
            return None
        return format_size(total)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "total": len(self._assets),
                "visible": len(self.filtered()),
                "selected": len(self._selection),
                "selected_size": self.selected_size(),
            }

    # -- export markers -----------------------------------------------------

    def begin_export(self) -> bool:
        """Record an export job as active; False if one already is"""
        with self._lock:
            if self._export_active:
                return False
            self._export_active = True
            self._progress = ExportProgress(active=True)
            return True

    def set_processing(self, asset_id: str, current: int, total: int):
        """Move the single processing marker onto ``asset_id``"""
        with self._lock:
            self._progress = ExportProgress(current=current, total=total, processing_id=asset_id, active=True)

    def end_export(self, success: bool):
        """Release the export job; selection is cleared only on success"""
        with self._lock:
            if success:
                self._selection = set()
            self._export_active = False
            self._progress = IDLE_PROGRESS

    @property
    def export_active(self) -> bool:
        return self._export_active

    @property
    def progress(self) -> ExportProgress:
        return self._progress
