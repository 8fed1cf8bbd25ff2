"""Sequential bulk export of the gallery selection into a single archive"""

import logging
import time
import zipfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from io import BytesIO
from typing import Callable, Iterator, Optional

import requests

from errors import ExportError, ExportInProgressError
from gateway_client import GatewayClient
from managers.gallery_state import GalleryState
from models.export import ExportResult

logger = logging.getLogger("MCP_Server")

ProgressCallback = Callable[[int, int], None]


class ArchivePackager(ABC):
    """Accumulates named entries and produces one binary payload"""

    @abstractmethod
    def add(self, name: str, data: bytes):
        pass

    @abstractmethod
    def finalize(self) -> bytes:
        pass

    def close(self):
        """Release buffers; safe to call after finalize or after an abort"""
        pass


class ZipPackager(ArchivePackager):
    """In-memory ZIP archive; entries are written in the order they are added"""

    def __init__(self):
        self._buffer = BytesIO()
        self._zip = zipfile.ZipFile(self._buffer, "w", zipfile.ZIP_DEFLATED)

    def add(self, name: str, data: bytes):
        self._zip.writestr(name, data)

    def finalize(self) -> bytes:
        self._zip.close()
        return self._buffer.getvalue()

    def close(self):
        self._zip.close()
        self._buffer.close()


def archive_filename(now: Optional[float] = None) -> str:
    millis = int(round((time.time() if now is None else now) * 1000))
    return f"ipfs_collection_{millis}.zip"


class ExportManager:
    """Runs at most one export job at a time, one asset after another.

    Items are fetched strictly in sequence with a pause between them so a
    large selection does not flood the gateway, and so progress grows by
    exactly one per item.
    """

    def __init__(
        self,
        state: GalleryState,
        client: GatewayClient,
        delay: float = 0.3,
        packager_factory: Callable[[], ArchivePackager] = ZipPackager,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.state = state
        self.client = client
        self.delay = delay
        self.packager_factory = packager_factory
        self._sleep = sleep

    @property
    def is_active(self) -> bool:
        return self.state.export_active

    @contextmanager
    def _job(self) -> Iterator[dict]:
        if not self.state.begin_export():
            raise ExportInProgressError("An export is already in progress")
        outcome = {"success": False}
        try:
            yield outcome
        finally:
            self.state.end_export(outcome["success"])

    def export_selected(self, on_progress: Optional[ProgressCallback] = None) -> ExportResult:
        """Fetch every selected asset in order and pack them into one archive.

        Raises:
            ExportInProgressError: If another export is running
            ExportError: If the selection is empty or an asset cannot be fetched;
                the selection is left untouched so the export can be retried
        """
        with self._job() as outcome:
            snapshot = self.state.selected_assets()
            if not snapshot:
                raise ExportError("Nothing selected to export")
            total = len(snapshot)
            logger.info(f"Starting export of {total} assets")
            packager = self.packager_factory()
            try:
                for index, asset in enumerate(snapshot, start=1):
                    self.state.set_processing(asset.asset_id, index, total)
                    try:
                        data = self.client.fetch_bytes(asset.source_url)
                    except requests.RequestException as e:
                        logger.error(f"Export aborted at {asset.display_name} ({index}/{total}): {e}")
                        raise ExportError(f"Failed to download {asset.display_name}", asset_name=asset.display_name) from e
                    packager.add(asset.display_name, data)
                    if on_progress:
                        on_progress(index, total)
                    logger.debug(f"Packed {asset.display_name} ({index}/{total})")
                    if self.delay:
                        self._sleep(self.delay)

                archive = packager.finalize()
            finally:
                packager.close()
            outcome["success"] = True

        logger.info(f"Export finished: {total} assets, {len(archive)} bytes")
        return ExportResult(archive=archive, filename=archive_filename(), count=total)
