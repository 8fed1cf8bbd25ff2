"""Bulk export tools"""

import asyncio
import logging
from concurrent.futures import Future

from mcp.server.fastmcp import Context, FastMCP

from config import GalleryConfig, ensure_export_dir
from errors import ExportError, ExportInProgressError
from managers.export_manager import ExportManager
from managers.gallery_state import GalleryState
from tools.helpers import write_output

logger = logging.getLogger("MCP_Server")


def log_progress_failure(future: Future):
    """Done-callback for progress notifications scheduled from the export thread"""
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning(f"Progress notification failed: {error}")


def register_export_tools(
    mcp: FastMCP,
    state: GalleryState,
    export_manager: ExportManager,
    config: GalleryConfig,
):
    """Register export tools with the MCP server"""

    @mcp.tool()
    async def export_selection(ctx: Context) -> dict:
        """Download every selected asset, one at a time, into a single ZIP archive.

        Progress is reported to the client after each asset and can also be
        polled with get_export_progress. On success the archive is written to
        the export directory and the selection is cleared. If any asset fails,
        nothing is written and the selection is kept so the export can be
        retried.
        """
        if export_manager.is_active:
            return {"error": "An export is already in progress", "progress": state.progress.to_dict()}

        loop = asyncio.get_running_loop()

        def on_progress(current: int, total: int):
            logger.info(f"Export progress {current}/{total}")
            future = asyncio.run_coroutine_threadsafe(ctx.report_progress(current, total), loop)
            future.add_done_callback(log_progress_failure)

        try:
            result = await asyncio.to_thread(export_manager.export_selected, on_progress)
        except ExportInProgressError as e:
            return {"error": str(e), "progress": state.progress.to_dict()}
        except ExportError as e:
            return {
                "error": str(e),
                "failed_asset": e.asset_name,
                "selected_count": len(state.selected_ids()),
            }

        try:
            path = write_output(ensure_export_dir(config), result.filename, result.archive)
        except (OSError, ValueError) as e:
            logger.exception("Failed to save export archive")
            return {"error": f"Export finished but the archive could not be saved: {e}"}

        return {
            "path": str(path),
            "filename": result.filename,
            "count": result.count,
            "bytes": len(result.archive),
        }

    @mcp.tool()
    def get_export_progress() -> dict:
        """Current export job: (current, total), the asset being processed and whether a job is active."""
        return state.progress.to_dict()
