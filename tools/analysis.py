"""AI tagging and credential tools"""

import asyncio
import logging

from mcp.server.fastmcp import FastMCP

from managers.credentials import CredentialPrompt
from managers.gallery_state import GalleryState
from managers.tag_workflow import TagOutcome, TagWorkflow
from tools.helpers import build_asset_response

logger = logging.getLogger("MCP_Server")


def register_analysis_tools(
    mcp: FastMCP,
    state: GalleryState,
    tag_workflow: TagWorkflow,
    prompt: CredentialPrompt,
):
    """Register tagging and credential tools with the MCP server"""

    @mcp.tool()
    async def analyze_asset(asset_id: str) -> dict:
        """Ask the vision model for 3-5 descriptive tags for one asset.

        If the API key is missing or rejected, the asset stays untagged and
        the response carries credential_needed=True; supply a key with
        set_api_key (or dismiss_credential_prompt) and try again.
        """
        asset = state.get(asset_id)
        if asset is None:
            return {"error": f"Asset {asset_id} not found"}
        if asset.analyzing:
            return {"error": f"Asset {asset_id} is already being analyzed"}
        # Claim the asset before yielding to the loop so a concurrent call is rejected.
        state.update(asset_id, analyzing=True)

        outcome = await asyncio.to_thread(tag_workflow.analyze, asset_id)
        response = {
            "outcome": outcome.value,
            "credential_needed": prompt.pending,
        }
        updated = state.get(asset_id)
        if updated is not None:
            response["asset"] = build_asset_response(state, updated)
        if outcome == TagOutcome.NEEDS_CREDENTIAL:
            response["error"] = f"API key needed: {prompt.reason}"
        return response

    @mcp.tool()
    def set_api_key(api_key: str) -> dict:
        """Provide an API key for tagging; it takes precedence over API_KEY and GEMINI_API_KEY."""
        if not api_key or not api_key.strip():
            return {"error": "api_key must not be empty"}
        prompt.resolve(api_key)
        return prompt.to_dict()

    @mcp.tool()
    def dismiss_credential_prompt() -> dict:
        """Dismiss a pending credential request without changing the key."""
        prompt.dismiss()
        return prompt.to_dict()

    @mcp.tool()
    def get_credential_status() -> dict:
        """Whether a credential is needed, why, and which source currently supplies the key."""
        return prompt.to_dict()
