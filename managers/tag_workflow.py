"""Per-asset tagging state machine"""

import logging
from enum import Enum

from analysis_client import AnalysisClient
from errors import AnalysisCredentialError
from managers.credentials import CredentialPrompt
from managers.gallery_state import GalleryState

logger = logging.getLogger("MCP_Server")

FAILED_TAGS = ("Analysis Failed",)


class TagOutcome(str, Enum):
    TAGGED = "TAGGED"
    NEEDS_CREDENTIAL = "NEEDS_CREDENTIAL"
    FAILED = "FAILED"
    UNKNOWN_ASSET = "UNKNOWN_ASSET"


class TagWorkflow:
    """Drives UNANALYZED -> ANALYZING -> TAGGED / UNANALYZED / FAILED for one asset.

    Callers guarantee a single in-flight request per asset; different assets
    may be analyzed concurrently. A credential failure leaves the asset
    untagged and raises the credential prompt instead of marking it failed.
    """

    def __init__(self, state: GalleryState, client: AnalysisClient, prompt: CredentialPrompt):
        self.state = state
        self.client = client
        self.prompt = prompt

    def analyze(self, asset_id: str) -> TagOutcome:
        asset = self.state.update(asset_id, analyzing=True)
        if asset is None:
            return TagOutcome.UNKNOWN_ASSET

        try:
            tags = self.client.analyze(asset.source_url)
        except AnalysisCredentialError as e:
            self.state.update(asset_id, analyzing=False)
            self.prompt.request(str(e))
            return TagOutcome.NEEDS_CREDENTIAL
        except Exception as e:
            logger.error(f"Analysis failed for {asset.display_name}: {e}")
            self.state.update(asset_id, tags=FAILED_TAGS, analyzing=False)
            return TagOutcome.FAILED

        self.state.update(asset_id, tags=tuple(tags), analyzing=False)
        logger.info(f"Tagged {asset.display_name}: {tags}")
        return TagOutcome.TAGGED
