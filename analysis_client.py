"""Image tagging through a vision model, with credential-failure classification"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from asset_processor import encode_base64
from errors import AnalysisCredentialError, AnalysisError

logger = logging.getLogger("AnalysisClient")

TAG_INSTRUCTION = "Analyze this image and provide exactly 3-5 descriptive tags as a JSON array of strings."
DEFAULT_MIME_TYPE = "image/jpeg"

# Fragments of provider error text that mean the key is missing, invalid or
# not allowed. This list is heuristic: providers may change their wording, so
# an unmatched auth failure degrades to a generic analysis failure.
CREDENTIAL_FAILURE_MARKERS = (
    "api_key_invalid",
    "invalid api key",
    "api key not valid",
    "missing api key",
    "api key not found",
    "unauthorized",
    "forbidden",
    "permission_denied",
    "unauthenticated",
    "requested entity was not found",
)
CREDENTIAL_FAILURE_STATUS = (401, 403)
_STATUS_TOKEN_REGEX = re.compile(r"\b(401|403)\b")


def is_credential_failure(message: str, status_code: Optional[int] = None) -> bool:
    """Classify a provider failure as an authentication/authorization problem"""
    if status_code in CREDENTIAL_FAILURE_STATUS:
        return True
    lowered = (message or "").lower()
    if any(marker in lowered for marker in CREDENTIAL_FAILURE_MARKERS):
        return True
    return bool(_STATUS_TOKEN_REGEX.search(lowered))


class ProviderError(Exception):
    """Raw failure from a vision provider, with the HTTP status when known"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VisionProvider(ABC):
    """Abstract base class for vision providers"""

    @abstractmethod
    def generate_tags(self, image_b64: str, mime_type: str, api_key: str, timeout: float) -> str:
        """Send the image and tag instruction; return the raw text reply.

        Raises:
            ProviderError: On any transport or HTTP failure
        """
        pass


class GeminiProvider(VisionProvider):
    """Gemini ``generateContent`` REST endpoint"""

    def __init__(self, endpoint: str, model: str):
        self.endpoint = endpoint.rstrip("/")
        self.model = model

    @property
    def url(self) -> str:
        return f"{self.endpoint}/{self.model}:generateContent"

    def build_payload(self, image_b64: str, mime_type: str) -> dict:
        return {
            "contents": [{
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": image_b64}},
                    {"text": TAG_INSTRUCTION},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": {"type": "ARRAY", "items": {"type": "STRING"}},
            },
        }

    def generate_tags(self, image_b64: str, mime_type: str, api_key: str, timeout: float) -> str:
        try:
            response = requests.post(
                self.url,
                json=self.build_payload(image_b64, mime_type),
                headers={"x-goog-api-key": api_key},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(f"Gemini request failed: {e}") from e

        if response.status_code != 200:
            raise ProviderError(
                f"Gemini API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ProviderError(f"Gemini returned a non-JSON body: {e}") from e
        candidates = result.get("candidates") or []
        if not candidates:
            return ""
        parts = candidates[0].get("content", {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts)


def parse_tags(text: str) -> List[str]:
    """Parse a JSON array of strings; empty text means no tags"""
    if not text or not text.strip():
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Model returned invalid JSON: {e}") from e
    if not isinstance(data, list):
        raise AnalysisError(f"Model returned {type(data).__name__}, expected a JSON array")
    return [str(tag) for tag in data]


class AnalysisClient:
    """Fetches an image, hands it to the vision provider and classifies failures"""

    def __init__(
        self,
        credentials,
        provider: VisionProvider,
        timeout: float = 30.0,
    ):
        self.credentials = credentials
        self.provider = provider
        self.timeout = timeout

    def analyze(self, image_url: str) -> List[str]:
        """Return descriptive tags for the image at ``image_url``.

        Raises:
            AnalysisCredentialError: No API key is configured (no request is
                made) or the provider rejected the key
            AnalysisError: Any other failure
        """
        provider_name, api_key = self.credentials.resolve_named()
        if not api_key:
            raise AnalysisCredentialError("No API key configured")
        logger.debug(f"Analyzing {image_url} with key from {provider_name}")

        try:
            response = requests.get(image_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AnalysisError(f"Failed to fetch image {image_url}: {e}") from e
        mime_type = response.headers.get("content-type", "").split(";")[0].strip() or DEFAULT_MIME_TYPE
        if not mime_type.startswith("image/"):
            mime_type = DEFAULT_MIME_TYPE

        try:
            text = self.provider.generate_tags(encode_base64(response.content), mime_type, api_key, self.timeout)
        except ProviderError as e:
            if is_credential_failure(str(e), e.status_code):
                raise AnalysisCredentialError(str(e)) from e
            raise AnalysisError(str(e)) from e

        return parse_tags(text)
