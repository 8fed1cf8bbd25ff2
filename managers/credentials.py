"""API key resolution and the process-wide "credential needed" prompt"""

import logging
import os
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

logger = logging.getLogger("MCP_Server")

DEFAULT_ENV_VAR = "API_KEY"
FALLBACK_ENV_VAR = "GEMINI_API_KEY"


@dataclass(frozen=True)
class CredentialProvider:
    """A named source of an API key; ``lookup`` returns None or "" when unset"""
    name: str
    lookup: Callable[[], Optional[str]]


def env_provider(var_name: str) -> CredentialProvider:
    return CredentialProvider(name=var_name, lookup=lambda: os.getenv(var_name))


class CredentialStore:
    """Resolves the API key from an ordered list of providers, first non-empty wins.

    The default order is the user override set at runtime, then ``API_KEY``,
    then ``GEMINI_API_KEY``.
    """

    def __init__(self, providers: Optional[Sequence[CredentialProvider]] = None):
        self._override: Optional[str] = None
        if providers is None:
            providers = [
                CredentialProvider(name="user_override", lookup=lambda: self._override),
                env_provider(DEFAULT_ENV_VAR),
                env_provider(FALLBACK_ENV_VAR),
            ]
        self.providers: List[CredentialProvider] = list(providers)

    def set_override(self, api_key: Optional[str]):
        self._override = api_key.strip() if api_key else None

    def resolve_named(self) -> Tuple[Optional[str], Optional[str]]:
        """(provider name, key) of the first provider with a value, or (None, None)"""
        for provider in self.providers:
            value = provider.lookup()
            if value and value.strip():
                return provider.name, value.strip()
        return None, None

    def resolve(self) -> Optional[str]:
        return self.resolve_named()[1]


class CredentialPrompt:
    """Raised when analysis needs a new key; cleared by a new key or a dismissal"""

    def __init__(self, store: CredentialStore):
        self.store = store
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._settled.set()
        self._reason: Optional[str] = None

    @property
    def pending(self) -> bool:
        return not self._settled.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def request(self, reason: str):
        """Signal that a credential is needed until a new key or a dismissal settles it"""
        with self._lock:
            self._reason = reason
            self._settled.clear()
        logger.warning(f"Credential needed: {reason}")

    def resolve(self, api_key: str):
        """Install a new user-supplied key and settle the prompt"""
        self.store.set_override(api_key)
        self._settle()
        logger.info("Credential prompt resolved with a new API key")

    def dismiss(self):
        self._settle()
        logger.info("Credential prompt dismissed")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the prompt is resolved or dismissed; False on timeout"""
        return self._settled.wait(timeout)

    def _settle(self):
        with self._lock:
            self._reason = None
            self._settled.set()

    def to_dict(self) -> dict:
        provider, _ = self.store.resolve_named()
        return {
            "credential_needed": self.pending,
            "reason": self._reason,
            "active_provider": provider,
        }
