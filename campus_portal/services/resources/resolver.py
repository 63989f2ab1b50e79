"""
Locator resolution.

Turns a resource locator into a URL the preview can render: storage paths and
unsigned storage URLs are signed, storage-like hosts are wrapped through the
proxy gateway, and document-host links become embeddable preview URLs with a
generic-viewer alternate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .exceptions import ResolutionError
from .hosts import (
    HostCategory,
    HostPolicy,
    classify,
    default_host_policy,
    document_embeds,
    has_access_token,
    is_absolute_url,
    is_proxy_allowed,
    proxy_url,
)

logger = logging.getLogger(__name__)

SignFunc = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class ResolvedLocator:
    final_url: str
    host_category: HostCategory
    is_proxied: bool
    primary_embed: str
    alternate_embed: Optional[str] = None
    signed: bool = False


class LocatorResolver:
    """
    Resolve locators into renderable URLs.

    Args:
        sign: async callable ``sign(locator, mime_type=None)`` returning a signed
            URL for a storage path or URL
        policy: host tables; defaults to the configured policy
    """

    def __init__(self, sign: SignFunc, policy: Optional[HostPolicy] = None):
        self._sign = sign
        self.policy = policy or default_host_policy()

    def classify(self, locator: str) -> HostCategory:
        return classify(locator, self.policy)

    def _wrap(self, url: str, category: HostCategory, signed: bool = False) -> ResolvedLocator:
        if is_proxy_allowed(url, self.policy):
            wrapped = proxy_url(url, self.policy)
            return ResolvedLocator(wrapped, category, True, wrapped, signed=signed)
        return ResolvedLocator(url, category, False, url, signed=signed)

    async def _try_sign(self, locator: str, mime: Optional[str]) -> Optional[str]:
        try:
            return await self._sign(locator, mime_type=mime)
        except Exception as e:
            logger.warning(f"Signing failed for {locator}, using original locator: {e}")
            return None

    async def resolve(self, locator: str, mime: Optional[str] = None) -> ResolvedLocator:
        locator = (locator or '').strip()
        if not locator:
            raise ResolutionError('Empty locator', locator=locator, reason='invalid')

        category = self.classify(locator)

        if not is_absolute_url(locator):
            signed = await self._try_sign(locator, mime)
            if signed is None:
                return ResolvedLocator(locator, category, False, locator)
            return self._wrap(signed, category, signed=True)

        if category is HostCategory.DOCUMENT_HOST:
            preview, alternate = document_embeds(locator, self.policy)
            return ResolvedLocator(locator, category, False, preview, alternate)

        if category is HostCategory.OBJECT_STORAGE and not has_access_token(locator):
            signed = await self._try_sign(locator, mime)
            if signed is None:
                return ResolvedLocator(locator, category, False, locator)
            return self._wrap(signed, category, signed=True)

        return self._wrap(locator, category)

    async def resign(self, locator: str, mime: Optional[str] = None) -> ResolvedLocator:
        """Force a fresh signature; raises ``ResolutionError`` on failure."""
        category = self.classify(locator)
        if category is not HostCategory.OBJECT_STORAGE:
            raise ResolutionError('Only object-storage locators can be re-signed', locator=locator, reason='invalid')
        try:
            signed = await self._sign(locator, mime_type=mime)
        except ResolutionError:
            raise
        except Exception as e:
            raise ResolutionError(f"Re-signing failed: {e}", locator=locator) from e
        return self._wrap(signed, category, signed=True)
