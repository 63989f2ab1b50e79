"""Object-storage signing collaborator.

``sign(path_or_url, mime_type=None)`` confirms the object exists and returns a
time-limited presigned GET URL. A MIME hint is baked into the signature as the
response content type. boto3 is blocking, so the work runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from campus_portal.services.storage import StorageService, get_storage_service

from .exceptions import ResolutionError

logger = logging.getLogger(__name__)


def _client_error_reason(exc: Exception) -> str:
    response = getattr(exc, 'response', {}) or {}
    status_code = (response.get('ResponseMetadata') or {}).get('HTTPStatusCode')
    error_code = str((response.get('Error') or {}).get('Code') or '')
    if status_code == 404 or error_code in ('404', 'NoSuchKey', 'NotFound', 'NoSuchBucket'):
        return 'not_found'
    if status_code in (401, 403) or error_code in ('403', 'AccessDenied', 'Forbidden'):
        return 'forbidden'
    return 'unavailable'


class StorageSigner:
    """Signs storage paths and storage URLs through the storage service."""

    def __init__(self, storage: Optional[StorageService] = None):
        self._storage = storage

    @property
    def storage(self) -> StorageService:
        if self._storage is None:
            self._storage = get_storage_service()
        return self._storage

    def _sign_blocking(self, path_or_url: str, mime_type: Optional[str]) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            locator = self.storage.locate(path_or_url)
        except ValueError as exc:
            raise ResolutionError(str(exc), locator=path_or_url, reason='invalid') from exc

        try:
            self.storage.stat(locator)
            return self.storage.presign(locator, mime_type=mime_type)
        except ClientError as exc:
            reason = _client_error_reason(exc)
            raise ResolutionError(f"Signing failed ({reason}): {path_or_url}", locator=path_or_url, reason=reason) from exc
        except (BotoCoreError, RuntimeError) as exc:
            raise ResolutionError(f"Signing unavailable: {exc}", locator=path_or_url, reason='unavailable') from exc

    async def sign(self, path_or_url: str, mime_type: Optional[str] = None) -> str:
        url = await asyncio.to_thread(self._sign_blocking, path_or_url, mime_type)
        logger.debug(f"Signed storage object for {path_or_url}")
        return url

    __call__ = sign
