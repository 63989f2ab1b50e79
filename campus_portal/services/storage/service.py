"""Storage service facade that turns storage paths and URLs into signed URLs."""

from __future__ import annotations

import logging
import threading
from typing import Optional
from urllib.parse import urlsplit

from .factory import StorageSettings, build_s3_backend, load_storage_settings_from_env
from .interfaces import ObjectStat, StorageLocator
from .locator import parse_locator, parse_storage_url

logger = logging.getLogger(__name__)


class StorageService:
    """Facade to hide storage backend details from the resolver."""

    def __init__(self, settings: Optional[StorageSettings] = None, backend=None):
        self.settings = settings or load_storage_settings_from_env()
        self.s3 = backend if backend is not None else build_s3_backend(self.settings)

    def _endpoint_host(self) -> Optional[str]:
        if not self.settings.s3_endpoint_url:
            return None
        return (urlsplit(self.settings.s3_endpoint_url).hostname or '').lower() or None

    def locate(self, path_or_url: str) -> StorageLocator:
        """Map a storage path, ``s3://`` locator or storage URL onto bucket/key."""
        value = (path_or_url or '').strip()
        if value.startswith(('http://', 'https://')):
            locator = parse_storage_url(value, endpoint_host=self._endpoint_host())
            if locator is None:
                raise ValueError(f"Not an object-storage URL: {value}")
            return locator

        locator = parse_locator(value, default_bucket=self.settings.s3_bucket_name)
        if locator is None:
            raise ValueError('Empty storage locator')
        prefix = self.settings.key_prefix
        if prefix and not value.startswith('s3://') and not locator.key.startswith(f"{prefix}/"):
            locator.key = f"{prefix}/{locator.key}"
        return locator

    def _require_backend(self):
        if not self.s3:
            raise RuntimeError('Object storage is not configured (set S3_BUCKET_NAME)')
        return self.s3

    def stat(self, locator: StorageLocator) -> ObjectStat:
        return self._require_backend().stat(locator)

    def presign(self, locator: StorageLocator, *, mime_type: Optional[str] = None) -> str:
        backend = self._require_backend()
        url = backend.presign_get_url(
            locator,
            expires_seconds=self.settings.presign_ttl_seconds,
            response_content_type=mime_type,
        )
        logger.debug(f"Presigned {locator.bucket or backend.bucket}/{locator.key}")
        return url


_storage_service_singleton: Optional[StorageService] = None
_storage_service_singleton_lock = threading.Lock()


def get_storage_service() -> StorageService:
    global _storage_service_singleton
    if _storage_service_singleton is None:
        with _storage_service_singleton_lock:
            if _storage_service_singleton is None:
                _storage_service_singleton = StorageService()
    return _storage_service_singleton
