"""Locator parsing helpers for storage paths, s3:// locators and storage URLs."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote, urlsplit

from .interfaces import StorageLocator

S3_SCHEME = 's3://'

_S3_VIRTUAL_HOST = re.compile(r'^(?P<bucket>[a-z0-9.\-]+)\.s3(?:[.\-][a-z0-9\-]+)?\.amazonaws\.com$')


def _normalize_key(key: str) -> str:
    key = (key or '').replace('\\', '/').strip()
    while '//' in key:
        key = key.replace('//', '/')
    return key.lstrip('/')


def parse_locator(value: Optional[str], default_bucket: Optional[str] = None) -> Optional[StorageLocator]:
    """Parse an ``s3://bucket/key`` locator or a bare storage path."""
    if value is None:
        return None

    raw = str(value).strip()
    if not raw:
        return None

    if raw.startswith(S3_SCHEME):
        tail = raw[len(S3_SCHEME):]
        if '/' not in tail:
            raise ValueError(f"Invalid s3 locator (missing key): {raw}")
        bucket, key = tail.split('/', 1)
        bucket = bucket.strip()
        key = _normalize_key(key)
        if not bucket or not key:
            raise ValueError(f"Invalid s3 locator: {raw}")
        return StorageLocator(raw=raw, bucket=bucket, key=key)

    key = _normalize_key(raw.split('#', 1)[0].split('?', 1)[0])
    if not key:
        raise ValueError(f"Invalid storage path: {raw}")
    return StorageLocator(raw=raw, bucket=default_bucket, key=key)


def parse_storage_url(url: str, endpoint_host: Optional[str] = None) -> Optional[StorageLocator]:
    """Extract bucket and key from a public object-storage URL.

    Understands Firebase download URLs (``/v0/b/<bucket>/o/<encoded key>``),
    path-style GCS/S3 URLs and virtual-hosted S3 URLs. Returns ``None`` for
    anything else.
    """
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    path = parts.path

    if host == 'firebasestorage.googleapis.com':
        match = re.match(r'^/v0/b/(?P<bucket>[^/]+)/o/(?P<key>[^/]+)$', path)
        if not match:
            return None
        return StorageLocator(raw=url, bucket=match.group('bucket'), key=_normalize_key(unquote(match.group('key'))))

    virtual = _S3_VIRTUAL_HOST.match(host)
    if virtual:
        key = _normalize_key(unquote(path))
        return StorageLocator(raw=url, bucket=virtual.group('bucket'), key=key) if key else None

    if host == 'storage.googleapis.com' or (endpoint_host and host == endpoint_host):
        tail = _normalize_key(unquote(path))
        if '/' not in tail:
            return None
        bucket, key = tail.split('/', 1)
        return StorageLocator(raw=url, bucket=bucket, key=key)

    return None
