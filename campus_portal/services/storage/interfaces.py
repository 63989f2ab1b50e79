"""Storage interfaces and shared dataclasses for the object-storage backend."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class StorageLocator:
    """Parsed locator for an object in a bucket."""

    raw: str
    bucket: Optional[str] = None
    key: Optional[str] = None


@dataclass
class ObjectStat:
    """Storage object metadata."""

    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
