"""Object storage access used to sign resource URLs."""

from .interfaces import ObjectStat, StorageLocator
from .locator import parse_locator, parse_storage_url
from .service import StorageService, get_storage_service

__all__ = [
    'ObjectStat',
    'StorageLocator',
    'parse_locator',
    'parse_storage_url',
    'StorageService',
    'get_storage_service',
]
