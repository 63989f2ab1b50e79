"""
Learning-resource normalization and locator resolution.
"""

from .exceptions import (
    PreflightError,
    PreflightErrorKind,
    RenderError,
    RenderErrorKind,
    ResolutionError,
    ViewerError,
    user_message,
)
from .hosts import HostCategory, HostPolicy, classify, default_host_policy, is_absolute_url
from .normalizer import Resource, format_file_size, iter_course_resources, normalize
from .resolver import LocatorResolver, ResolvedLocator
from .signing import StorageSigner

__all__ = [
    'PreflightError',
    'PreflightErrorKind',
    'RenderError',
    'RenderErrorKind',
    'ResolutionError',
    'ViewerError',
    'user_message',
    'HostCategory',
    'HostPolicy',
    'classify',
    'default_host_policy',
    'is_absolute_url',
    'Resource',
    'format_file_size',
    'iter_course_resources',
    'normalize',
    'LocatorResolver',
    'ResolvedLocator',
    'StorageSigner',
]
