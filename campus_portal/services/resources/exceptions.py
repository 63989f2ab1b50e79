"""
Custom exceptions for resource resolution and previewing.
"""

from enum import Enum


class ViewerError(Exception):
    """Base exception for resource viewer errors."""
    pass


class ResolutionError(ViewerError):
    """Signing or resolution of a locator failed."""

    def __init__(self, message: str, locator: str = None, reason: str = 'unavailable'):
        super().__init__(message)
        self.locator = locator
        self.reason = reason  # not_found | forbidden | unavailable | invalid


class PreflightErrorKind(Enum):
    UNAUTHORIZED = 'unauthorized'
    NOT_FOUND = 'not_found'
    NETWORK_ERROR = 'network_error'


class PreflightError(ViewerError):
    """The HEAD existence check against a resolved URL failed."""

    def __init__(self, message: str, kind: PreflightErrorKind, status_code: int = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class RenderErrorKind(Enum):
    UNSUPPORTED_TYPE = 'unsupported_type'
    LOAD_FAILED = 'load_failed'


class RenderError(ViewerError):
    """The embedded renderer could not show the resource."""

    def __init__(self, message: str, kind: RenderErrorKind):
        super().__init__(message)
        self.kind = kind


_MESSAGES = {
    PreflightErrorKind.UNAUTHORIZED: 'You are not authorized to view this file (unauthorized). The link may have expired.',
    PreflightErrorKind.NOT_FOUND: 'This file could not be found. It may have been moved or deleted.',
    PreflightErrorKind.NETWORK_ERROR: 'The file could not be loaded. Check your connection and try again.',
    RenderErrorKind.UNSUPPORTED_TYPE: 'Preview is not available for this file type. Open it in a new tab instead.',
    RenderErrorKind.LOAD_FAILED: 'The preview failed to load. Try the alternate viewer or open the original.',
}


def user_message(error: Exception) -> str:
    """Human-readable inline message for a viewer error."""
    kind = getattr(error, 'kind', None)
    if kind in _MESSAGES:
        return _MESSAGES[kind]
    if isinstance(error, ResolutionError):
        if error.reason == 'not_found':
            return _MESSAGES[PreflightErrorKind.NOT_FOUND]
        if error.reason == 'forbidden':
            return _MESSAGES[PreflightErrorKind.UNAUTHORIZED]
    return 'Something went wrong while opening this file.'
