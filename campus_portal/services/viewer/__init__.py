"""
Resource preview: embed selection, preflight and the viewer session state machine.
"""

from .preflight import preflight
from .preview import EmbedPlan, PreviewType, build_embed, guess_type
from .session import (
    OPEN_MODE_LINK,
    OPEN_MODE_MODAL,
    SessionMeta,
    SessionStatus,
    ViewerController,
    ViewerSession,
)

__all__ = [
    'preflight',
    'EmbedPlan',
    'PreviewType',
    'build_embed',
    'guess_type',
    'OPEN_MODE_LINK',
    'OPEN_MODE_MODAL',
    'SessionMeta',
    'SessionStatus',
    'ViewerController',
    'ViewerSession',
]
