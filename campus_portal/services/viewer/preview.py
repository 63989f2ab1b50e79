"""Preview type detection and embed markup for resolved resource URLs."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
from urllib.parse import parse_qs, unquote, urlsplit

from markupsafe import Markup

from campus_portal.services.resources.exceptions import RenderError, RenderErrorKind, user_message
from campus_portal.services.resources.hosts import HostPolicy, is_document_host


class PreviewType(Enum):
    PDF = 'pdf'
    IMAGE = 'image'
    VIDEO = 'video'
    AUDIO = 'audio'
    IFRAME = 'iframe'
    UNKNOWN = 'unknown'


EXTENSIONS = {
    PreviewType.PDF: frozenset({'.pdf'}),
    PreviewType.IMAGE: frozenset({'.png', '.jpg', '.jpeg', '.gif', '.webp', '.svg', '.bmp', '.avif'}),
    PreviewType.VIDEO: frozenset({'.mp4', '.webm', '.mov', '.m4v', '.ogv'}),
    PreviewType.AUDIO: frozenset({'.mp3', '.wav', '.ogg', '.m4a', '.aac', '.flac'}),
}

MIME_PREFIXES = (
    ('application/pdf', PreviewType.PDF),
    ('image/', PreviewType.IMAGE),
    ('video/', PreviewType.VIDEO),
    ('audio/', PreviewType.AUDIO),
)


def _extension(url: str) -> str:
    path = urlsplit(url).path if '://' in url else url.split('#', 1)[0].split('?', 1)[0]
    # Proxied and Firebase URLs carry the real object path percent-encoded
    return posixpath.splitext(unquote(path).lower())[1]


def _unwrap_proxy(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme and parts.query:
        target = parse_qs(parts.query).get('u')
        if target:
            return target[0]
    return url


def guess_type(url: str, mime: Optional[str] = None, policy: Optional[HostPolicy] = None) -> PreviewType:
    if mime:
        mime = mime.lower().strip()
        for prefix, preview_type in MIME_PREFIXES:
            if mime.startswith(prefix):
                return preview_type

    if is_document_host(url, policy):
        return PreviewType.IFRAME

    ext = _extension(_unwrap_proxy(url))
    for preview_type, extensions in EXTENSIONS.items():
        if ext in extensions:
            return preview_type
    return PreviewType.UNKNOWN


@dataclass(frozen=True)
class EmbedPlan:
    preview_type: PreviewType
    src: str
    html: Markup
    show_open_link: bool = False
    notice: Optional[str] = None


def _iframe(src: str, title: str) -> Markup:
    return Markup('<iframe src="{}" title="{}" class="resource-frame" loading="lazy" allowfullscreen></iframe>').format(src, title)


def _image(src: str, title: str) -> Markup:
    return Markup('<img src="{}" alt="{}" class="resource-image">').format(src, title)


def _video(src: str, title: str) -> Markup:
    return Markup('<video src="{}" title="{}" class="resource-media" controls preload="metadata"></video>').format(src, title)


def _audio(src: str, title: str) -> Markup:
    return Markup('<audio src="{}" title="{}" class="resource-media" controls preload="metadata"></audio>').format(src, title)


EMBED_STRATEGIES: Dict[PreviewType, Callable[[str, str], Markup]] = {
    PreviewType.PDF: _iframe,
    PreviewType.IMAGE: _image,
    PreviewType.VIDEO: _video,
    PreviewType.AUDIO: _audio,
    PreviewType.IFRAME: _iframe,
    PreviewType.UNKNOWN: _iframe,
}


def build_embed(url: str, mime: Optional[str] = None, title: str = '', policy: Optional[HostPolicy] = None) -> EmbedPlan:
    """Pick an embed strategy for ``url`` and render its markup."""
    preview_type = guess_type(url, mime, policy)
    html = EMBED_STRATEGIES[preview_type](url, title or 'Resource preview')
    if preview_type is PreviewType.UNKNOWN:
        notice = user_message(RenderError('Unsupported preview type', RenderErrorKind.UNSUPPORTED_TYPE))
        link = Markup('<a href="{}" target="_blank" rel="noopener noreferrer">Open in new tab</a>').format(url)
        return EmbedPlan(preview_type, url, html + link, show_open_link=True, notice=notice)
    return EmbedPlan(preview_type, url, html)
