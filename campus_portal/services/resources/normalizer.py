"""Normalize loosely-typed resource references into ``Resource`` records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Tuple
from urllib.parse import unquote, urlsplit

from .hosts import is_absolute_url


@dataclass(frozen=True)
class Resource:
    title: str
    url: Optional[str] = None
    path: Optional[str] = None
    mime: Optional[str] = None

    @property
    def locator(self) -> Optional[str]:
        return self.url or self.path


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def title_from_locator(locator: str) -> str:
    """Basename of a URL or storage path without query/fragment, url-decoded."""
    if is_absolute_url(locator):
        path = urlsplit(locator).path
    else:
        path = locator.split('#', 1)[0].split('?', 1)[0]
    segment = path.rstrip('/').rsplit('/', 1)[-1]
    # Firebase download URLs encode the whole object path in one segment
    return unquote(segment).rsplit('/', 1)[-1]


def _from_locator(locator: str, title: Optional[str], mime: Optional[str], fallback_title: str) -> Resource:
    title = title or title_from_locator(locator) or fallback_title
    if is_absolute_url(locator):
        return Resource(title=title, url=locator, mime=mime)
    return Resource(title=title, path=locator, mime=mime)


def normalize(raw: Any, fallback_title: str = 'Resource') -> Optional[Resource]:
    """Convert a bare locator string or a mapping into a ``Resource``.

    Mappings may use ``url``/``link`` for absolute URLs, ``path``/``storagePath``
    for storage paths, and ``mime``/``contentType`` for the MIME hint. Returns
    ``None`` when no usable locator is present.
    """
    if isinstance(raw, str):
        locator = _clean(raw)
        if not locator:
            return None
        return _from_locator(locator, None, None, fallback_title)

    if not isinstance(raw, Mapping):
        return None

    url = _clean(raw.get('url')) or _clean(raw.get('link'))
    path = _clean(raw.get('path')) or _clean(raw.get('storagePath'))
    if url and path and not is_absolute_url(url):
        url = None
    locator = url or path
    if not locator:
        return None

    mime = _clean(raw.get('mime')) or _clean(raw.get('contentType'))
    return _from_locator(locator, _clean(raw.get('title')), mime, fallback_title)


COURSE_RESOURCE_SECTIONS = (
    ('lesson', 'Lesson'),
    ('exercises', 'Exercise'),
    ('pastExams', 'Past exam'),
)


def iter_course_resources(resources: Optional[Mapping[str, Any]]) -> Iterator[Tuple[str, Resource]]:
    """Yield ``(section, Resource)`` for a course module's resources.

    Order is lesson, exercises, past exams. Unusable entries are skipped.
    """
    if not resources:
        return
    for section, label in COURSE_RESOURCE_SECTIONS:
        entries = resources.get(section)
        if entries is None:
            continue
        if not isinstance(entries, (list, tuple)):
            entries = [entries]
        for index, entry in enumerate(entries, start=1):
            resource = normalize(entry, f"{label} {index}" if len(entries) > 1 else label)
            if resource is not None:
                yield section, resource


def format_file_size(num_bytes: int) -> str:
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.1f}KB"
    return f"{num_bytes / 1024 / 1024:.1f}MB"
