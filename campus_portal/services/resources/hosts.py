"""
Host classification and the host tables that drive locator resolution.

Host-specific knowledge lives only in the tables below; the resolver and the
viewer never match on host names themselves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from typing import Dict, FrozenSet, Iterable, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

from campus_portal.config import app_config


class HostCategory(Enum):
    OBJECT_STORAGE = 'object_storage'
    DOCUMENT_HOST = 'document_host'
    OTHER = 'other'


@dataclass(frozen=True)
class DocumentHostPattern:
    """Maps a sharing link of one host family to its preview and download forms.

    ``pattern`` is matched against ``<path>?<query>``; its named groups plus
    ``query`` (the original query minus ``dl``/``raw``, '&'-terminated) are
    substituted into the templates.
    """

    family: str
    hosts: Tuple[str, ...]
    pattern: str
    preview: str
    download: str


DOCUMENT_HOST_PATTERNS: Tuple[DocumentHostPattern, ...] = (
    DocumentHostPattern(
        family='google_drive',
        hosts=('drive.google.com',),
        pattern=r'^/file/d/(?P<id>[\w-]+)',
        preview='https://drive.google.com/file/d/{id}/preview',
        download='https://drive.google.com/uc?export=download&id={id}',
    ),
    DocumentHostPattern(
        family='google_drive',
        hosts=('drive.google.com',),
        pattern=r'^/(?:open|uc)\?(?:.*&)?id=(?P<id>[\w-]+)',
        preview='https://drive.google.com/file/d/{id}/preview',
        download='https://drive.google.com/uc?export=download&id={id}',
    ),
    DocumentHostPattern(
        family='google_docs',
        hosts=('docs.google.com',),
        pattern=r'^/(?P<kind>document|spreadsheets|presentation)/d/(?P<id>[\w-]+)',
        preview='https://docs.google.com/{kind}/d/{id}/preview',
        download='https://docs.google.com/{kind}/d/{id}/export?format=pdf',
    ),
    DocumentHostPattern(
        family='dropbox',
        hosts=('www.dropbox.com', 'dropbox.com'),
        pattern=r'^/(?P<rest>(?:s|scl/fi)/[^?]+)',
        preview='https://www.dropbox.com/{rest}?{query}raw=1',
        download='https://www.dropbox.com/{rest}?{query}dl=1',
    ),
)

# Virtual-hosted S3 buckets on the global and regional endpoints
S3_HOSTS: Tuple[str, ...] = (
    '.s3.amazonaws.com',
    '*.s3.*.amazonaws.com',
    '*.s3-*.amazonaws.com',
)

# A leading dot matches the domain and any subdomain; '*' is a glob
OBJECT_STORAGE_HOSTS: Tuple[str, ...] = (
    'firebasestorage.googleapis.com',
    'storage.googleapis.com',
) + S3_HOSTS

PROXY_ALLOWED_HOSTS: Tuple[str, ...] = (
    'firebasestorage.googleapis.com',
    'storage.googleapis.com',
    'lh3.googleusercontent.com',
    'lh4.googleusercontent.com',
    'lh5.googleusercontent.com',
    'lh6.googleusercontent.com',
) + S3_HOSTS

ACCESS_TOKEN_PARAMS = frozenset({'token', 'x-amz-signature', 'x-goog-signature', 'signature'})


@dataclass(frozen=True)
class HostPolicy:
    """The complete set of host tables used by one resolver/renderer."""

    document_patterns: Tuple[DocumentHostPattern, ...] = DOCUMENT_HOST_PATTERNS
    object_storage_hosts: FrozenSet[str] = frozenset(OBJECT_STORAGE_HOSTS)
    proxy_hosts: FrozenSet[str] = frozenset(PROXY_ALLOWED_HOSTS)
    proxy_path: str = '/files'
    generic_viewer_url: str = 'https://docs.google.com/viewer?embedded=true&url={url}'
    document_hosts: FrozenSet[str] = field(init=False)

    def __post_init__(self):
        hosts = {h for p in self.document_patterns for h in p.hosts}
        object.__setattr__(self, 'document_hosts', frozenset(hosts))


def _endpoint_host(endpoint_url: Optional[str]) -> Optional[str]:
    if not endpoint_url:
        return None
    return (urlsplit(endpoint_url).hostname or '').lower() or None


def default_host_policy() -> HostPolicy:
    """Build the policy from the built-in tables plus configured extras."""
    storage = set(OBJECT_STORAGE_HOSTS) | set(app_config.EXTRA_OBJECT_STORAGE_HOSTS)
    proxy = set(PROXY_ALLOWED_HOSTS) | set(app_config.EXTRA_PROXY_ALLOWED_HOSTS)
    endpoint = _endpoint_host(app_config.S3_ENDPOINT_URL)
    if endpoint:
        storage.add(endpoint)
        proxy.add(endpoint)
    return HostPolicy(
        object_storage_hosts=frozenset(storage),
        proxy_hosts=frozenset(proxy),
        proxy_path=app_config.PROXY_PATH,
        generic_viewer_url=app_config.GENERIC_DOCUMENT_VIEWER_URL,
    )


def host_matches(host: Optional[str], entries: Iterable[str]) -> bool:
    if not host:
        return False
    host = host.lower()
    for entry in entries:
        if '*' in entry:
            if fnmatchcase(host, entry):
                return True
        elif entry.startswith('.'):
            if host == entry[1:] or host.endswith(entry):
                return True
        elif host == entry:
            return True
    return False


def is_absolute_url(value: Optional[str]) -> bool:
    if not value:
        return False
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return False
    return parts.scheme in ('http', 'https') and bool(parts.hostname)


def hostname(url: str) -> Optional[str]:
    try:
        return (urlsplit(url).hostname or '').lower() or None
    except ValueError:
        return None


def classify(locator: str, policy: Optional[HostPolicy] = None) -> HostCategory:
    """Classify a locator. Storage paths (non-absolute) are object storage."""
    policy = policy or HostPolicy()
    if not is_absolute_url(locator):
        return HostCategory.OBJECT_STORAGE
    host = hostname(locator)
    if host_matches(host, policy.document_hosts):
        return HostCategory.DOCUMENT_HOST
    if host_matches(host, policy.object_storage_hosts):
        return HostCategory.OBJECT_STORAGE
    return HostCategory.OTHER


def is_document_host(url: str, policy: Optional[HostPolicy] = None) -> bool:
    return is_absolute_url(url) and classify(url, policy) is HostCategory.DOCUMENT_HOST


def has_access_token(url: str) -> bool:
    query = urlsplit(url).query
    return any(key.lower() in ACCESS_TOKEN_PARAMS for key, _ in parse_qsl(query, keep_blank_values=True))


def is_proxy_allowed(url: str, policy: Optional[HostPolicy] = None) -> bool:
    policy = policy or HostPolicy()
    if not is_absolute_url(url) or urlsplit(url).scheme != 'https':
        return False
    return host_matches(hostname(url), policy.proxy_hosts)


def proxy_url(target: str, policy: Optional[HostPolicy] = None) -> str:
    policy = policy or HostPolicy()
    return f"{policy.proxy_path}?u={quote(target, safe='')}"


def _template_fields(match: re.Match, query: str) -> Dict[str, str]:
    kept = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k not in ('dl', 'raw')]
    fields = {k: v for k, v in match.groupdict().items() if v is not None}
    fields['query'] = f"{urlencode(kept)}&" if kept else ''
    return fields


def document_embeds(url: str, policy: Optional[HostPolicy] = None) -> Tuple[str, str]:
    """Return ``(preview_url, alternate_url)`` for a document-host link.

    The alternate wraps the direct-download form through the generic viewer.
    Links on a known host that match no pattern use the link itself for both.
    """
    policy = policy or HostPolicy()
    parts = urlsplit(url)
    host = (parts.hostname or '').lower()
    target = parts.path + (f"?{parts.query}" if parts.query else '')

    preview, download = url, url
    for pattern in policy.document_patterns:
        if not host_matches(host, pattern.hosts):
            continue
        match = re.match(pattern.pattern, target)
        if match:
            fields = _template_fields(match, parts.query)
            preview = pattern.preview.format(**fields)
            download = pattern.download.format(**fields)
            break

    alternate = policy.generic_viewer_url.format(url=quote(download, safe=''))
    return preview, alternate
