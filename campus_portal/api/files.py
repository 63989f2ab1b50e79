"""
Proxy gateway for allow-listed storage files.

Usage: /files?u=<percent-encoded https URL>. Re-serves the upstream object with
its status code and content headers so storage URLs are never exposed to the
client directly, and sets long-lived CDN caching (signed URLs are versioned
by their token).
"""

import logging
import unicodedata
from typing import Optional
from urllib.parse import quote, unquote, urlsplit

import httpx
from flask import Blueprint, Response, request, stream_with_context

from campus_portal.config import app_config
from campus_portal.services.resources.hosts import default_host_policy, host_matches

logger = logging.getLogger(__name__)

# Create blueprint
files_bp = Blueprint('files', __name__)

FORWARDED_REQUEST_HEADERS = ('Range', 'If-None-Match', 'If-Modified-Since')
PASS_THROUGH_HEADERS = (
    'content-type',
    'content-length',
    'etag',
    'last-modified',
    'accept-ranges',
    'content-range',
)
CACHE_CONTROL = 'public, max-age=0, s-maxage=31536000, immutable, stale-while-revalidate=86400'

_http_client: Optional[httpx.Client] = None


def get_http_client() -> httpx.Client:
    global _http_client
    if _http_client is None:
        _http_client = httpx.Client(timeout=app_config.PROXY_UPSTREAM_TIMEOUT, follow_redirects=True)
    return _http_client


def set_http_client(client: Optional[httpx.Client]) -> None:
    """Swap the upstream client (used by tests and custom transports)."""
    global _http_client
    _http_client = client


def sanitize_target(value: Optional[str]) -> Optional[str]:
    """Return the target URL if it is https and on the proxy allow-list."""
    if not value:
        return None
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if parts.scheme != 'https' or not parts.hostname:
        return None
    if not host_matches(parts.hostname, default_host_policy().proxy_hosts):
        return None
    return value


def _content_disposition(file_name: str) -> str:
    file_name = ''.join(c for c in file_name if c >= ' ' and c != '"') or 'file'
    try:
        file_name.encode('ascii')
    except UnicodeEncodeError:
        # RFC 5987 form plus an ASCII fallback
        simple = unicodedata.normalize('NFKD', file_name).encode('ascii', 'ignore').decode('ascii')
        quoted = quote(file_name, safe="!#$&+^`|~")
        return f"inline; filename=\"{simple or 'file'}\"; filename*=UTF-8''{quoted}"
    return f'inline; filename="{file_name}"'


def _response_headers(upstream: httpx.Response, target: str) -> dict:
    headers = {}
    for name in PASS_THROUGH_HEADERS:
        value = upstream.headers.get(name)
        if value:
            headers[name] = value

    parts = urlsplit(target)
    file_name = unquote(parts.path.rsplit('/', 1)[-1] or 'file').rsplit('/', 1)[-1] or 'file'
    headers['content-disposition'] = _content_disposition(file_name)
    headers['cache-control'] = CACHE_CONTROL
    headers['x-proxy-target-host'] = parts.hostname
    headers['vary'] = 'Range, Accept-Encoding, Origin'
    headers['x-content-type-options'] = 'nosniff'
    return headers


@files_bp.route(app_config.PROXY_PATH, methods=['GET', 'HEAD'])
def proxy_file():
    target = sanitize_target(request.args.get('u'))
    if not target:
        return Response('Bad Request', status=400, mimetype='text/plain')

    forwarded = {name: request.headers[name] for name in FORWARDED_REQUEST_HEADERS if name in request.headers}
    client = get_http_client()
    try:
        upstream = client.send(client.build_request(request.method, target, headers=forwarded), stream=True)
    except httpx.HTTPError as e:
        logger.warning(f"Proxy upstream request failed for {urlsplit(target).hostname}: {e}")
        return Response('Bad Gateway', status=502, mimetype='text/plain')

    headers = _response_headers(upstream, target)
    if request.method == 'HEAD':
        upstream.close()
        return Response(status=upstream.status_code, headers=headers)

    def generate():
        try:
            for chunk in upstream.iter_bytes():
                yield chunk
        finally:
            upstream.close()

    return Response(stream_with_context(generate()), status=upstream.status_code, headers=headers)
