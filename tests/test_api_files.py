"""
Tests for the /files proxy gateway and the resource resolve endpoint.

Pattern follows the Flask test-client tests: build the app, swap the upstream
HTTP client for an httpx mock transport, and assert on the responses.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock
from urllib.parse import quote

import httpx
import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from campus_portal.api import files
from campus_portal.app import create_app
from campus_portal.services.resources.exceptions import ResolutionError
from campus_portal.services.resources.hosts import HostPolicy
from campus_portal.services.resources.resolver import LocatorResolver

TARGET = 'https://firebasestorage.googleapis.com/v0/b/bkt/o/resources%2Fa%2FWeek%201.pdf?alt=media&token=t1'


@pytest.fixture
def upstream_requests():
    return []


@pytest.fixture
def client(upstream_requests):
    def handler(request):
        upstream_requests.append(request)
        if 'broken' in str(request.url):
            raise httpx.ConnectError('connection refused', request=request)
        if 'denied' in str(request.url):
            return httpx.Response(403, text='denied')
        return httpx.Response(
            200,
            content=b'%PDF-1.7 body',
            headers={'content-type': 'application/pdf', 'etag': '"v1"', 'x-goog-meta': 'secret'},
        )

    files.set_http_client(httpx.Client(transport=httpx.MockTransport(handler)))
    sign = AsyncMock(return_value=TARGET)
    app = create_app(resolver=LocatorResolver(sign, policy=HostPolicy()))
    app.config['TESTING'] = True
    with app.test_client() as test_client:
        yield test_client
    files.set_http_client(None)


def _proxy(url):
    return f"/files?u={quote(url, safe='')}"


def test_proxy_streams_allowed_target(client, upstream_requests):
    resp = client.get(_proxy(TARGET), headers={'Range': 'bytes=0-99', 'Cookie': 'session=1'})

    assert resp.status_code == 200
    assert resp.data == b'%PDF-1.7 body'
    assert resp.headers['content-type'] == 'application/pdf'
    assert resp.headers['etag'] == '"v1"'
    assert 'x-goog-meta' not in resp.headers
    assert resp.headers['content-disposition'] == 'inline; filename="Week 1.pdf"'
    assert 's-maxage=31536000' in resp.headers['cache-control']
    assert resp.headers['x-proxy-target-host'] == 'firebasestorage.googleapis.com'
    assert resp.headers['x-content-type-options'] == 'nosniff'

    sent = upstream_requests[0]
    assert str(sent.url) == TARGET
    assert sent.headers['range'] == 'bytes=0-99'
    assert 'cookie' not in sent.headers


def test_proxy_forwards_upstream_status(client):
    resp = client.get(_proxy('https://storage.googleapis.com/bkt/denied.pdf'))
    assert resp.status_code == 403


def test_proxy_head_is_forwarded_as_head(client, upstream_requests):
    resp = client.head(_proxy(TARGET))
    assert resp.status_code == 200
    assert upstream_requests[0].method == 'HEAD'


@pytest.mark.parametrize('query', [
    '/files',
    '/files?u=',
    _proxy('https://example.org/a.pdf'),
    _proxy('http://storage.googleapis.com/bkt/a.pdf'),
    _proxy('https://docs.google.com/document/d/X/edit'),
    '/files?u=not-a-url',
])
def test_proxy_rejects_disallowed_targets(client, upstream_requests, query):
    resp = client.get(query)
    assert resp.status_code == 400
    assert upstream_requests == []


def test_proxy_upstream_failure_is_bad_gateway(client):
    resp = client.get(_proxy('https://storage.googleapis.com/bkt/broken.pdf'))
    assert resp.status_code == 502


def test_resolve_endpoint_for_storage_path(client):
    resp = client.post('/api/resources/resolve', json={'resource': {'path': 'resources/a/lesson.pdf', 'title': 'Lesson'}})

    assert resp.status_code == 200
    data = resp.get_json()
    assert data['resource']['title'] == 'Lesson'
    assert data['resolved']['host_category'] == 'object_storage'
    assert data['resolved']['is_proxied'] is True
    assert data['resolved']['alternate_embed'] is None
    assert data['preview_type'] == 'pdf'


def test_resolve_endpoint_for_document_host(client):
    resp = client.post('/api/resources/resolve', json={'resource': 'https://docs.google.com/document/d/X/edit'})

    data = resp.get_json()
    assert data['resolved']['host_category'] == 'document_host'
    assert data['resolved']['primary_embed'] == 'https://docs.google.com/document/d/X/preview'
    assert data['resolved']['alternate_embed']
    assert data['preview_type'] == 'iframe'


def test_resolve_endpoint_without_locator(client):
    resp = client.post('/api/resources/resolve', json={'resource': {'title': 'nothing'}})
    assert resp.status_code == 400


def test_resolve_endpoint_reports_resolution_errors():
    sign = AsyncMock()
    resolver = LocatorResolver(sign, policy=HostPolicy())
    resolver.resolve = AsyncMock(side_effect=ResolutionError('boom', reason='invalid'))
    app = create_app(resolver=resolver)
    with app.test_client() as test_client:
        resp = test_client.post('/api/resources/resolve', json={'resource': 'resources/a.pdf'})
    assert resp.status_code == 422
    assert resp.get_json()['reason'] == 'invalid'


def test_proxy_accepts_presigned_s3_targets(client, upstream_requests):
    target = 'https://bkt.s3.eu-west-1.amazonaws.com/resources/a.pdf?X-Amz-Signature=abc'
    resp = client.get(_proxy(target))

    assert resp.status_code == 200
    assert str(upstream_requests[0].url) == target
    assert resp.headers['x-proxy-target-host'] == 'bkt.s3.eu-west-1.amazonaws.com'


def test_proxy_non_ascii_filename_uses_extended_disposition(client):
    target = 'https://storage.googleapis.com/bkt/resources/' + quote('Cours électricité 第1.pdf')
    resp = client.get(_proxy(target))

    assert resp.status_code == 200
    disposition = resp.headers['content-disposition']
    assert disposition.startswith('inline; filename="Cours electricite 1.pdf"')
    assert "filename*=UTF-8''" + quote('Cours électricité 第1.pdf', safe="!#$&+^`|~") in disposition
