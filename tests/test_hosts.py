"""
Tests for host classification and the document-host / proxy tables.
"""

import sys
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from campus_portal.services.resources.hosts import (
    DocumentHostPattern,
    HostCategory,
    HostPolicy,
    classify,
    document_embeds,
    has_access_token,
    is_absolute_url,
    is_proxy_allowed,
    proxy_url,
)


def _alternate_target(alternate):
    return parse_qs(urlsplit(alternate).query)['url'][0]


def test_is_absolute_url():
    assert is_absolute_url('https://example.org/a.pdf')
    assert is_absolute_url('http://example.org')
    assert not is_absolute_url('resources/a/lesson.pdf')
    assert not is_absolute_url('/files?u=x')
    assert not is_absolute_url('ftp://example.org/a.pdf')
    assert not is_absolute_url('')


def test_classify():
    assert classify('resources/a/lesson.pdf') is HostCategory.OBJECT_STORAGE
    assert classify('https://firebasestorage.googleapis.com/v0/b/b/o/a.pdf') is HostCategory.OBJECT_STORAGE
    assert classify('https://my-bucket.s3.amazonaws.com/a.pdf') is HostCategory.OBJECT_STORAGE
    assert classify('https://docs.google.com/document/d/X/edit') is HostCategory.DOCUMENT_HOST
    assert classify('https://drive.google.com/file/d/ID123/view') is HostCategory.DOCUMENT_HOST
    assert classify('https://www.dropbox.com/s/abc/file.pdf?dl=0') is HostCategory.DOCUMENT_HOST
    assert classify('https://example.org/a.pdf') is HostCategory.OTHER
    assert classify('https://lh3.googleusercontent.com/img') is HostCategory.OTHER


def test_has_access_token():
    assert has_access_token('https://firebasestorage.googleapis.com/v0/b/b/o/a.pdf?alt=media&token=abc')
    assert has_access_token('https://b.s3.amazonaws.com/a.pdf?X-Amz-Signature=1&X-Amz-Expires=60')
    assert not has_access_token('https://firebasestorage.googleapis.com/v0/b/b/o/a.pdf?alt=media')


def test_proxy_allow_list_requires_https():
    assert is_proxy_allowed('https://storage.googleapis.com/b/a.pdf')
    assert is_proxy_allowed('https://lh5.googleusercontent.com/img')
    assert not is_proxy_allowed('http://storage.googleapis.com/b/a.pdf')
    assert not is_proxy_allowed('https://example.org/a.pdf')
    assert not is_proxy_allowed('https://docs.google.com/document/d/X/edit')


def test_s3_hosts_are_storage_and_proxyable():
    for url in (
        'https://bkt.s3.amazonaws.com/resources/a.pdf',
        'https://bkt.s3.eu-west-1.amazonaws.com/resources/a.pdf',
        'https://bkt.s3-us-west-2.amazonaws.com/resources/a.pdf',
    ):
        assert classify(url) is HostCategory.OBJECT_STORAGE
        assert is_proxy_allowed(url)
    assert classify('https://s3.evil.com/a.pdf') is HostCategory.OTHER
    assert not is_proxy_allowed('https://bkt.s3.amazonaws.com.evil.com/a.pdf')


def test_proxy_url_encodes_target_as_single_parameter():
    target = 'https://storage.googleapis.com/b/a b.pdf?token=x&alt=media'
    wrapped = proxy_url(target)
    assert wrapped.startswith('/files?u=')
    assert parse_qs(urlsplit(wrapped).query) == {'u': [target]}


def test_drive_file_link_embeds():
    preview, alternate = document_embeds('https://drive.google.com/file/d/ID123/view?usp=sharing')
    assert preview == 'https://drive.google.com/file/d/ID123/preview'
    assert alternate.startswith('https://docs.google.com/viewer?')
    assert _alternate_target(alternate) == 'https://drive.google.com/uc?export=download&id=ID123'


def test_drive_open_link_embeds():
    preview, _ = document_embeds('https://drive.google.com/open?id=ABC_9')
    assert preview == 'https://drive.google.com/file/d/ABC_9/preview'


def test_google_docs_embeds():
    preview, alternate = document_embeds('https://docs.google.com/presentation/d/SLIDES/edit#slide=id.p')
    assert preview == 'https://docs.google.com/presentation/d/SLIDES/preview'
    assert _alternate_target(alternate) == 'https://docs.google.com/presentation/d/SLIDES/export?format=pdf'


def test_dropbox_keeps_share_query():
    preview, alternate = document_embeds('https://www.dropbox.com/scl/fi/abc/file.pdf?rlkey=k1&dl=0')
    assert preview == 'https://www.dropbox.com/scl/fi/abc/file.pdf?rlkey=k1&raw=1'
    assert _alternate_target(alternate) == 'https://www.dropbox.com/scl/fi/abc/file.pdf?rlkey=k1&dl=1'


def test_unmatched_document_link_falls_back_to_itself():
    url = 'https://docs.google.com/forms/d/e/xyz/viewform'
    preview, alternate = document_embeds(url)
    assert preview == url
    assert _alternate_target(alternate) == url


def test_new_host_family_is_a_table_change():
    policy = HostPolicy(
        document_patterns=(
            DocumentHostPattern(
                family='example_docs',
                hosts=('docs.example.com',),
                pattern=r'^/d/(?P<id>\w+)',
                preview='https://docs.example.com/embed/{id}',
                download='https://docs.example.com/raw/{id}',
            ),
        ),
    )
    assert classify('https://docs.example.com/d/42', policy) is HostCategory.DOCUMENT_HOST
    assert classify('https://docs.google.com/document/d/X/edit', policy) is HostCategory.OTHER
    preview, alternate = document_embeds('https://docs.example.com/d/42', policy)
    assert preview == 'https://docs.example.com/embed/42'
    assert _alternate_target(alternate) == 'https://docs.example.com/raw/42'
