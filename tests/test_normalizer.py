"""
Tests for resource normalization and course resource helpers.
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from campus_portal.services.resources.normalizer import (
    Resource,
    format_file_size,
    iter_course_resources,
    normalize,
    title_from_locator,
)


def test_string_path_becomes_storage_resource():
    resource = normalize('resources/a/lesson.pdf', 'Fallback')
    assert resource == Resource(title='lesson.pdf', path='resources/a/lesson.pdf')
    assert resource.locator == 'resources/a/lesson.pdf'


def test_string_url_title_strips_query_and_decodes():
    resource = normalize('https://example.org/docs/Week%201%20notes.pdf?x=1#page=2', 'Fallback')
    assert resource.url == 'https://example.org/docs/Week%201%20notes.pdf?x=1#page=2'
    assert resource.path is None
    assert resource.title == 'Week 1 notes.pdf'


def test_firebase_url_title_uses_object_basename():
    url = 'https://firebasestorage.googleapis.com/v0/b/bkt/o/resources%2Fa%2Flesson.pdf?alt=media&token=abc'
    assert title_from_locator(url) == 'lesson.pdf'


def test_blank_string_is_rejected():
    assert normalize('   ', 'Fallback') is None


def test_mapping_prefers_url_then_link():
    resource = normalize({'link': 'https://example.org/a.pdf', 'path': 'x/b.pdf'}, 'Fallback')
    assert resource.url == 'https://example.org/a.pdf'
    assert resource.path is None
    assert resource.title == 'a.pdf'


def test_mapping_storage_path_with_alternate_field_names():
    resource = normalize({'storagePath': 'courses/c1/ex.png', 'contentType': 'image/png', 'size': 12}, 'Fallback')
    assert resource == Resource(title='ex.png', path='courses/c1/ex.png', mime='image/png')


def test_mapping_explicit_title_wins():
    resource = normalize({'title': 'Lesson 3', 'url': 'https://example.org/l3.pdf', 'mime': 'application/pdf'}, 'Fallback')
    assert resource.title == 'Lesson 3'
    assert resource.mime == 'application/pdf'


def test_mapping_without_locator_is_rejected():
    assert normalize({'title': 'Orphan', 'mime': 'application/pdf'}, 'Fallback') is None
    assert normalize({'url': '', 'path': None}, 'Fallback') is None
    assert normalize(None, 'Fallback') is None


def test_fallback_title_when_basename_empty():
    resource = normalize({'url': 'https://example.org/'}, 'Fallback')
    assert resource.title == 'Fallback'


def test_relative_url_field_is_treated_as_path():
    resource = normalize({'url': 'uploads/file.pdf'}, 'Fallback')
    assert resource.path == 'uploads/file.pdf'
    assert resource.url is None


def test_relative_url_field_defers_to_explicit_path():
    resource = normalize({'url': 'lesson.pdf', 'storagePath': 'resources/a/lesson.pdf'})
    assert resource.path == 'resources/a/lesson.pdf'
    assert resource.url is None

    absolute = normalize({'url': 'https://example.org/a.pdf', 'path': 'resources/a.pdf'})
    assert absolute.url == 'https://example.org/a.pdf'


def test_iter_course_resources_orders_sections_and_skips_invalid():
    resources = {
        'pastExams': [{'url': 'https://example.org/exam.pdf'}],
        'lesson': {'path': 'lessons/intro.pdf', 'title': 'Intro'},
        'exercises': [{'path': 'ex/1.pdf'}, {'title': 'broken'}, 'ex/3.pdf'],
    }
    items = list(iter_course_resources(resources))
    assert [section for section, _ in items] == ['lesson', 'exercises', 'exercises', 'pastExams']
    assert items[0][1].title == 'Intro'
    assert items[2][1].path == 'ex/3.pdf'


def test_iter_course_resources_handles_missing():
    assert list(iter_course_resources(None)) == []
    assert list(iter_course_resources({'lesson': None})) == []


def test_format_file_size():
    assert format_file_size(2048) == '2.0KB'
    assert format_file_size(3 * 1024 * 1024) == '3.0MB'
