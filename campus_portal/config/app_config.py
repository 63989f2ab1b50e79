"""
Application configuration for the resource viewer.
"""

import os


def _split_hosts(value):
    return [h.strip().lower() for h in (value or '').split(',') if h.strip()]


def _env_float(name, default):
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return float(default)


LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

# Base used to turn the relative proxy URL into something a HEAD preflight can reach
PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', 'http://localhost:8899').rstrip('/')

# Proxy gateway
PROXY_PATH = os.environ.get('PROXY_PATH', '/files')
PROXY_UPSTREAM_TIMEOUT = _env_float('PROXY_UPSTREAM_TIMEOUT', '30')
EXTRA_PROXY_ALLOWED_HOSTS = _split_hosts(os.environ.get('PROXY_ALLOWED_HOSTS'))
EXTRA_OBJECT_STORAGE_HOSTS = _split_hosts(os.environ.get('OBJECT_STORAGE_HOSTS'))

# Document viewer used as the alternate embed for document-host links
GENERIC_DOCUMENT_VIEWER_URL = os.environ.get(
    'GENERIC_DOCUMENT_VIEWER_URL', 'https://docs.google.com/viewer?embedded=true&url={url}'
)

# Viewer session
VIEWER_OPEN_MODE = os.environ.get('VIEWER_OPEN_MODE', 'modal').strip().lower()  # 'modal' or 'link'
VIEWER_SAFETY_TIMEOUT = _env_float('VIEWER_SAFETY_TIMEOUT', '7.5')
VIEWER_PREFLIGHT_TIMEOUT = _env_float('VIEWER_PREFLIGHT_TIMEOUT', '7')
VIEWER_FALLBACK_TIMEOUT = _env_float('VIEWER_FALLBACK_TIMEOUT', '2.5')

# Object storage (S3-compatible; GCS works through its interoperability endpoint)
FILE_STORAGE_KEY_PREFIX = os.environ.get('FILE_STORAGE_KEY_PREFIX', '')
S3_BUCKET_NAME = os.environ.get('S3_BUCKET_NAME')
S3_REGION = os.environ.get('S3_REGION')
S3_ENDPOINT_URL = os.environ.get('S3_ENDPOINT_URL')
S3_ACCESS_KEY_ID = os.environ.get('S3_ACCESS_KEY_ID')
S3_SECRET_ACCESS_KEY = os.environ.get('S3_SECRET_ACCESS_KEY')
S3_SESSION_TOKEN = os.environ.get('S3_SESSION_TOKEN')
S3_USE_PATH_STYLE = os.environ.get('S3_USE_PATH_STYLE', 'false').lower() == 'true'
S3_VERIFY_SSL = os.environ.get('S3_VERIFY_SSL', 'true').lower() == 'true'
S3_PRESIGN_TTL_SECONDS = int(os.environ.get('S3_PRESIGN_TTL_SECONDS', '3600'))
