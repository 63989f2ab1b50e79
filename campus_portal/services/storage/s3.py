"""S3-compatible storage backend (AWS S3 / MinIO / GCS interoperability)."""

from __future__ import annotations

from typing import Optional

from .interfaces import ObjectStat, StorageLocator


class S3StorageBackend:
    """S3 storage backend with lazy boto3 initialization."""

    def __init__(self, *, bucket: str, region: Optional[str] = None, endpoint_url: Optional[str] = None,
                 access_key_id: Optional[str] = None, secret_access_key: Optional[str] = None,
                 session_token: Optional[str] = None, use_path_style: bool = False,
                 verify_ssl: bool = True):
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.session_token = session_token
        self.use_path_style = use_path_style
        self.verify_ssl = verify_ssl
        self._client = None

    def _get_client(self):
        if self._client is not None:
            return self._client

        try:
            import boto3
            from botocore.config import Config
        except Exception as exc:
            raise RuntimeError('S3 backend requires boto3 and botocore installed') from exc

        client_kwargs = {
            'service_name': 's3',
            'verify': self.verify_ssl,
        }
        if self.region:
            client_kwargs['region_name'] = self.region
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url
        if self.access_key_id:
            client_kwargs['aws_access_key_id'] = self.access_key_id
        if self.secret_access_key:
            client_kwargs['aws_secret_access_key'] = self.secret_access_key
        if self.session_token:
            client_kwargs['aws_session_token'] = self.session_token

        addressing_style = 'path' if self.use_path_style else 'auto'
        client_kwargs['config'] = Config(signature_version='s3v4', s3={'addressing_style': addressing_style})

        self._client = boto3.client(**client_kwargs)
        return self._client

    def _bucket_key(self, locator: StorageLocator):
        bucket = locator.bucket or self.bucket
        key = locator.key
        if not bucket or not key:
            raise ValueError('S3 locator missing bucket or key')
        return bucket, key

    def stat(self, locator: StorageLocator) -> ObjectStat:
        client = self._get_client()
        bucket, key = self._bucket_key(locator)
        data = client.head_object(Bucket=bucket, Key=key)
        return ObjectStat(
            size=data.get('ContentLength'),
            last_modified=data.get('LastModified'),
            etag=(data.get('ETag') or '').strip('"') or None,
            content_type=data.get('ContentType'),
        )

    def presign_get_url(self, locator: StorageLocator, expires_seconds: int,
                        response_content_type: Optional[str] = None) -> str:
        client = self._get_client()
        bucket, key = self._bucket_key(locator)
        params = {'Bucket': bucket, 'Key': key}
        if response_content_type:
            params['ResponseContentType'] = response_content_type
        return client.generate_presigned_url(
            'get_object',
            Params=params,
            ExpiresIn=int(expires_seconds),
        )
