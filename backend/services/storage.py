"""Photo file storage using Apache Libcloud."""

import logging
import mimetypes
import shutil
import tempfile
from pathlib import Path
from threading import Lock
from urllib.parse import urlparse
from flask import current_app
from libcloud.storage.types import Provider, ContainerDoesNotExistError
from libcloud.storage.providers import get_driver
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)


logger = logging.getLogger(__name__)

PROVIDERS = {
    'local': Provider.LOCAL,
    's3': Provider.S3,
    'gcs': Provider.GOOGLE_STORAGE,
    'azure': Provider.AZURE_BLOBS,
    'minio': Provider.S3,
}

ALLOWED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.heic'}

LOCAL_URL_PREFIX = '/api/photos/files/'
SPOOL_MAX_SIZE = 8 * 1024 * 1024


class PhotoStorage:
    """Stores uploaded photo files in a libcloud container and hands back URLs."""

    def __init__(self, provider='local', access_key='', secret_key='', bucket='fieldpm-photos',
                 region='us-east-1', local_path='./uploads', public_url=''):
        if provider not in PROVIDERS:
            raise ValueError(f"Unsupported storage provider: {provider}")
        self.provider_name = provider
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket_name = bucket
        self.region = region
        self.local_path = Path(local_path)
        self.public_url = public_url.rstrip('/')

        if provider != 'local' and not all([access_key, secret_key, bucket]):
            raise ValueError("Cloud storage configuration incomplete. Check FIELDPM_STORAGE_* settings.")

        self.driver = self._get_driver()
        self.container = self._get_container()
        logger.info(f"Photo storage initialized with provider: {self.provider_name}")

    @classmethod
    def from_config(cls, config):
        return cls(
            provider=config.get('STORAGE_PROVIDER', 'local'),
            access_key=config.get('STORAGE_ACCESS_KEY', ''),
            secret_key=config.get('STORAGE_SECRET_KEY', ''),
            bucket=config.get('STORAGE_BUCKET', 'fieldpm-photos'),
            region=config.get('STORAGE_REGION', 'us-east-1'),
            local_path=config.get('STORAGE_LOCAL_PATH', './uploads'),
            public_url=config.get('STORAGE_PUBLIC_URL', ''),
        )

    def _get_driver(self):
        """Get the libcloud driver for the configured provider."""
        driver_cls = get_driver(PROVIDERS[self.provider_name])
        if self.provider_name == 'local':
            self.local_path.mkdir(parents=True, exist_ok=True)
            return driver_cls(str(self.local_path.resolve()))

        kwargs = {'key': self.access_key, 'secret': self.secret_key}
        if self.provider_name == 's3':
            kwargs['region'] = self.region
        return driver_cls(**kwargs)

    def _get_container(self):
        """Get or create the storage container/bucket."""
        try:
            return self.driver.get_container(container_name=self.bucket_name)
        except ContainerDoesNotExistError:
            logger.info(f"Creating container: {self.bucket_name}")
            return self.driver.create_container(container_name=self.bucket_name)

    @property
    def container_path(self):
        """Directory holding stored files for the local provider."""
        return (self.local_path / self.bucket_name).resolve()

    def object_name_for(self, photo_id, filename, project_id=None):
        """Build the object key: <project>/<photo id><ext>."""
        extension = Path(filename or '').suffix.lower() or '.jpg'
        if extension not in ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported photo file type: {extension}")
        name = f"{photo_id}{extension}"
        return f"{project_id}/{name}" if project_id else name

    def save(self, stream, object_name):
        """Upload a file-like stream and return its public URL.

        Every upload attempt starts from the stream position at call time.
        """
        if not hasattr(stream, 'seek'):
            buffered = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
            shutil.copyfileobj(stream, buffered)
            buffered.seek(0)
            stream = buffered
        obj = self._upload(stream, stream.tell(), object_name)
        return self.url_for(obj.name)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        retry=retry_if_exception_type((ConnectionError, TimeoutError, OSError)),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def _upload(self, stream, start, object_name):
        stream.seek(start)
        content_type = mimetypes.guess_type(object_name)[0] or 'application/octet-stream'

        def chunk_iterator():
            chunk_size = 8192
            while True:
                chunk = stream.read(chunk_size)
                if not chunk:
                    break
                yield chunk

        logger.info(f"Uploading photo to {object_name} (streaming)")
        return self.driver.upload_object_via_stream(
            iterator=chunk_iterator(),
            container=self.container,
            object_name=object_name,
            extra={'content_type': content_type}
        )

    def url_for(self, object_name):
        """Public URL of a stored object."""
        if self.public_url:
            return f"{self.public_url}/{object_name}"
        if self.provider_name == 'local':
            return f"{LOCAL_URL_PREFIX}{object_name}"
        obj = self.driver.get_object(self.container.name, object_name)
        return obj.get_cdn_url()

    def object_name_from_url(self, url):
        """Object key behind a URL this storage handed out; None for other URLs."""
        if not url:
            return None
        if self.public_url:
            prefix = f"{self.public_url}/"
            if not url.startswith(prefix):
                return None
            return url[len(prefix):] or None

        path = urlparse(url).path
        if self.provider_name == 'local':
            if not path.startswith(LOCAL_URL_PREFIX):
                return None
            return path[len(LOCAL_URL_PREFIX):] or None
        # Path-style CDN URLs carry the bucket as the first segment
        path = path.lstrip('/')
        bucket_prefix = f"{self.bucket_name}/"
        if path.startswith(bucket_prefix):
            path = path[len(bucket_prefix):]
        return path or None

    def delete(self, object_name):
        """Remove a stored object; missing objects are logged and ignored."""
        try:
            obj = self.driver.get_object(self.container.name, object_name)
            self.driver.delete_object(obj)
            logger.info(f"Deleted photo file: {object_name}")
        except Exception as e:
            logger.warning(f"Failed to delete photo file {object_name}: {e}")


_storage_lock = Lock()


def get_photo_storage():
    """Get or create the photo storage for the current app (thread-safe)."""
    extensions = current_app.extensions
    if 'photo_storage' not in extensions:
        with _storage_lock:
            if 'photo_storage' not in extensions:
                try:
                    extensions['photo_storage'] = PhotoStorage.from_config(current_app.config)
                except Exception as e:
                    logger.error(f"Failed to initialize photo storage: {e}")
                    raise
    return extensions['photo_storage']


def remove_photo_files(urls):
    """Delete the stored files behind photo URLs; URLs from elsewhere are left alone."""
    urls = [url for url in urls if url]
    if not urls:
        return
    storage = get_photo_storage()
    for url in urls:
        object_name = storage.object_name_from_url(url)
        if object_name:
            storage.delete(object_name)
