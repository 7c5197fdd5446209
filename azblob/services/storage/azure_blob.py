"""Azure Blob Storage backend.

Wraps an injected ``BlobServiceClient`` and implements both the locator based
storage contract used by ``StorageService`` and the path based file-system
operations (read, write, list, metadata, URLs). Three operations carry real
logic of their own:

* ``get_url`` builds a public URL, either on a custom base URL (a CDN or static
  hosting domain in front of the account) or through the SDK's default blob
  URL.
* ``get_temporary_url`` appends a shared access signature to that URL.
* ``visibility`` normalizes blob properties into ``FileAttributes``. Azure has
  no per-object ACL, so the reported visibility comes from the configured
  ``VisibilityHandling`` and never from the service.

The backend keeps no mutable state; it is safe to share between threads as
long as the SDK client is.
"""

from __future__ import annotations

import logging
import mimetypes
import os
import tempfile
import time
from datetime import timedelta, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import ContentSettings

from ...utils.file_hash import base64_md5_to_hex, md5_to_base64
from ...utils.url import is_absolute_url
from .exceptions import CapabilityNotSupported, CopyFailed, InvalidCustomUrl, KeyNotSet, MetadataUnavailable
from .interfaces import (
    VISIBILITY_PUBLIC,
    DirectoryAttributes,
    FileAttributes,
    MaterializedFile,
    ObjectStat,
    StorageLocator,
    StoredObject,
    VisibilityHandling,
)
from .locator import build_azure_locator, parse_locator
from .sas import BlobSasSigner, Expiry, SasOptions

logger = logging.getLogger(__name__)

ROOT_CONTAINER = '$root'
COPY_PENDING = 'pending'
COPY_SUCCESS = 'success'


def normalize_blob_properties(path: str, properties) -> FileAttributes:
    """Map SDK ``BlobProperties`` onto canonical file attributes."""
    settings = getattr(properties, 'content_settings', None)
    last_modified = getattr(properties, 'last_modified', None)
    if last_modified is not None:
        if last_modified.tzinfo is None:
            last_modified = last_modified.replace(tzinfo=timezone.utc)
        last_modified = int(last_modified.timestamp())
    etag = getattr(properties, 'etag', None)
    return FileAttributes(
        path=path,
        file_size=getattr(properties, 'size', None),
        last_modified=last_modified,
        mime_type=getattr(settings, 'content_type', None),
        extra_metadata={
            'md5_checksum': md5_to_base64(getattr(settings, 'content_md5', None)),
            'etag': etag.strip('"') if etag else None,
        },
    )


class AzureBlobStorageBackend:
    """Azure Blob Storage implementation for the storage contract."""

    copy_poll_interval = 1.0
    copy_timeout = 300.0

    def __init__(self, client, container: str, key: Optional[str] = None, url: Optional[str] = None,
                 prefix: str = '', visibility_handling: Union[VisibilityHandling, str] = VisibilityHandling.IGNORE):
        if url and not is_absolute_url(url):
            raise InvalidCustomUrl(url)
        self._client = client
        self._container = container
        self._key = key or None
        self._url = url or None
        self._prefix = (prefix or '').strip('/')
        self._visibility_handling = VisibilityHandling(visibility_handling)

    @property
    def client(self):
        return self._client

    @property
    def container(self) -> str:
        return self._container

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def custom_url(self) -> Optional[str]:
        return self._url

    @property
    def visibility_handling(self) -> VisibilityHandling:
        return self._visibility_handling

    @property
    def can_sign(self) -> bool:
        return self._key is not None

    # -- path helpers -------------------------------------------------------

    def _prefix_path(self, path: str) -> str:
        path = (path or '').lstrip('/')
        return f"{self._prefix}/{path}" if self._prefix else path

    def _strip_prefix(self, name: str) -> str:
        if self._prefix and name.startswith(self._prefix + '/'):
            return name[len(self._prefix) + 1:]
        return name

    def _blob(self, blob_name: str):
        return self._client.get_blob_client(self._container, blob_name)

    def _container_client(self):
        return self._client.get_container_client(self._container)

    def _url_for_blob(self, blob_name: str) -> str:
        """Public URL for a provider-facing (already prefixed) blob name."""
        if self._url:
            container_segment = '' if self._container == ROOT_CONTAINER else f"{self._container}/"
            return f"{self._url.rstrip('/')}/{container_segment}{blob_name.lstrip('/')}"
        return self._blob(blob_name).url

    # -- URLs ---------------------------------------------------------------

    def get_url(self, path: str) -> str:
        """Public URL for a logical path.

        The prefix is only inserted on a custom base URL; without one this is
        the SDK's own URL for ``(container, path)``.
        """
        if self._url:
            return self._url_for_blob(self._prefix_path(path))
        return self._blob(path).url

    def get_temporary_url(self, path: str, ttl: Expiry, options: Union[SasOptions, dict, None] = None) -> str:
        """Signed URL granting time-limited access to a blob.

        ``ttl`` is the expiry: a datetime, an ISO-8601 string, or a timedelta /
        number of seconds counted from now. ``options`` is a ``SasOptions`` or
        a dict with the same keys; omitted keys keep their defaults.
        """
        if self._key is None:
            raise KeyNotSet()
        options = SasOptions.coerce(options)

        effective_path = f"{self._prefix}/{path}" if self._prefix else path
        resource_name = f"{self._container}/{effective_path}" if effective_path else self._container

        signer = BlobSasSigner(self._client.account_name, self._key)
        sas_token = signer.sign(
            options.signed_resource,
            resource_name,
            options.signed_permissions,
            ttl,
            options.signed_start,
            options.signed_ip,
            options.signed_protocol,
            options.signed_identifier,
            options.cache_control,
            options.content_disposition,
            options.content_encoding,
            options.content_language,
            options.content_type,
        )
        logger.debug(f"Signed temporary URL for {resource_name} (sr={options.signed_resource}, sp={options.signed_permissions})")
        return f"{self._url_for_blob(effective_path)}?{sas_token}"

    # -- metadata -----------------------------------------------------------

    def fetch_metadata(self, path: str, metadata_type: str = 'metadata') -> FileAttributes:
        try:
            properties = self._blob(self._prefix_path(path)).get_blob_properties()
        except AzureError as exc:
            raise MetadataUnavailable(path, metadata_type, str(exc)) from exc
        return normalize_blob_properties(path, properties)

    def visibility(self, path: str) -> FileAttributes:
        handling = self._visibility_handling
        if handling is VisibilityHandling.THROW:
            raise CapabilityNotSupported('retrieve visibility', path, 'Azure does not support per-object visibility.')
        if handling is VisibilityHandling.IGNORE:
            return self.fetch_metadata(path, 'visibility').with_visibility(VISIBILITY_PUBLIC)
        raise ValueError(f"Unhandled visibility handling: {handling!r}")

    def set_visibility(self, path: str, visibility: str) -> None:
        handling = self._visibility_handling
        if handling is VisibilityHandling.THROW:
            raise CapabilityNotSupported('set visibility', path, 'Azure does not support per-object visibility.')
        if handling is VisibilityHandling.IGNORE:
            return None
        raise ValueError(f"Unhandled visibility handling: {handling!r}")

    def mime_type(self, path: str) -> FileAttributes:
        attributes = self.fetch_metadata(path, 'mime_type')
        if attributes.mime_type is None:
            raise MetadataUnavailable(path, 'mime_type')
        return attributes

    def last_modified(self, path: str) -> FileAttributes:
        attributes = self.fetch_metadata(path, 'last_modified')
        if attributes.last_modified is None:
            raise MetadataUnavailable(path, 'last_modified')
        return attributes

    def file_size(self, path: str) -> FileAttributes:
        attributes = self.fetch_metadata(path, 'file_size')
        if attributes.file_size is None:
            raise MetadataUnavailable(path, 'file_size')
        return attributes

    def checksum(self, path: str) -> str:
        """Hex MD5 of the blob content, from the stored Content-MD5."""
        attributes = self.fetch_metadata(path, 'checksum')
        digest = base64_md5_to_hex(attributes.extra_metadata.get('md5_checksum'))
        if digest is None:
            raise MetadataUnavailable(path, 'checksum', 'No Content-MD5 is stored for this blob.')
        return digest

    # -- path based file operations -------------------------------------------

    def file_exists(self, path: str) -> bool:
        return self._blob(self._prefix_path(path)).exists()

    def directory_exists(self, path: str) -> bool:
        name_prefix = self._prefix_path(path).rstrip('/') + '/'
        blobs = self._container_client().list_blobs(name_starts_with=name_prefix, results_per_page=1)
        return next(iter(blobs), None) is not None

    def write(self, path: str, contents: Union[bytes, str], content_type: Optional[str] = None,
              metadata: Optional[dict] = None) -> None:
        self._upload(self._prefix_path(path), contents, content_type or mimetypes.guess_type(path)[0], metadata)

    def write_stream(self, path: str, stream: BinaryIO, content_type: Optional[str] = None,
                     metadata: Optional[dict] = None) -> None:
        self._upload(self._prefix_path(path), stream, content_type or mimetypes.guess_type(path)[0], metadata)

    def _upload(self, blob_name: str, data, content_type: Optional[str], metadata: Optional[dict]) -> None:
        kwargs = {'overwrite': True}
        if content_type:
            kwargs['content_settings'] = ContentSettings(content_type=content_type)
        if metadata:
            kwargs['metadata'] = metadata
        self._blob(blob_name).upload_blob(data, **kwargs)

    def read(self, path: str) -> bytes:
        return self._blob(self._prefix_path(path)).download_blob().readall()

    def read_stream(self, path: str):
        """Return the SDK downloader; read it with ``read()``, ``chunks()`` or ``readinto()``."""
        return self._blob(self._prefix_path(path)).download_blob()

    def delete_file(self, path: str) -> None:
        blob_name = self._prefix_path(path)
        try:
            self._blob(blob_name).delete_blob()
        except ResourceNotFoundError:
            return
        logger.debug(f"Deleted blob {self._container}/{blob_name}")

    def delete_directory(self, path: str) -> None:
        name_prefix = self._prefix_path(path).rstrip('/') + '/'
        container_client = self._container_client()
        for blob in container_client.list_blobs(name_starts_with=name_prefix):
            container_client.delete_blob(blob.name)
        logger.debug(f"Deleted virtual directory {self._container}/{name_prefix}")

    def create_directory(self, path: str) -> None:
        # Directories are virtual: they exist as soon as a blob is written under them.
        return None

    def list_contents(self, path: str = '', deep: bool = False) -> Iterator[Union[FileAttributes, DirectoryAttributes]]:
        name_prefix = self._prefix_path(path).rstrip('/')
        if name_prefix:
            name_prefix += '/'
        container_client = self._container_client()
        if deep:
            items = container_client.list_blobs(name_starts_with=name_prefix or None)
        else:
            items = container_client.walk_blobs(name_starts_with=name_prefix or None, delimiter='/')
        for item in items:
            name = item.name
            if name.endswith('/'):
                yield DirectoryAttributes(path=self._strip_prefix(name).rstrip('/'))
            else:
                yield normalize_blob_properties(self._strip_prefix(name), item)

    def copy(self, source: str, destination: str) -> str:
        """Server-side copy; returns the final copy status once it leaves ``pending``."""
        source_url = self._blob(self._prefix_path(source)).url
        destination_blob = self._blob(self._prefix_path(destination))
        result = destination_blob.start_copy_from_url(source_url)
        status = self._wait_for_copy(destination_blob, result.get('copy_status'))
        if status != COPY_SUCCESS:
            raise CopyFailed(source, destination, status)
        return status

    def _wait_for_copy(self, destination_blob, status: Optional[str]) -> Optional[str]:
        deadline = time.monotonic() + self.copy_timeout
        while status == COPY_PENDING:
            if time.monotonic() >= deadline:
                return status
            time.sleep(self.copy_poll_interval)
            status = destination_blob.get_blob_properties().copy.status
        return status

    def move(self, source: str, destination: str) -> None:
        self.copy(source, destination)
        self.delete_file(source)

    # -- locator based storage contract ---------------------------------------

    def build_locator(self, key: str) -> str:
        return build_azure_locator(self._container, key)

    def _locator_key(self, locator: StorageLocator) -> str:
        if not locator.is_azure:
            raise ValueError(f"Unsupported locator for Azure backend: {locator.scheme}")
        if locator.container and locator.container != self._container:
            raise ValueError(
                f"Azure locator container '{locator.container}' does not match configured container '{self._container}'"
            )
        return locator.key

    def save_fileobj(self, fileobj: BinaryIO, key: str, content_type: Optional[str] = None, metadata: Optional[dict] = None) -> StoredObject:
        self.write_stream(key, fileobj, content_type=content_type, metadata=metadata)
        return self._stored_object(key)

    def upload_local_file(self, local_path: str, key: str, content_type: Optional[str] = None, metadata: Optional[dict] = None, delete_source: bool = False) -> StoredObject:
        with open(local_path, 'rb') as in_f:
            self.write_stream(key, in_f, content_type=content_type, metadata=metadata)
        if delete_source:
            try:
                os.remove(local_path)
            except FileNotFoundError:
                pass
        return self._stored_object(key)

    def _stored_object(self, key: str) -> StoredObject:
        locator = self.build_locator(key)
        stat = self.stat(parse_locator(locator))
        return StoredObject(locator=locator, key=key, size=stat.size, content_type=stat.content_type, etag=stat.etag)

    def exists(self, locator: StorageLocator) -> bool:
        return self.file_exists(self._locator_key(locator))

    def delete(self, locator: StorageLocator, missing_ok: bool = True) -> bool:
        key = self._locator_key(locator)
        try:
            self._blob(self._prefix_path(key)).delete_blob()
        except ResourceNotFoundError:
            if missing_ok:
                return True
            raise
        return True

    def stat(self, locator: StorageLocator) -> ObjectStat:
        properties = self._blob(self._prefix_path(self._locator_key(locator))).get_blob_properties()
        settings = getattr(properties, 'content_settings', None)
        return ObjectStat(
            size=properties.size,
            last_modified=properties.last_modified,
            etag=(properties.etag or '').strip('"') or None,
            content_type=getattr(settings, 'content_type', None),
        )

    def materialize(self, locator: StorageLocator) -> MaterializedFile:
        key = self._locator_key(locator)
        suffix = Path(key).suffix
        fd, tmp_path = tempfile.mkstemp(prefix='azblob_', suffix=suffix)
        try:
            with os.fdopen(fd, 'wb') as out_f:
                self._blob(self._prefix_path(key)).download_blob().readinto(out_f)
        except Exception:
            os.remove(tmp_path)
            raise
        return MaterializedFile(local_path=tmp_path, cleanup_required=True)

    def public_url(self, locator: StorageLocator) -> str:
        """URL of the blob a locator names, with the prefix applied."""
        return self._url_for_blob(self._prefix_path(self._locator_key(locator)))

    def presign_get_url(self, locator: StorageLocator, expires_seconds: int, response_content_type: Optional[str] = None,
                        response_content_disposition: Optional[str] = None) -> str:
        options = SasOptions(
            content_type=response_content_type or '',
            content_disposition=response_content_disposition or '',
        )
        return self.get_temporary_url(self._locator_key(locator), timedelta(seconds=int(expires_seconds)), options)
