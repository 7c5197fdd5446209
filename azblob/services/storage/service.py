"""Storage service: routes locators to the local or Azure Blob backend.

Callers keep locator strings and never talk to a backend directly. New objects
go to the backend named by ``FILE_STORAGE_BACKEND``; existing locators are
always served by the backend their scheme names.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional
from uuid import uuid4

from .factory import StorageSettings, build_azure_backend, build_local_backend, load_storage_settings_from_env
from .interfaces import DeliveryResult, MaterializedFile, StorageLocator, StoredObject
from .locator import parse_locator

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9 ._-]')
_WHITESPACE = re.compile(r'\s+')
DEFAULT_FILENAME = 'file.bin'


def safe_filename(original_filename: Optional[str]) -> str:
    """Last path component of ``original_filename`` reduced to ``[A-Za-z0-9._-]``."""
    name = (original_filename or '').replace('\\', '/').rsplit('/', 1)[-1]
    name = _WHITESPACE.sub('_', _UNSAFE_FILENAME_CHARS.sub('', name).strip())
    return name if name.strip('.') else DEFAULT_FILENAME


class StorageService:
    """Single entry point for storing, finding and delivering objects."""

    def __init__(self, settings: Optional[StorageSettings] = None, azure_client=None):
        self.settings = settings or load_storage_settings_from_env()
        self.local = build_local_backend(self.settings)
        self.azure = build_azure_backend(self.settings, client=azure_client)

    def parse_locator(self, locator_value: str) -> Optional[StorageLocator]:
        return parse_locator(locator_value)

    def _locate(self, locator_value: str):
        """Return ``(backend, locator)`` for a locator string."""
        locator = parse_locator(locator_value)
        if locator is None:
            raise ValueError('Empty storage locator')
        if locator.is_azure:
            if self.azure is None:
                raise RuntimeError(f"Cannot serve {locator.raw}: Azure blob backend is not configured (AZURE_STORAGE_CONTAINER)")
            return self.azure, locator
        return self.local, locator

    def _default_backend(self):
        if self.settings.backend != 'azure':
            return self.local
        if self.azure is None:
            raise RuntimeError('FILE_STORAGE_BACKEND=azure but Azure blob backend is not configured (AZURE_STORAGE_CONTAINER)')
        return self.azure

    def default_backend_kind(self) -> str:
        return self.settings.backend

    def get_staging_dir(self) -> str:
        os.makedirs(self.settings.staging_dir, exist_ok=True)
        return self.settings.staging_dir

    def build_object_key(self, original_filename: Optional[str], object_id: Optional[int] = None, *,
                         now: Optional[datetime] = None) -> str:
        """``<key_prefix>/<YYYY>/<MM>/<object id or tmp-xxxxxxxx>/<timestamp>_<safe filename>``."""
        now = now or datetime.now(timezone.utc)
        owner = f"tmp-{uuid4().hex[:8]}" if object_id is None else str(object_id)
        prefix = (self.settings.key_prefix or 'files').replace('\\', '/').strip('/')
        return '/'.join((prefix, f"{now:%Y}", f"{now:%m}", owner, f"{now:%Y%m%d%H%M%S}_{safe_filename(original_filename)}"))

    def build_default_locator(self, key: str) -> str:
        return self._default_backend().build_locator(key)

    def exists(self, locator_value: str) -> bool:
        backend, locator = self._locate(locator_value)
        return backend.exists(locator)

    def delete(self, locator_value: Optional[str], missing_ok: bool = True) -> bool:
        if not locator_value:
            return bool(missing_ok)
        backend, locator = self._locate(locator_value)
        return backend.delete(locator, missing_ok=missing_ok)

    def upload_local_file(self, local_path: str, key: str, *, content_type: Optional[str] = None,
                          delete_source: bool = False) -> StoredObject:
        return self._default_backend().upload_local_file(local_path, key, content_type=content_type,
                                                         delete_source=delete_source)

    @contextmanager
    def materialize(self, locator_value: str) -> Iterator[MaterializedFile]:
        """Yield a local copy of the object; temporary copies are removed on exit."""
        backend, locator = self._locate(locator_value)
        materialized = backend.materialize(locator)
        try:
            yield materialized
        finally:
            if materialized.cleanup_required:
                try:
                    os.remove(materialized.local_path)
                except FileNotFoundError:
                    logger.warning(f"Materialized file already removed: {materialized.local_path}")

    def get_public_url(self, locator_value: str) -> str:
        backend, locator = self._locate(locator_value)
        return backend.public_url(locator)

    def get_delivery(self, locator_value: str, *, download: bool = False, mime_type: Optional[str] = None,
                     download_name: Optional[str] = None, is_public: bool = False) -> DeliveryResult:
        """Local objects are served from disk; Azure objects through a signed redirect.

        ``is_public`` selects the longer share lifetime. ``download`` adds an
        ``attachment`` Content-Disposition override to the signature.
        """
        backend, locator = self._locate(locator_value)
        if backend is self.local:
            return DeliveryResult(mode='local_file', local_path=backend.path_for(locator), mimetype=mime_type)

        disposition = None
        if download:
            filename = (download_name or 'file').replace('"', '')
            disposition = f'attachment; filename="{filename}"'
        url = backend.presign_get_url(
            locator,
            expires_seconds=self.settings.sas_public_ttl_seconds if is_public else self.settings.sas_ttl_seconds,
            response_content_type=mime_type,
            response_content_disposition=disposition,
        )
        return DeliveryResult(mode='redirect_url', url=url, mimetype=mime_type)


_storage_service_singleton: Optional[StorageService] = None
_storage_service_singleton_lock = threading.Lock()


def get_storage_service() -> StorageService:
    global _storage_service_singleton
    if _storage_service_singleton is None:
        with _storage_service_singleton_lock:
            if _storage_service_singleton is None:
                _storage_service_singleton = StorageService()
    return _storage_service_singleton


def reset_storage_service_singleton() -> None:
    global _storage_service_singleton
    with _storage_service_singleton_lock:
        _storage_service_singleton = None
