"""Filesystem backend: objects are plain files under an upload root."""

from __future__ import annotations

import mimetypes
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Optional

from ...utils.url import is_absolute_url
from .exceptions import InvalidCustomUrl
from .interfaces import MaterializedFile, ObjectStat, StorageLocator, StoredObject
from .locator import build_local_locator, local_path_from_key


class LocalStorageBackend:
    """Keeps objects under ``root``; an optional ``public_url`` is the web root serving it."""

    def __init__(self, root: str, public_url: Optional[str] = None):
        if public_url and not is_absolute_url(public_url):
            raise InvalidCustomUrl(public_url)
        self.root = str(Path(root))
        self.public_base_url = public_url or None
        os.makedirs(self.root, exist_ok=True)

    def build_locator(self, key: str) -> str:
        return build_local_locator(key)

    def path_for(self, locator: StorageLocator) -> str:
        if not locator.is_local:
            raise ValueError(f"Unsupported locator for local backend: {locator.scheme}")
        return local_path_from_key(self.root, locator.key)

    def _destination(self, key: str) -> str:
        path = local_path_from_key(self.root, key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        return path

    def _stored(self, key: str, path: str, content_type: Optional[str]) -> StoredObject:
        return StoredObject(
            locator=self.build_locator(key),
            key=key,
            size=os.path.getsize(path),
            content_type=content_type or mimetypes.guess_type(path)[0],
        )

    def save_fileobj(self, fileobj: BinaryIO, key: str, content_type: Optional[str] = None, metadata: Optional[dict] = None) -> StoredObject:
        path = self._destination(key)
        with open(path, 'wb') as out_f:
            shutil.copyfileobj(fileobj, out_f)
        return self._stored(key, path, content_type)

    def upload_local_file(self, local_path: str, key: str, content_type: Optional[str] = None, metadata: Optional[dict] = None, delete_source: bool = False) -> StoredObject:
        path = self._destination(key)
        if not os.path.exists(path) or not os.path.samefile(local_path, path):
            transfer = shutil.move if delete_source else shutil.copy2
            transfer(local_path, path)
        return self._stored(key, path, content_type)

    def exists(self, locator: StorageLocator) -> bool:
        return os.path.isfile(self.path_for(locator))

    def delete(self, locator: StorageLocator, missing_ok: bool = True) -> bool:
        try:
            os.remove(self.path_for(locator))
        except FileNotFoundError:
            return bool(missing_ok)
        return True

    def stat(self, locator: StorageLocator) -> ObjectStat:
        path = self.path_for(locator)
        st = os.stat(path)
        return ObjectStat(
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            content_type=mimetypes.guess_type(path)[0],
        )

    def materialize(self, locator: StorageLocator) -> MaterializedFile:
        # Already on disk; nothing to clean up afterwards.
        return MaterializedFile(local_path=self.path_for(locator), cleanup_required=False)

    def public_url(self, locator: StorageLocator) -> str:
        self.path_for(locator)
        if not self.public_base_url:
            raise NotImplementedError('Local backend has no public URL configured (FILE_STORAGE_LOCAL_URL)')
        return f"{self.public_base_url.rstrip('/')}/{locator.key}"

    def presign_get_url(self, locator: StorageLocator, *args, **kwargs) -> str:
        raise NotImplementedError('Local backend does not support presigned URLs')
