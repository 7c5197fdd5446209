"""Value types shared by the storage backends and the service facade."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

VISIBILITY_PUBLIC = 'public'
VISIBILITY_PRIVATE = 'private'

SCHEME_LOCAL = 'local'
SCHEME_AZURE = 'azure'


class VisibilityHandling(str, Enum):
    """How a backend without per-object ACLs answers visibility calls."""

    IGNORE = 'ignore'
    THROW = 'throw'


@dataclass(frozen=True)
class StorageLocator:
    """A parsed ``local://<key>`` or ``azure://<container>/<key>`` locator."""

    scheme: str
    raw: str
    key: str
    container: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.scheme == SCHEME_LOCAL

    @property
    def is_azure(self) -> bool:
        return self.scheme == SCHEME_AZURE

    def __str__(self) -> str:
        return self.raw


@dataclass
class StoredObject:
    """What a backend reports after writing an object."""

    locator: str
    key: str
    size: Optional[int] = None
    content_type: Optional[str] = None
    etag: Optional[str] = None


@dataclass
class ObjectStat:
    """Size, timestamp, etag and content type of a stored object."""

    size: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None


@dataclass(frozen=True)
class FileAttributes:
    """Canonical metadata for a single file, built from provider properties."""

    path: str
    file_size: Optional[int] = None
    visibility: Optional[str] = None
    last_modified: Optional[int] = None  # unix seconds
    mime_type: Optional[str] = None
    extra_metadata: dict = field(default_factory=dict)

    @property
    def is_file(self) -> bool:
        return True

    def with_visibility(self, visibility: str) -> 'FileAttributes':
        return replace(self, visibility=visibility)


@dataclass(frozen=True)
class DirectoryAttributes:
    """Virtual directory discovered while listing a container."""

    path: str

    @property
    def is_file(self) -> bool:
        return False


@dataclass
class MaterializedFile:
    """A local file holding an object's bytes; temporary when ``cleanup_required``."""

    local_path: str
    cleanup_required: bool = False


@dataclass
class DeliveryResult:
    """How a stored object should be handed to a client: a local file or a redirect."""

    mode: str  # local_file | redirect_url
    mimetype: Optional[str] = None
    local_path: Optional[str] = None
    url: Optional[str] = None
