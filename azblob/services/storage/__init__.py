"""Unified file storage service supporting local and Azure Blob backends."""

from .azure_blob import ROOT_CONTAINER, AzureBlobStorageBackend, normalize_blob_properties
from .exceptions import (
    CapabilityNotSupported,
    ConfigurationError,
    CopyFailed,
    InvalidCustomUrl,
    KeyNotSet,
    MetadataUnavailable,
    StorageError,
)
from .interfaces import (
    VISIBILITY_PRIVATE,
    VISIBILITY_PUBLIC,
    DeliveryResult,
    DirectoryAttributes,
    FileAttributes,
    MaterializedFile,
    ObjectStat,
    StorageLocator,
    StoredObject,
    VisibilityHandling,
)
from .locator import build_azure_locator, build_local_locator, key_for_local_file, parse_locator
from .sas import BlobSasSigner, SasOptions
from .service import StorageService, get_storage_service, reset_storage_service_singleton

__all__ = [
    'ROOT_CONTAINER',
    'AzureBlobStorageBackend',
    'normalize_blob_properties',
    'BlobSasSigner',
    'SasOptions',
    'CapabilityNotSupported',
    'ConfigurationError',
    'CopyFailed',
    'InvalidCustomUrl',
    'KeyNotSet',
    'MetadataUnavailable',
    'StorageError',
    'VISIBILITY_PRIVATE',
    'VISIBILITY_PUBLIC',
    'DeliveryResult',
    'DirectoryAttributes',
    'FileAttributes',
    'MaterializedFile',
    'ObjectStat',
    'StorageLocator',
    'StoredObject',
    'VisibilityHandling',
    'build_azure_locator',
    'build_local_locator',
    'key_for_local_file',
    'parse_locator',
    'StorageService',
    'get_storage_service',
    'reset_storage_service_singleton',
]
