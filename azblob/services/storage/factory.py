"""Factory for configuring file storage backends from environment variables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from azure.storage.blob import BlobServiceClient

from .azure_blob import AzureBlobStorageBackend
from .exceptions import ConfigurationError
from .interfaces import VisibilityHandling
from .local import LocalStorageBackend

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_TEMPLATE = 'https://{account}.blob.core.windows.net'


@dataclass
class StorageSettings:
    backend: str
    local_root: str
    key_prefix: str
    staging_dir: str
    sas_ttl_seconds: int
    sas_public_ttl_seconds: int
    local_public_url: Optional[str] = None
    azure_connection_string: Optional[str] = None
    azure_account_name: Optional[str] = None
    azure_account_key: Optional[str] = None
    azure_sas_token: Optional[str] = None
    azure_endpoint: Optional[str] = None
    azure_container: Optional[str] = None
    azure_url: Optional[str] = None
    azure_prefix: str = ''
    azure_visibility: str = VisibilityHandling.IGNORE.value
    azure_retry_total: Optional[int] = None


def load_storage_settings_from_env() -> StorageSettings:
    from azblob.config import app_config

    return StorageSettings(
        backend=(app_config.FILE_STORAGE_BACKEND or 'local').strip().lower() or 'local',
        local_root=app_config.UPLOAD_FOLDER,
        key_prefix=(app_config.FILE_STORAGE_KEY_PREFIX or 'files').strip().strip('/').replace('\\', '/'),
        staging_dir=app_config.FILE_STORAGE_STAGING_DIR,
        sas_ttl_seconds=int(app_config.AZURE_SAS_TTL_SECONDS),
        sas_public_ttl_seconds=int(app_config.AZURE_SAS_PUBLIC_TTL_SECONDS),
        local_public_url=app_config.FILE_STORAGE_LOCAL_URL,
        azure_connection_string=app_config.AZURE_STORAGE_CONNECTION_STRING,
        azure_account_name=app_config.AZURE_STORAGE_ACCOUNT,
        azure_account_key=app_config.AZURE_STORAGE_KEY,
        azure_sas_token=app_config.AZURE_STORAGE_SAS_TOKEN,
        azure_endpoint=app_config.AZURE_STORAGE_ENDPOINT,
        azure_container=app_config.AZURE_STORAGE_CONTAINER,
        azure_url=app_config.AZURE_STORAGE_URL,
        azure_prefix=(app_config.AZURE_STORAGE_PREFIX or '').strip().strip('/'),
        azure_visibility=app_config.AZURE_STORAGE_VISIBILITY or VisibilityHandling.IGNORE.value,
        azure_retry_total=app_config.AZURE_STORAGE_RETRY_TOTAL,
    )


def build_local_backend(settings: StorageSettings) -> LocalStorageBackend:
    return LocalStorageBackend(settings.local_root, public_url=settings.local_public_url)


def build_blob_service_client(settings: StorageSettings) -> BlobServiceClient:
    """Create the SDK client: connection string first, then account + key or SAS token."""
    client_kwargs = {}
    if settings.azure_retry_total is not None:
        client_kwargs['retry_total'] = settings.azure_retry_total

    if settings.azure_connection_string:
        return BlobServiceClient.from_connection_string(settings.azure_connection_string, **client_kwargs)

    if not settings.azure_account_name:
        raise ConfigurationError('AZURE_STORAGE_ACCOUNT or AZURE_STORAGE_CONNECTION_STRING must be set')

    account_url = settings.azure_endpoint or DEFAULT_ENDPOINT_TEMPLATE.format(account=settings.azure_account_name)
    if settings.azure_account_key:
        credential = {'account_name': settings.azure_account_name, 'account_key': settings.azure_account_key}
    elif settings.azure_sas_token:
        credential = settings.azure_sas_token.lstrip('?')
    else:
        raise ConfigurationError('AZURE_STORAGE_KEY or AZURE_STORAGE_SAS_TOKEN must be set')
    return BlobServiceClient(account_url=account_url, credential=credential, **client_kwargs)


def resolve_signing_key(settings: StorageSettings, client) -> Optional[str]:
    """Account key for SAS signing; falls back to the key inside a connection string."""
    if settings.azure_account_key:
        return settings.azure_account_key
    credential = getattr(client, 'credential', None)
    return getattr(credential, 'account_key', None)


def build_azure_backend(settings: StorageSettings, client=None) -> Optional[AzureBlobStorageBackend]:
    if not settings.azure_container:
        return None
    client = client or build_blob_service_client(settings)
    backend = AzureBlobStorageBackend(
        client,
        settings.azure_container,
        key=resolve_signing_key(settings, client),
        url=settings.azure_url,
        prefix=settings.azure_prefix,
        visibility_handling=settings.azure_visibility,
    )
    logger.info(
        f"Azure blob backend configured: container={settings.azure_container}, "
        f"prefix={settings.azure_prefix or '-'}, custom_url={settings.azure_url or '-'}, "
        f"signing={'on' if backend.can_sign else 'off'}, visibility={backend.visibility_handling.value}"
    )
    return backend
