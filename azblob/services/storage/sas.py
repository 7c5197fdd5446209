"""Shared access signature (SAS) signing for Azure Blob Storage."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional, Union

from azure.storage.blob import generate_blob_sas, generate_container_sas

SIGNED_RESOURCE_BLOB = 'b'
SIGNED_RESOURCE_CONTAINER = 'c'

Expiry = Union[datetime, timedelta, int, str]


@dataclass(frozen=True)
class SasOptions:
    """Signing parameters for a temporary URL.

    Field names match the option keys accepted by ``from_mapping``. Empty
    strings mean "not restricted" / "no override".
    """

    signed_resource: str = SIGNED_RESOURCE_BLOB
    signed_permissions: str = 'r'
    signed_start: Union[str, datetime] = ''
    signed_ip: str = ''
    signed_protocol: str = 'https'
    signed_identifier: str = ''
    cache_control: str = ''
    content_disposition: str = ''
    content_encoding: str = ''
    content_language: str = ''
    content_type: str = ''

    @classmethod
    def recognized_keys(cls):
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, options: Optional[Mapping] = None) -> 'SasOptions':
        if not options:
            return cls()
        known = set(cls.recognized_keys())
        unknown = sorted(str(k) for k in options if k not in known)
        if unknown:
            raise ValueError(
                f"Unknown SAS option(s): {', '.join(unknown)}. "
                f"Recognized options: {', '.join(cls.recognized_keys())}"
            )
        return cls(**{k: _option_value(v) for k, v in options.items()})

    @classmethod
    def coerce(cls, options) -> 'SasOptions':
        if isinstance(options, cls):
            return options
        return cls.from_mapping(options)


def _option_value(value):
    """Stringify an option value; ``None`` is empty and datetimes pass through."""
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value
    return str(value)


def resolve_expiry(ttl: Expiry, now: Optional[datetime] = None) -> Union[datetime, str]:
    """Turn a relative ttl into an absolute UTC expiry; absolute values pass through."""
    if isinstance(ttl, bool):
        raise TypeError('ttl must be a datetime, timedelta, number of seconds or ISO-8601 string')
    if isinstance(ttl, (datetime, str)):
        return ttl
    if isinstance(ttl, int):
        ttl = timedelta(seconds=ttl)
    if isinstance(ttl, timedelta):
        return (now or datetime.now(timezone.utc)) + ttl
    raise TypeError('ttl must be a datetime, timedelta, number of seconds or ISO-8601 string')


class BlobSasSigner:
    """Produces service SAS query strings with an account shared key."""

    def __init__(self, account_name: str, account_key: str):
        self.account_name = account_name
        self.account_key = account_key

    def sign(self, signed_resource: str, resource_name: str, signed_permissions: str, ttl: Expiry,
             signed_start: Union[str, datetime] = '', signed_ip: str = '', signed_protocol: str = 'https',
             signed_identifier: str = '', cache_control: str = '', content_disposition: str = '',
             content_encoding: str = '', content_language: str = '', content_type: str = '') -> str:
        """Return the SAS query string (without leading ``?``) for ``resource_name``.

        ``resource_name`` is ``container`` or ``container/blob/path``.
        """
        container, _, blob_name = resource_name.partition('/')
        common = dict(
            account_key=self.account_key,
            permission=signed_permissions or None,
            expiry=resolve_expiry(ttl),
            start=signed_start or None,
            policy_id=signed_identifier or None,
            ip=signed_ip or None,
            protocol=signed_protocol or None,
            cache_control=cache_control or None,
            content_disposition=content_disposition or None,
            content_encoding=content_encoding or None,
            content_language=content_language or None,
            content_type=content_type or None,
        )
        if signed_resource == SIGNED_RESOURCE_BLOB:
            return generate_blob_sas(self.account_name, container, blob_name, **common)
        if signed_resource == SIGNED_RESOURCE_CONTAINER:
            return generate_container_sas(self.account_name, container, **common)
        raise ValueError(f"Unsupported signed resource type: {signed_resource!r}")
