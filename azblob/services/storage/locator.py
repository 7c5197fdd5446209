"""Storage locators: ``local://<key>`` and ``azure://<container>/<key>``.

A locator is the string persisted by callers to find an object again. Keys are
always forward-slash separated and never start with a slash; Azure keys are
relative to the backend prefix.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Optional

from .interfaces import SCHEME_AZURE, SCHEME_LOCAL, StorageLocator

_SEPARATOR = '://'
_REPEATED_SLASHES = re.compile(r'/{2,}')


def normalize_key(key: Optional[str]) -> str:
    """Forward slashes only, no doubled or leading slashes."""
    key = (key or '').strip().replace('\\', '/')
    return _REPEATED_SLASHES.sub('/', key).lstrip('/')


def build_local_locator(key: str) -> str:
    return f"{SCHEME_LOCAL}{_SEPARATOR}{normalize_key(key)}"


def build_azure_locator(container: str, key: str) -> str:
    return f"{SCHEME_AZURE}{_SEPARATOR}{container}/{normalize_key(key)}"


def parse_locator(value: Optional[str]) -> Optional[StorageLocator]:
    """Parse a locator string; ``None`` for empty input, ``ValueError`` for anything malformed."""
    raw = '' if value is None else str(value).strip()
    if not raw:
        return None

    scheme, separator, rest = raw.partition(_SEPARATOR)
    if not separator:
        raise ValueError(f"Not a storage locator (expected scheme://...): {raw}")

    if scheme == SCHEME_LOCAL:
        key = normalize_key(rest)
        if not key:
            raise ValueError(f"Local locator has no key: {raw}")
        return StorageLocator(scheme=SCHEME_LOCAL, raw=raw, key=key)

    if scheme == SCHEME_AZURE:
        container, _, key = rest.partition('/')
        container, key = container.strip(), normalize_key(key)
        if not container or not key:
            raise ValueError(f"Azure locator needs a container and a key: {raw}")
        return StorageLocator(scheme=SCHEME_AZURE, raw=raw, container=container, key=key)

    raise ValueError(f"Unknown storage locator scheme '{scheme}': {raw}")


def local_path_from_key(local_root: str, key: str) -> str:
    """Absolute path of ``key`` under ``local_root``; keys escaping the root raise ``ValueError``."""
    root = Path(local_root).resolve()
    parts = PurePosixPath(normalize_key(key)).parts
    candidate = root.joinpath(*parts).resolve()
    if candidate != root and root not in candidate.parents:
        raise ValueError(f"Local storage key resolves outside root: {key}")
    return str(candidate)


def key_for_local_file(local_root: str, path: str) -> str:
    """Storage key of a file that already lives under ``local_root``."""
    root = Path(local_root).resolve()
    resolved = Path(path).resolve()
    if root not in resolved.parents:
        raise ValueError(f"'{path}' is not a file under '{local_root}'")
    return resolved.relative_to(root).as_posix()
