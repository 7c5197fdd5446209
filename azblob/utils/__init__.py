"""
Utility functions package for azblob.

This package contains utility modules for:
- URL validation
- File checksums compatible with blob Content-MD5
"""

from .url import (
    is_absolute_url
)

from .file_hash import (
    compute_file_md5,
    md5_to_base64,
    base64_md5_to_hex
)

__all__ = [
    # URLs
    'is_absolute_url',
    # Hashing
    'compute_file_md5',
    'md5_to_base64',
    'base64_md5_to_hex',
]
