"""File hashing utilities for checksum comparison against blob storage."""

import base64
import binascii
import hashlib


def compute_chunks_md5(chunks):
    """MD5 digest (raw bytes) of an iterable of byte chunks, e.g. ``StorageStreamDownloader.chunks()``."""
    md5 = hashlib.md5()
    for chunk in chunks:
        md5.update(chunk)
    return md5.digest()


def compute_file_md5(filepath, chunk_size=8192):
    """
    Compute MD5 digest of a file, reading in chunks to handle large files.

    Azure reports Content-MD5 as the base64 encoding of the raw digest, so the
    raw bytes are returned and callers encode as needed.

    Args:
        filepath: Path to the file to hash
        chunk_size: Size of chunks to read at a time (default 8KB)

    Returns:
        16-byte digest
    """
    with open(filepath, 'rb') as f:
        return compute_chunks_md5(iter(lambda: f.read(chunk_size), b''))


def md5_to_base64(digest):
    """Encode a raw MD5 digest the way Content-MD5 headers carry it."""
    if not digest:
        return None
    return base64.b64encode(bytes(digest)).decode('ascii')


def base64_md5_to_hex(value):
    """Convert a base64 Content-MD5 value to a hex digest, or None if unusable."""
    if not value:
        return None
    try:
        return base64.b64decode(value, validate=True).hex()
    except (binascii.Error, ValueError):
        return None
