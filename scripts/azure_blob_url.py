#!/usr/bin/env python3
"""Print the public or signed URL of a blob in the configured Azure container."""

from __future__ import annotations

import argparse
import os
import sys
from datetime import timedelta

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from azblob.services.storage import SasOptions, StorageError, get_storage_service, parse_locator  # noqa: E402


def parse_args():
    p = argparse.ArgumentParser(description='Print the URL of a blob (public, or signed with --ttl-seconds)')
    p.add_argument('key', help='Blob path relative to AZURE_STORAGE_PREFIX')
    p.add_argument('--ttl-seconds', type=int, default=None, help='Generate a SAS URL valid for this many seconds')
    p.add_argument('--permissions', type=str, default='r', help='SAS permission code, e.g. r, rw, rcw')
    p.add_argument('--ip', type=str, default='', help='Restrict the SAS URL to an IP or IP range')
    p.add_argument('--download-name', type=str, default=None, help='Serve as attachment with this filename')
    p.add_argument('--content-type', type=str, default='', help='Override Content-Type on download')
    return p.parse_args()


def main():
    args = parse_args()
    storage = get_storage_service()
    if not storage.azure:
        print('ERROR: AZURE_STORAGE_CONTAINER is not configured', file=sys.stderr)
        return 2

    try:
        if args.ttl_seconds is None:
            print(storage.azure.public_url(parse_locator(storage.azure.build_locator(args.key))))
            return 0

        disposition = ''
        if args.download_name:
            disposition = 'attachment; filename="{}"'.format(args.download_name.replace('"', ''))
        options = SasOptions(
            signed_permissions=args.permissions,
            signed_ip=args.ip,
            content_disposition=disposition,
            content_type=args.content_type,
        )
        print(storage.azure.get_temporary_url(args.key, timedelta(seconds=args.ttl_seconds), options))
    except StorageError as exc:
        print(f'ERROR: {exc}', file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
