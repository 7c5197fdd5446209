#!/usr/bin/env python3
"""Upload every file under UPLOAD_FOLDER to the Azure container, keeping its key.

Each file becomes ``azure://<container>/<key>`` where ``<key>`` is its path
relative to the upload root. Size is verified by default; ``--verify-checksum``
compares MD5 digests, hashing the downloaded blob when Azure stored no
Content-MD5 (chunked uploads of large files).
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from azblob.services.storage import MetadataUnavailable, get_storage_service, key_for_local_file  # noqa: E402
from azblob.utils.file_hash import compute_chunks_md5, compute_file_md5  # noqa: E402


def parse_args(argv=None):
    p = argparse.ArgumentParser(description='Copy files under UPLOAD_FOLDER from local:// to azure://')
    p.add_argument('--dry-run', action='store_true', help='Report what would be uploaded without uploading')
    p.add_argument('--limit', type=int, default=None, help='Stop after this many files')
    p.add_argument('--only-prefix', type=str, default=None, help='Only migrate keys starting with this prefix')
    p.add_argument('--no-verify-size', dest='verify_size', action='store_false',
                   help='Skip comparing the uploaded size with the local size')
    p.add_argument('--verify-checksum', action='store_true', help='Compare MD5 of the local file and the blob')
    p.add_argument('--delete-local-after-success', action='store_true')
    p.add_argument('--report-jsonl', type=str, default=None, help='Append one JSON line per file to this path')
    return p.parse_args(argv)


def iter_local_files(root):
    """Yield ``(key, path)`` for every file under ``root`` in a stable order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            path = os.path.join(dirpath, filename)
            yield key_for_local_file(root, path), path


def verify_checksum(azure, key, local_path):
    """Raise ``ValueError`` unless the blob's MD5 equals the local file's."""
    local_md5 = compute_file_md5(local_path).hex()
    try:
        remote_md5 = azure.checksum(key)
    except MetadataUnavailable:
        remote_md5 = compute_chunks_md5(azure.read_stream(key).chunks()).hex()
    if local_md5 != remote_md5:
        raise ValueError(f'checksum mismatch local={local_md5} azure={remote_md5}')


def migrate_file(storage, key, local_path, args):
    """Upload one file and verify it; returns the new locator."""
    local_size = os.path.getsize(local_path)
    stored = storage.upload_local_file(local_path, key)
    if args.verify_size and stored.size is not None and int(stored.size) != local_size:
        raise ValueError(f'size mismatch local={local_size} azure={stored.size}')
    if args.verify_checksum:
        verify_checksum(storage.azure, key, local_path)
    return stored.locator


def main(argv=None):
    args = parse_args(argv)
    storage = get_storage_service()

    if storage.default_backend_kind() != 'azure' or not storage.azure:
        print('ERROR: set FILE_STORAGE_BACKEND=azure and AZURE_STORAGE_CONTAINER to run this migration', file=sys.stderr)
        return 2

    stats = {'scanned': 0, 'migrated': 0, 'skipped_prefix': 0, 'errors': 0}
    report = open(args.report_jsonl, 'a', encoding='utf-8') if args.report_jsonl else None
    try:
        for key, local_path in iter_local_files(storage.settings.local_root):
            if args.limit and stats['scanned'] >= args.limit:
                break
            stats['scanned'] += 1
            if args.only_prefix and not key.startswith(args.only_prefix):
                stats['skipped_prefix'] += 1
                continue

            source = storage.local.build_locator(key)
            if args.dry_run:
                _report(report, key, 'dry_run', source, storage.build_default_locator(key))
                continue
            try:
                target = migrate_file(storage, key, local_path, args)
            except Exception as exc:
                stats['errors'] += 1
                _report(report, key, 'error', source, error=str(exc))
                continue

            stats['migrated'] += 1
            _report(report, key, 'migrated', source, target)
            if args.delete_local_after_success:
                try:
                    os.remove(local_path)
                except OSError as exc:
                    _report(report, key, 'warning_delete_local_failed', source, target, str(exc))
    finally:
        if report:
            report.close()

    print(json.dumps({'timestamp': datetime.now(timezone.utc).isoformat(), **stats}, indent=2))
    return 0 if stats['errors'] == 0 else 1


def _report(fp, key, action, old_locator, new_locator=None, error=None):
    if not fp:
        return
    row = {
        'ts': datetime.now(timezone.utc).isoformat(),
        'key': key,
        'action': action,
        'old_locator': old_locator,
        'new_locator': new_locator,
        'error': error,
    }
    fp.write(json.dumps(row, ensure_ascii=False) + '\n')
    fp.flush()


if __name__ == '__main__':
    raise SystemExit(main())
