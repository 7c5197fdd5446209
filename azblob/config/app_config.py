"""
Storage configuration read from the environment.
"""

import os
import tempfile

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _clean(value):
    # Strip inline comments and whitespace, as in "value  # comment"
    if value is None:
        return None
    value = value.split('#')[0].strip() if ' #' in value else value.strip()
    return value or None


FILE_STORAGE_BACKEND = os.environ.get('FILE_STORAGE_BACKEND', 'local')
UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'uploads')
FILE_STORAGE_KEY_PREFIX = os.environ.get('FILE_STORAGE_KEY_PREFIX', 'files')
FILE_STORAGE_STAGING_DIR = os.environ.get('FILE_STORAGE_STAGING_DIR', os.path.join(tempfile.gettempdir(), 'azblob-staging'))
FILE_STORAGE_LOCAL_URL = _clean(os.environ.get('FILE_STORAGE_LOCAL_URL'))

AZURE_STORAGE_CONNECTION_STRING = _clean(os.environ.get('AZURE_STORAGE_CONNECTION_STRING'))
AZURE_STORAGE_ACCOUNT = _clean(os.environ.get('AZURE_STORAGE_ACCOUNT'))
AZURE_STORAGE_KEY = _clean(os.environ.get('AZURE_STORAGE_KEY'))
AZURE_STORAGE_SAS_TOKEN = _clean(os.environ.get('AZURE_STORAGE_SAS_TOKEN'))
AZURE_STORAGE_ENDPOINT = _clean(os.environ.get('AZURE_STORAGE_ENDPOINT'))
AZURE_STORAGE_CONTAINER = _clean(os.environ.get('AZURE_STORAGE_CONTAINER'))
AZURE_STORAGE_URL = _clean(os.environ.get('AZURE_STORAGE_URL'))
AZURE_STORAGE_PREFIX = os.environ.get('AZURE_STORAGE_PREFIX', '')
AZURE_STORAGE_VISIBILITY = os.environ.get('AZURE_STORAGE_VISIBILITY', 'ignore').strip().lower()

_retry_total = _clean(os.environ.get('AZURE_STORAGE_RETRY_TOTAL'))
AZURE_STORAGE_RETRY_TOTAL = int(_retry_total) if _retry_total else None

AZURE_SAS_TTL_SECONDS = int(os.environ.get('AZURE_SAS_TTL_SECONDS', '3600'))
AZURE_SAS_PUBLIC_TTL_SECONDS = int(os.environ.get('AZURE_SAS_PUBLIC_TTL_SECONDS', '86400'))
