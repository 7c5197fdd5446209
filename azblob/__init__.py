"""Azure Blob Storage adapter for a generic file-storage contract."""

__version__ = '0.1.0'
