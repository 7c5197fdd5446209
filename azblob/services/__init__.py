"""
Service layer for file storage.
"""
