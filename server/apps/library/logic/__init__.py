"""Business logic layer for library app.

Folder hierarchy, file and version management and the ingestion
pipeline. Operations take plain IDs for caller identity and raise
``LibraryError`` subclasses on failure.
"""
