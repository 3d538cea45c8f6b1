"""Infrastructure layer for library app.

This package contains integrations with external systems:
- Local filesystem blob store with storage root enforcement
- Filename sanitation, storage key generation and MIME checks

Keep infrastructure concerns separate from business logic.
"""
