"""
Schemas module - Request/Response schemas for API endpoints.

Difference from stored documents:
- Documents: snake_case dicts in MongoDB
- Schemas: API contract (camelCase on the wire)

Import from app.schemas.schemas directly.
"""
