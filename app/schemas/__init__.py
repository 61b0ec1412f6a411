"""
Schemas module - Request/Response schemas for API endpoints.

Difference from stored documents:
- Stored documents: snake_case dicts in MongoDB / rows in PostgreSQL
- Schemas: API contract (what client sends/receives)

All schemas live in app.schemas.schemas:
- Request schemas (ApplicationCreate, InterviewCreate, EvaluationCreate, ...)
- Response schemas (ApplicationResponse, DocumentSetResponse, ...)
"""
