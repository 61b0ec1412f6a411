"""
NAS Scholarship Management Platform
Scholarship application, review and evaluation backend.

Architecture:
- PostgreSQL: Identity data (users, roles, permissions, departments, courses)
- MongoDB: Application documents (forms, uploads, tests, interviews, logs)
"""

__version__ = "1.0.0"
