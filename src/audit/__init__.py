"""
Audit trail for statement imports.

Importing this package configures structlog for the whole application.
"""

from src.audit.logger import AuditLogger, create_correlation_id

__all__ = ["AuditLogger", "create_correlation_id"]
