from app.models.product import Product
from app.models.audit_log import AuditLog

__all__ = ["Product", "AuditLog"]
