from taskboard.models.user import User
from taskboard.models.refresh_token import RefreshToken
from taskboard.models.audit_log import AuditLog

__all__ = ["User", "RefreshToken", "AuditLog"]
