from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import func

from taskboard.core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(36), index=True)
    action = Column(String(120), nullable=False)
    status = Column(String(20), nullable=False)
    message = Column(String(255))
    details = Column(JSON, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
