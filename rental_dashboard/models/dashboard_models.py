from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from db.base import Base


class NegotiationAudit(Base):
    __tablename__ = "NegotiationAudits"

    AuditID = Column(Integer, primary_key=True, autoincrement=True)
    NegotiationID = Column(String(64), nullable=False, index=True)
    Action = Column(String(50), nullable=False)
    Phase = Column(String(20), nullable=False)
    Status = Column(String(30))
    Details = Column(String)
    CreatedAt = Column(DateTime, server_default=func.now())
