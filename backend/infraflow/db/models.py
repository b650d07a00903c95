from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class DiagramRecord(Base):
    """A diagram at rest. nodes_json/edges_json are UI layout data, stored as given."""

    __tablename__ = "diagrams"

    id = Column(String(64), primary_key=True)
    owner = Column(String(128))
    spec = Column(JSON, nullable=False)
    nodes_json = Column(JSON)
    edges_json = Column(JSON)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UsageLog(Base):
    """Append-only; read by the analytics layer."""

    __tablename__ = "usage_logs"

    id = Column(Integer, primary_key=True)
    caller = Column(String(128))
    endpoint = Column(String(64))
    prompt = Column(Text)
    command_type = Column(String(32))
    success = Column(Boolean, default=False)
    used_llm = Column(Boolean, default=False)
    fallback_reason = Column(String(64))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
