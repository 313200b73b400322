# backend/toolforge/models/tool.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from toolforge.models.base import Base
from toolforge.schemas.tool import FieldType

FIELD_TYPES = ", ".join(f"'{field_type.value}'" for field_type in FieldType)


class Tool(Base):
    __tablename__ = "tools"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    purpose = Column(Text, nullable=True)
    is_deployed = Column(Boolean, nullable=False, server_default=text("false"))
    # auth.users(id) in Supabase; not declared as a FK so the metadata stays self-contained.
    owner_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    fields = relationship("ToolField", back_populates="tool", cascade="all, delete-orphan", passive_deletes=True)
    records = relationship("ToolRecord", back_populates="tool", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Tool(id={self.id}, name='{self.name}')>"


class ToolField(Base):
    __tablename__ = "tool_fields"
    __table_args__ = (
        UniqueConstraint("tool_id", "name", name="uq_tool_fields_tool_id_name"),
        CheckConstraint(f"type IN ({FIELD_TYPES})", name="ck_tool_fields_type"),
        Index("ix_tool_fields_tool_id_position", "tool_id", "position"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    tool_id = Column(UUID(as_uuid=True), ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    required = Column(Boolean, nullable=False, server_default=text("false"))
    options = Column(ARRAY(Text), nullable=False, server_default=text("'{}'"))
    position = Column(Integer, nullable=False, server_default=text("0"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    tool = relationship("Tool", back_populates="fields")

    def __repr__(self):
        return f"<ToolField(tool_id={self.tool_id}, name='{self.name}', type='{self.type}')>"


class ToolRecord(Base):
    __tablename__ = "tool_records"

    id = Column(UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()"))
    tool_id = Column(UUID(as_uuid=True), ForeignKey("tools.id", ondelete="CASCADE"), nullable=False, index=True)
    data = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    tool = relationship("Tool", back_populates="records")

    def __repr__(self):
        return f"<ToolRecord(id={self.id}, tool_id={self.tool_id})>"
