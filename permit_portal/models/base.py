"""
Base Database Model for the Water Permit Portal
"""

from sqlalchemy import Column, DateTime, String, TypeDecorator
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr, declarative_base
from datetime import datetime, timezone
import enum
import re
import uuid

Base = declarative_base()


class BaseModel(Base):
    """Base model with common fields and functionality"""
    __abstract__ = True

    @declared_attr
    def __tablename__(cls):
        """Generate table name from class name"""
        name = re.sub('(.)([A-Z][a-z]+)', r'\1_\2', cls.__name__)
        return re.sub('([a-z0-9])([A-Z])', r'\1_\2', name).lower()

    # Primary key - using UUID for all records
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, unique=True, nullable=False)

    # Audit fields - who and when
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True, comment="Record creation timestamp")
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc), nullable=False, comment="Last update timestamp")
    created_by = Column(UUID(as_uuid=True), nullable=True, comment="User ID who created the record")
    updated_by = Column(UUID(as_uuid=True), nullable=True, comment="User ID who last updated the record")

    def __repr__(self):
        return f"<{self.__class__.__name__}(id={self.id})>"

    def to_dict(self):
        """Convert model to dictionary for JSON serialization"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, enum.Enum):
                value = value.value
            result[column.name] = value
        return result


class EnumValueType(TypeDecorator):
    """
    Stores enum values (not names) in a plain string column
    SQLAlchemy's Enum type persists member names, which breaks for values
    like 'expiring-soon' and for rows written by other clients of the store
    """
    impl = String
    cache_ok = True

    def __init__(self, enum_class, *args, **kwargs):
        self.enum_class = enum_class
        kwargs.setdefault("length", 50)
        super().__init__(*args, **kwargs)

    def process_bind_param(self, value, dialect):
        """Convert Python enum to database value"""
        if value is None:
            return value
        if isinstance(value, self.enum_class):
            return value.value
        try:
            return self.enum_class(value).value
        except ValueError:
            for enum_member in self.enum_class:
                if enum_member.name == value:
                    return enum_member.value
            raise ValueError(f"Invalid {self.enum_class.__name__} value: {value}")

    def process_result_value(self, value, dialect):
        """Convert database value back to Python enum"""
        if value is None:
            return value
        try:
            return self.enum_class(value)
        except ValueError:
            # Unknown value written by another client - keep the raw string
            return value
