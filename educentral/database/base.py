"""
SQLAlchemy Base Configuration

Declarative base and shared model helpers for the EduCentral schema.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

# Configure naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

metadata = MetaData(naming_convention=convention)

Base = declarative_base(metadata=metadata)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ModelBase(Base):
    """Base class for all SQLAlchemy models."""

    __abstract__ = True

    # Columns left out of to_dict(), e.g. password hashes
    __private_columns__: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert model instance to dictionary."""
        return {
            column.name: getattr(self, column.key)
            for column in self.__table__.columns
            if column.name not in self.__private_columns__
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Any:
        """Create model instance from dictionary, ignoring unknown keys."""
        return cls(**{
            k: v for k, v in data.items()
            if k in cls.__table__.columns
        })

    def update(self, data: Dict[str, Any]) -> None:
        """Update model instance from dictionary."""
        for key, value in data.items():
            if key in self.__table__.columns and key != "id":
                setattr(self, key, value)
