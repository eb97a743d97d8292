from vendorvault.extensions import db
from vendorvault.utils.helpers import utcnow
from datetime import datetime
from decimal import Decimal
from enum import Enum
import uuid


class BaseModel(db.Model):
    """UUID primary key plus created/updated timestamps"""

    __abstract__ = True

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def to_dict(self):
        """Columns as JSON-ready values: ISO dates, money as float, enums by value"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, Decimal):
                result[column.name] = float(value)
            elif isinstance(value, Enum):
                result[column.name] = value.value
            else:
                result[column.name] = value
        return result


class SoftDeleteMixin:
    """Deactivated accounts and delisted products keep their rows for order history"""

    deleted_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_deleted(self):
        return self.deleted_at is not None
