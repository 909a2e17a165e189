import enum

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship, validates

from models.base_model import Base, BaseModel


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Tenant(BaseModel, Base):
    __tablename__ = "tenants"

    name = Column(String(100), nullable=False)
    slug = Column(String(50), nullable=False, unique=True, index=True)
    status = Column(String(20), nullable=False, default=TenantStatus.ACTIVE.value)

    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan", passive_deletes=True)

    @validates("slug")
    def _slug_is_immutable(self, key, value):
        if self.slug is not None and value != self.slug:
            raise ValueError("Tenant slug cannot be changed")
        return value

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value
