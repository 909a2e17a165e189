import enum

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from models.base_model import Base, BaseModel
from utils.roles import Role


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class User(BaseModel, Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    avatar_url = Column(String(500), nullable=True)
    role = Column(String(20), nullable=False, default=Role.USER.value)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    tenant = relationship("Tenant", back_populates="users")
    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @validates("tenant_id")
    def _tenant_is_immutable(self, key, value):
        if self.tenant_id is not None and value != self.tenant_id:
            raise ValueError("A user cannot move between tenants")
        return value

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value
