from models.tenant import Tenant, TenantStatus
from models.user import User, UserStatus
from models.refresh_token import RefreshToken

__all__ = ["Tenant", "TenantStatus", "User", "UserStatus", "RefreshToken"]
