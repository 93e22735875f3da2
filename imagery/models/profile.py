import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, Uuid

from imagery.database import Base


class PlanTier(str, enum.Enum):
    NONE = "NONE"  # pay per use
    BASIC = "BASIC"
    PRO = "PRO"
    ELITE = "ELITE"


class UserRole(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


def utcnow():
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_profiles_credits_non_negative"),)

    # Same id as the auth provider's subject claim
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    credits = Column(Integer, nullable=False, default=0)
    plan = Column(String, nullable=False, default=PlanTier.NONE.value)
    role = Column(String, nullable=False, default=UserRole.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    has_used_free_preview = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(String, nullable=True, index=True)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.full_name,
            "credits": self.credits,
            "plan": self.plan,
            "role": self.role,
            "isActive": self.is_active,
            "hasUsedFreeGen": self.has_used_free_preview,
            "joinedAt": self.joined_at.isoformat() if self.joined_at else None,
        }
