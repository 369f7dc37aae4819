import enum
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import relationship

from claimdesk.core.database import Base
from claimdesk.models.organization import new_id


class Role(str, enum.Enum):
    INSPECTOR = "INSPECTOR"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value) -> "Role | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class User(Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    # bcrypt hash; NULL for accounts provisioned outside the credentials flow
    password = Column(String, nullable=True)
    role = Column(Enum(Role, name="user_role", native_enum=False), nullable=False, default=Role.INSPECTOR)
    is_owner = Column(Boolean, nullable=False, default=False)
    organization_id = Column(String(32), ForeignKey("organizations.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization = relationship("Organization", back_populates="users")
