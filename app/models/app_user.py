"""AppUser model - platform users (admins, barbershop owners and barbers)."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from app.database import Base, BigIntegerPK


class UserRole(enum.Enum):
    """Platform roles."""
    ADMIN = 'ADMIN'
    BARBEARIA = 'BARBEARIA'
    BARBEIRO = 'BARBEIRO'


TENANT_SCOPED_ROLES = frozenset({UserRole.BARBEARIA, UserRole.BARBEIRO})


class AppUser(Base):
    """AppUser model - email/password principals with a single role."""

    __tablename__ = 'app_user'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.BARBEARIA.value)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=True)  # NULL only for ADMIN
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant', back_populates='users')
    barber = relationship('Barber', back_populates='user', uselist=False)

    @property
    def user_role(self):
        return UserRole(self.role)

    def set_password(self, password):
        """Set password hash."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        """Check password against hash."""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def is_tenant_scoped(self):
        return self.user_role in TENANT_SCOPED_ROLES

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'role': self.role,
            'tenant_id': self.tenant_id,
        }

    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}', role='{self.role}')>"
