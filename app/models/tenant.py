"""Tenant model - represents each barbershop (barbearia) using the platform."""
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntegerPK


class Tenant(Base):
    """Tenant model - each barbershop account."""

    __tablename__ = 'tenant'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # link_personalizado
    name = Column(String(200), nullable=False)  # Display name
    onboarding_complete = Column(Boolean, nullable=False, default=False)
    timezone = Column(String(64), nullable=False, default='America/Sao_Paulo')

    # Trial window (trial_expires_at NULL = no trial / paid plan)
    trial_started_at = Column(DateTime(timezone=True), nullable=True)
    trial_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Public profile
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    instagram_url = Column(String(255), nullable=True)
    whatsapp_url = Column(String(255), nullable=True)

    # Commission paid on completed services when the barber has no own rate
    default_commission_percent = Column(Numeric(5, 2), nullable=False, default=0)

    active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)  # Admin can suspend tenant access
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    users = relationship('AppUser', back_populates='tenant')
    barbers = relationship('Barber', back_populates='tenant')
    services = relationship('Service', back_populates='tenant')

    def trial_expired(self, now=None):
        """True when the trial window ended strictly before ``now``."""
        if self.trial_expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.trial_expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < now

    def to_dict(self):
        return {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'onboarding_complete': self.onboarding_complete,
            'trial_expires_at': self.trial_expires_at.isoformat() if self.trial_expires_at else None,
            'address': self.address,
            'phone': self.phone,
            'instagram_url': self.instagram_url,
            'whatsapp_url': self.whatsapp_url,
            'default_commission_percent': str(Decimal(self.default_commission_percent or 0).quantize(Decimal('0.01'))),
        }

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug='{self.slug}', name='{self.name}')>"
