"""Barber model - a professional who takes appointments for one tenant."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, String, Boolean, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntegerPK


class Barber(Base):
    """Barber (barbeiro)."""

    __tablename__ = 'barber'
    __table_args__ = (
        CheckConstraint('slot_minutes > 0', name='ck_barber_slot_minutes_positive'),
        CheckConstraint('commission_percent >= 0 AND commission_percent <= 100', name='ck_barber_commission_percent'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(BigInteger, ForeignKey('app_user.id', ondelete='SET NULL'), nullable=True, unique=True)
    name = Column(String(200), nullable=False)
    phone = Column(String(50), nullable=True)
    specialty = Column(String(200), nullable=True)
    slot_minutes = Column(Integer, nullable=False, default=30)  # Slot granularity
    commission_percent = Column(Numeric(5, 2), nullable=True)  # NULL = tenant default
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship('Tenant', back_populates='barbers')
    user = relationship('AppUser', back_populates='barber')
    working_hours = relationship(
        'WorkingHours',
        back_populates='barber',
        cascade='all, delete-orphan',
        order_by='WorkingHours.weekday'
    )
    overrides = relationship('AvailabilityOverride', back_populates='barber', cascade='all, delete-orphan')

    def hours_for_weekday(self, weekday: int):
        """Return the WorkingHours template entry for a weekday (0=Monday) or None."""
        for entry in self.working_hours:
            if entry.weekday == weekday:
                return entry
        return None

    def to_dict(self, include_schedule=False):
        data = {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'specialty': self.specialty,
            'slot_minutes': self.slot_minutes,
            'commission_percent': (
                str(Decimal(self.commission_percent).quantize(Decimal('0.01')))
                if self.commission_percent is not None else None
            ),
            'active': self.active,
        }
        if include_schedule:
            data['working_hours'] = [entry.to_dict() for entry in self.working_hours]
        return data

    def __repr__(self):
        return f"<Barber(id={self.id}, tenant_id={self.tenant_id}, name='{self.name}')>"
