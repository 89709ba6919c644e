"""Client model."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntegerPK


class Client(Base):
    """Client (cliente), identified by phone number within a tenant."""

    __tablename__ = 'client'
    __table_args__ = (
        UniqueConstraint('tenant_id', 'phone', name='uq_client_tenant_phone'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    phone = Column(String(30), nullable=False)  # Canonical form, see client_service.normalize_phone
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    tenant = relationship('Tenant')
    appointments = relationship('Appointment', back_populates='client')

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'phone': self.phone}

    def __repr__(self):
        return f"<Client(id={self.id}, tenant_id={self.tenant_id}, phone='{self.phone}')>"
