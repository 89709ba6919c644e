"""Service model - what a client can book (haircut, beard, ...)."""
from sqlalchemy import Column, BigInteger, String, Numeric, Integer, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base, BigIntegerPK


class Service(Base):
    """Service (serviço) offered by a tenant."""

    __tablename__ = 'service'
    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='ck_service_duration_positive'),
        CheckConstraint('price >= 0', name='ck_service_price_non_negative'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False, default=30)
    active = Column(Boolean, nullable=False, default=True)

    tenant = relationship('Tenant', back_populates='services')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price),
            'duration_minutes': self.duration_minutes,
        }

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', duration={self.duration_minutes})>"
