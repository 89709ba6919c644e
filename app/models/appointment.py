"""Appointment and slot-claim models."""
import enum
from sqlalchemy import Column, BigInteger, String, Integer, Date, Time, DateTime, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.database import Base, BigIntegerPK
from app.utils.formatters import format_time


class AppointmentStatus(str, enum.Enum):
    """Appointment lifecycle: SCHEDULED -> COMPLETED | CANCELLED."""
    SCHEDULED = 'SCHEDULED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class Appointment(Base):
    """Appointment (agendamento) of one client with one barber."""

    __tablename__ = 'appointment'
    __table_args__ = (
        Index('ix_appointment_barber_date', 'barber_id', 'date'),
        Index('ix_appointment_tenant_date', 'tenant_id', 'date'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False)
    barber_id = Column(BigInteger, ForeignKey('barber.id', ondelete='CASCADE'), nullable=False)
    client_id = Column(BigInteger, ForeignKey('client.id'), nullable=False)
    service_id = Column(BigInteger, ForeignKey('service.id', ondelete='SET NULL'), nullable=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_units = Column(Integer, nullable=False, default=1)
    status = Column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    barber = relationship('Barber')
    client = relationship('Client', back_populates='appointments')
    service = relationship('Service')
    slots = relationship('AppointmentSlot', back_populates='appointment', cascade='all, delete-orphan')

    @property
    def is_active(self):
        return self.status != AppointmentStatus.CANCELLED.value

    def to_dict(self):
        return {
            'id': self.id,
            'barber_id': self.barber_id,
            'barber_name': self.barber.name if self.barber else None,
            'client': self.client.to_dict() if self.client else None,
            'service': self.service.to_dict() if self.service else None,
            'date': self.date.isoformat(),
            'start_time': format_time(self.start_time),
            'end_time': format_time(self.end_time),
            'duration_units': self.duration_units,
            'status': self.status,
        }

    def __repr__(self):
        return f"<Appointment(id={self.id}, barber_id={self.barber_id}, {self.date} {self.start_time}, status='{self.status}')>"


class AppointmentSlot(Base):
    """
    One claimed slot unit of a non-cancelled appointment.

    The unique constraint on (barber_id, date, slot_time) is what serializes
    concurrent reservations: the losing INSERT fails with IntegrityError.
    Claims are deleted when their appointment is cancelled.
    """

    __tablename__ = 'appointment_slot'
    __table_args__ = (
        UniqueConstraint('barber_id', 'date', 'slot_time', name='uq_appointment_slot_barber_date_time'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    appointment_id = Column(BigInteger, ForeignKey('appointment.id', ondelete='CASCADE'), nullable=False)
    barber_id = Column(BigInteger, ForeignKey('barber.id', ondelete='CASCADE'), nullable=False)
    date = Column(Date, nullable=False)
    slot_time = Column(Time, nullable=False)

    appointment = relationship('Appointment', back_populates='slots')
