"""AvailabilityOverride model - per-date exceptions to a barber's weekly template."""
from sqlalchemy import Column, BigInteger, Boolean, Date, Time, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base, BigIntegerPK
from app.utils.formatters import format_time


class AvailabilityOverride(Base):
    """
    Day off (available=False) or custom hours for a single date.

    When present it replaces the weekday template for that date.
    """

    __tablename__ = 'availability_override'
    __table_args__ = (
        UniqueConstraint('barber_id', 'date', name='uq_availability_override_barber_date'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    barber_id = Column(BigInteger, ForeignKey('barber.id', ondelete='CASCADE'), nullable=False)
    date = Column(Date, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    barber = relationship('Barber', back_populates='overrides')

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'available': self.available,
            'start_time': format_time(self.start_time),
            'end_time': format_time(self.end_time),
        }
