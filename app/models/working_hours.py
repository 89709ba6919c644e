"""WorkingHours model - a barber's weekly template."""
from sqlalchemy import Column, BigInteger, Integer, Time, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base, BigIntegerPK
from app.utils.formatters import format_time


class WorkingHours(Base):
    """Open/close times for one weekday, with an optional break window."""

    __tablename__ = 'working_hours'
    __table_args__ = (
        UniqueConstraint('barber_id', 'weekday', name='uq_working_hours_barber_weekday'),
        CheckConstraint('weekday >= 0 AND weekday <= 6', name='ck_working_hours_weekday'),
        CheckConstraint('start_time < end_time', name='ck_working_hours_window'),
        CheckConstraint(
            'break_start IS NULL OR (break_end IS NOT NULL AND break_start < break_end '
            'AND break_start >= start_time AND break_end <= end_time)',
            name='ck_working_hours_break_inside_window'
        ),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    barber_id = Column(BigInteger, ForeignKey('barber.id', ondelete='CASCADE'), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Monday ... 6=Sunday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    break_start = Column(Time, nullable=True)
    break_end = Column(Time, nullable=True)

    barber = relationship('Barber', back_populates='working_hours')

    def to_dict(self):
        return {
            'weekday': self.weekday,
            'start_time': format_time(self.start_time),
            'end_time': format_time(self.end_time),
            'break_start': format_time(self.break_start),
            'break_end': format_time(self.break_end),
        }

    def __repr__(self):
        return f"<WorkingHours(barber_id={self.barber_id}, weekday={self.weekday}, {self.start_time}-{self.end_time})>"
