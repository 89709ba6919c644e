"""
Barber and schedule management for a tenant: barber profiles, weekly
working hours, per-date overrides and the service catalog.
"""

import logging
from datetime import date, time
from decimal import Decimal
from typing import List, Optional

from app.exceptions import BusinessLogicError, NotFoundError
from app.models import AvailabilityOverride, Barber, Service, WorkingHours
from app.services.availability_service import CLAIM_UNIT_MINUTES

logger = logging.getLogger(__name__)


def _check_on_claim_grid(*values: Optional[time]) -> None:
    """Schedule times must fall on whole claim units (every 5 minutes)."""
    for value in values:
        if value is not None and (value.minute % CLAIM_UNIT_MINUTES or value.second or value.microsecond):
            raise BusinessLogicError(
                f'Use horários em múltiplos de {CLAIM_UNIT_MINUTES} minutos ({value.strftime("%H:%M")}).'
            )


def list_barbers(session, tenant_id: int, only_active: bool = True) -> List[Barber]:
    query = session.query(Barber).filter(Barber.tenant_id == tenant_id)
    if only_active:
        query = query.filter(Barber.active.is_(True))
    return query.order_by(Barber.name).all()


def get_tenant_barber(session, tenant_id: int, barber_id: int) -> Barber:
    """Tenant-scoped barber lookup (active or not)."""
    barber = session.query(Barber).filter(
        Barber.id == barber_id,
        Barber.tenant_id == tenant_id
    ).first()
    if barber is None:
        raise NotFoundError('Barbeiro não encontrado.')
    return barber


def create_barber(session, tenant_id: int, name: str, phone: Optional[str] = None,
                  specialty: Optional[str] = None, slot_minutes: int = 30,
                  commission_percent: Optional[Decimal] = None) -> Barber:
    """Create a barber profile without a login account."""
    if slot_minutes <= 0 or slot_minutes % CLAIM_UNIT_MINUTES:
        raise BusinessLogicError(f'A duração do horário deve ser múltipla de {CLAIM_UNIT_MINUTES} minutos.')
    barber = Barber(
        tenant_id=tenant_id,
        name=name.strip(),
        phone=phone or None,
        specialty=specialty or None,
        slot_minutes=slot_minutes,
        commission_percent=commission_percent,
        active=True
    )
    session.add(barber)
    session.flush()
    logger.info(f"Created barber {barber.id} for tenant {tenant_id}")
    return barber


def set_working_hours(session, barber: Barber, weekday: int, start_time: time, end_time: time,
                      break_start: Optional[time] = None, break_end: Optional[time] = None) -> WorkingHours:
    """Create or replace the template entry of one weekday."""
    if start_time >= end_time:
        raise BusinessLogicError('O fim do expediente deve ser depois do início.')
    _check_on_claim_grid(start_time, end_time, break_start, break_end)

    entry = barber.hours_for_weekday(weekday)
    if entry is None:
        entry = WorkingHours(barber_id=barber.id, weekday=weekday)
        barber.working_hours.append(entry)

    entry.start_time = start_time
    entry.end_time = end_time
    entry.break_start = break_start
    entry.break_end = break_end
    session.flush()

    logger.info(f"Working hours of barber {barber.id} for weekday {weekday}: {start_time}-{end_time}")
    return entry


def clear_working_hours(session, barber: Barber, weekday: int) -> None:
    """Remove a weekday from the template (the barber stops working that day)."""
    entry = barber.hours_for_weekday(weekday)
    if entry is not None:
        barber.working_hours.remove(entry)
        session.flush()
        logger.info(f"Barber {barber.id} no longer works on weekday {weekday}")


def set_override(session, barber: Barber, day: date, available: bool,
                 start_time: Optional[time] = None, end_time: Optional[time] = None) -> AvailabilityOverride:
    """Upsert the override of a date (day off, or custom hours when available)."""
    if available:
        _check_on_claim_grid(start_time, end_time)
    override = session.query(AvailabilityOverride).filter(
        AvailabilityOverride.barber_id == barber.id,
        AvailabilityOverride.date == day
    ).first()
    if override is None:
        override = AvailabilityOverride(barber_id=barber.id, date=day)
        session.add(override)

    override.available = available
    override.start_time = start_time if available else None
    override.end_time = end_time if available else None
    session.flush()

    logger.info(f"Override for barber {barber.id} on {day}: available={available}")
    return override


def list_overrides(session, barber: Barber, start: date, end: date) -> List[AvailabilityOverride]:
    return session.query(AvailabilityOverride).filter(
        AvailabilityOverride.barber_id == barber.id,
        AvailabilityOverride.date >= start,
        AvailabilityOverride.date <= end
    ).order_by(AvailabilityOverride.date).all()


def list_services(session, tenant_id: int) -> List[Service]:
    return session.query(Service).filter(
        Service.tenant_id == tenant_id,
        Service.active.is_(True)
    ).order_by(Service.name).all()


def create_service(session, tenant_id: int, name: str, price: Decimal, duration_minutes: int) -> Service:
    service = Service(
        tenant_id=tenant_id,
        name=name.strip(),
        price=price,
        duration_minutes=duration_minutes,
        active=True
    )
    session.add(service)
    session.flush()
    logger.info(f"Created service {service.id} ({name}) for tenant {tenant_id}")
    return service
