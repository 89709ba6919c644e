"""
Booking service: conflict-free reservation of slots and the appointment
lifecycle (SCHEDULED -> COMPLETED | CANCELLED).

Every appointment claims the fixed 5 minute units it covers in
appointment_slot. The unique constraint on (barber, date, unit) makes any
two overlapping reservations collide, so several stateless app instances
can book concurrently without an application lock.
"""

import logging
import math
from datetime import date, datetime, time
from typing import List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError

from app.exceptions import BusinessLogicError, ConflictError, InvalidSlotError, NotFoundError
from app.models import Appointment, AppointmentSlot, AppointmentStatus, Barber, Client, Service, Tenant
from app.services.availability_service import (
    booked_intervals,
    claim_units,
    compute_available_slots,
    ensure_not_past,
    generate_slot_grid,
    get_barber,
    overlaps,
    tenant_now,
    working_window,
)
from app.services.client_service import find_client_by_phone, find_or_create_client
from app.utils.formatters import format_time, minutes_of, parse_time, time_from_minutes

logger = logging.getLogger(__name__)


def _parse_start(value: Union[time, str]) -> time:
    try:
        start = parse_time(value)
    except ValueError:
        raise InvalidSlotError(f"Horário inválido: {value}")
    if start is None:
        raise InvalidSlotError('Informe o horário.')
    return start


def duration_units_for(service: Optional[Service], granularity: int) -> int:
    """Number of slot units a service occupies (at least one)."""
    if service is None:
        return 1
    return max(1, math.ceil(service.duration_minutes / granularity))


def _get_service(session, tenant_id: int, service_id: Optional[int]) -> Optional[Service]:
    if service_id is None:
        return None
    service = session.query(Service).filter(
        Service.id == service_id,
        Service.tenant_id == tenant_id,
        Service.active.is_(True)
    ).first()
    if service is None:
        raise NotFoundError('Serviço não encontrado.')
    return service


def validate_requested_slot(
    session,
    barber: Barber,
    day: date,
    start: time,
    units: int,
    now: Optional[datetime] = None,
    required_minutes: int = 0
) -> Tuple[int, int]:
    """
    Re-check a requested start against the barber's schedule.

    A stale client-side slot list must not get past this: the start has to
    sit on the slot grid, inside working hours and outside the break, and
    every unit of a multi-slot service must be a valid slot that follows the
    previous one without a gap. A unit shortened by the break or the end of
    the day can only be the last one, and the span must still fit
    ``required_minutes``.

    Returns:
        (start, end) in minutes from midnight

    Raises:
        InvalidSlotError: date in the past, day off, misaligned or outside hours
    """
    local_now = ensure_not_past(barber.tenant, day, now)

    window = working_window(session, barber, day)
    if window is None:
        raise InvalidSlotError('O barbeiro não atende nesta data.')

    if start.second or start.microsecond:
        raise InvalidSlotError('Horário fora da grade de atendimento.')

    grid = dict(generate_slot_grid(window, barber.slot_minutes))
    first = minutes_of(start)
    cursor = first
    for _ in range(units):
        if cursor not in grid:
            raise InvalidSlotError(
                'Horário fora do expediente ou da grade de atendimento.',
                payload={'time': format_time(start)}
            )
        cursor = grid[cursor]

    if cursor - first < required_minutes:
        raise InvalidSlotError(
            'O serviço não cabe neste horário.',
            payload={'time': format_time(start)}
        )

    if day == local_now.date() and first <= minutes_of(local_now.time()):
        raise InvalidSlotError('Este horário já passou.')

    return first, cursor


def reserve_slot(
    session,
    barber_id: int,
    day: date,
    start: Union[time, str],
    client_name: str,
    client_phone: str,
    service_id: Optional[int] = None,
    now: Optional[datetime] = None,
    tenant_id: Optional[int] = None
) -> Appointment:
    """
    Reserve a slot for a client.

    Exactly one of several concurrent callers for the same
    (barber, date, time) succeeds; the others get ConflictError. The caller
    owns the outer transaction and must commit.

    Args:
        session: Database session
        barber_id: Barber ID
        day: Appointment date
        start: Start time ("HH:MM" or time)
        client_name: Client name (used when the phone is new)
        client_phone: Client phone, the dedup key
        service_id: Optional service; its duration decides the number of units
        now: Injectable current instant
        tenant_id: Restrict the barber lookup to this tenant

    Returns:
        Appointment: the SCHEDULED appointment, flushed

    Raises:
        NotFoundError: unknown barber or service
        InvalidSlotError: requested time outside policy
        ConflictError: slot already taken
    """
    barber = get_barber(session, barber_id, tenant_id)
    start = _parse_start(start)

    service = _get_service(session, barber.tenant_id, service_id)
    units = duration_units_for(service, barber.slot_minutes)
    first, end_minutes = validate_requested_slot(
        session, barber, day, start, units, now,
        required_minutes=service.duration_minutes if service else 0
    )

    client = find_or_create_client(session, barber.tenant_id, client_phone, client_name)

    # Fast path: fail without touching the constraint when visibly taken
    if any(overlaps(first, end_minutes, b_start, b_end)
           for b_start, b_end in booked_intervals(session, barber.id, day)):
        logger.warning(f"Slot {day} {format_time(start)} overlaps a booking of barber {barber.id}")
        raise ConflictError()

    claims = [time_from_minutes(minute) for minute in claim_units(first, end_minutes)]
    taken = session.query(AppointmentSlot.id).filter(
        AppointmentSlot.barber_id == barber.id,
        AppointmentSlot.date == day,
        AppointmentSlot.slot_time.in_(claims)
    ).first()
    if taken:
        logger.warning(f"Slot {day} {format_time(start)} already taken for barber {barber.id}")
        raise ConflictError()

    try:
        with session.begin_nested():
            appointment = Appointment(
                tenant_id=barber.tenant_id,
                barber_id=barber.id,
                client_id=client.id,
                service_id=service.id if service else None,
                date=day,
                start_time=start,
                end_time=time_from_minutes(end_minutes),
                duration_units=units,
                status=AppointmentStatus.SCHEDULED.value
            )
            appointment.slots = [
                AppointmentSlot(barber_id=barber.id, date=day, slot_time=claim)
                for claim in claims
            ]
            session.add(appointment)
    except IntegrityError:
        logger.warning(f"Lost race for slot {day} {format_time(start)} of barber {barber.id}")
        raise ConflictError()

    logger.info(
        f"Appointment {appointment.id} reserved: barber {barber.id}, "
        f"{day} {format_time(start)} ({units} unit(s)), client {client.id}"
    )
    return appointment


def book_appointment(session, barber_id: int, day: date, start: Union[time, str], client_name: str,
                     client_phone: str, service_id: Optional[int] = None, now: Optional[datetime] = None,
                     tenant_id: Optional[int] = None) -> Appointment:
    """
    Reserve a slot, retrying once against fresh availability on conflict.

    The retry only happens when the re-fetched availability shows the slot
    FREE again. Otherwise the ConflictError carries the free slots so the
    client can pick another one.
    """
    kwargs = dict(
        client_name=client_name,
        client_phone=client_phone,
        service_id=service_id,
        now=now,
        tenant_id=tenant_id
    )
    start = _parse_start(start)

    try:
        return reserve_slot(session, barber_id, day, start, **kwargs)
    except ConflictError:
        slots = compute_available_slots(session, barber_id, day, now=now, tenant_id=tenant_id)
        if any(slot.start == start and slot.is_free for slot in slots):
            logger.info(f"Retrying reservation of {day} {format_time(start)} for barber {barber_id}")
            try:
                return reserve_slot(session, barber_id, day, start, **kwargs)
            except ConflictError:
                slots = compute_available_slots(session, barber_id, day, now=now, tenant_id=tenant_id)

        raise ConflictError(payload={
            'available_slots': [slot.to_dict() for slot in slots if slot.is_free]
        })


def get_appointment(session, tenant_id: int, appointment_id: int) -> Appointment:
    """Tenant-scoped appointment lookup."""
    appointment = session.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.tenant_id == tenant_id
    ).first()
    if appointment is None:
        raise NotFoundError('Agendamento não encontrado.')
    return appointment


def cancel_appointment(session, appointment: Appointment) -> Appointment:
    """SCHEDULED -> CANCELLED. Releases the slot claims."""
    if appointment.status != AppointmentStatus.SCHEDULED.value:
        raise BusinessLogicError(f'Não é possível cancelar um agendamento com status {appointment.status}.')

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.slots.clear()
    session.flush()

    logger.info(f"Appointment {appointment.id} cancelled, slots released")
    return appointment


def complete_appointment(session, appointment: Appointment) -> Appointment:
    """SCHEDULED -> COMPLETED."""
    if appointment.status != AppointmentStatus.SCHEDULED.value:
        raise BusinessLogicError(f'Não é possível concluir um agendamento com status {appointment.status}.')

    appointment.status = AppointmentStatus.COMPLETED.value
    session.flush()

    logger.info(f"Appointment {appointment.id} completed")
    return appointment


def update_appointment_status(session, appointment: Appointment, status: str) -> Appointment:
    """Apply a dashboard status change."""
    try:
        target = AppointmentStatus(status)
    except ValueError:
        raise BusinessLogicError(f'Status inválido: {status}')

    if target == AppointmentStatus.CANCELLED:
        return cancel_appointment(session, appointment)
    if target == AppointmentStatus.COMPLETED:
        return complete_appointment(session, appointment)
    raise BusinessLogicError('Um agendamento não pode voltar para SCHEDULED.')


def upcoming_for_phone(session, tenant: Tenant, phone: str, now: Optional[datetime] = None) -> List[Appointment]:
    """Scheduled appointments from today on for the client with this phone."""
    client = find_client_by_phone(session, tenant.id, phone)
    if client is None:
        return []

    today = tenant_now(tenant, now).date()

    return session.query(Appointment).filter(
        Appointment.tenant_id == tenant.id,
        Appointment.client_id == client.id,
        Appointment.status == AppointmentStatus.SCHEDULED.value,
        Appointment.date >= today
    ).order_by(Appointment.date, Appointment.start_time).all()


def client_history(session, tenant: Tenant, phone: str) -> Tuple[Optional[Client], List[Appointment]]:
    """
    Every appointment of the client owning a phone, newest first.

    Past, completed and cancelled appointments are included. Returns
    (None, []) when the phone is unknown to this tenant.
    """
    client = find_client_by_phone(session, tenant.id, phone)
    if client is None:
        return None, []

    appointments = session.query(Appointment).filter(
        Appointment.tenant_id == tenant.id,
        Appointment.client_id == client.id
    ).order_by(Appointment.date.desc(), Appointment.start_time.desc()).all()
    return client, appointments


def cancel_by_client(session, tenant: Tenant, appointment_id: int, phone: str,
                     now: Optional[datetime] = None) -> Appointment:
    """
    Let a client cancel their own appointment from the public page.

    The phone must match the appointment's client; a mismatch is reported as
    not found so appointment ids cannot be probed.
    """
    appointment = get_appointment(session, tenant.id, appointment_id)
    client: Client = appointment.client
    if client is None or find_client_by_phone(session, tenant.id, phone) is not client:
        raise NotFoundError('Agendamento não encontrado.')

    local_now = tenant_now(tenant, now)
    starts_at = datetime.combine(appointment.date, appointment.start_time, tzinfo=local_now.tzinfo)
    if starts_at <= local_now:
        raise BusinessLogicError('Não é possível cancelar um agendamento que já começou.')

    return cancel_appointment(session, appointment)
