"""
Availability service: turns a barber's working-hours template and the
appointments of a date into an ordered list of bookable slots.

The read path is side-effect free; reservations live in booking_service.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.exceptions import InvalidSlotError, NotFoundError
from app.models import Appointment, AppointmentStatus, AvailabilityOverride, Barber, Tenant
from app.utils.formatters import format_time, minutes_of, time_from_minutes

logger = logging.getLogger(__name__)

# Working hours, breaks and slot sizes are whole multiples of this
CLAIM_UNIT_MINUTES = 5


class SlotStatus(str, enum.Enum):
    FREE = 'FREE'
    BOOKED = 'BOOKED'


@dataclass(frozen=True)
class SlotView:
    """One bookable unit of a barber's day."""
    start: time
    end: time
    status: SlotStatus

    @property
    def is_free(self) -> bool:
        return self.status == SlotStatus.FREE

    def to_dict(self):
        return {
            'time': format_time(self.start),
            'end': format_time(self.end),
            'status': self.status.value,
        }


@dataclass(frozen=True)
class WorkingWindow:
    """Open/close times for one date, with an optional break."""
    start: time
    end: time
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    def break_minutes(self) -> Optional[Tuple[int, int]]:
        if self.break_start is None or self.break_end is None:
            return None
        if self.break_start >= self.break_end:
            return None
        return minutes_of(self.break_start), minutes_of(self.break_end)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval intersection [a_start, a_end) x [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def generate_slot_grid(window: WorkingWindow, granularity: int) -> Iterator[Tuple[int, int]]:
    """
    Partition a working window into (start, end) minute pairs.

    Slot starts are aligned to multiples of ``granularity`` from the window
    start. A slot cut by the start of the break or by the window end is
    truncated there (10:00-10:15 for a 10:15 break on a 30 minute grid);
    grid steps that start inside the break are skipped.
    """
    if granularity <= 0:
        raise ValueError('granularity must be positive')

    cursor = minutes_of(window.start)
    end = minutes_of(window.end)
    pause = window.break_minutes()

    while cursor < end:
        slot_end = min(cursor + granularity, end)
        if pause is not None:
            pause_start, pause_end = pause
            if pause_start <= cursor < pause_end:
                cursor += granularity
                continue
            if cursor < pause_start < slot_end:
                slot_end = pause_start
        yield cursor, slot_end
        cursor += granularity


def tenant_zone(tenant: Tenant) -> ZoneInfo:
    try:
        return ZoneInfo(tenant.timezone or 'UTC')
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{tenant.timezone}' for tenant {tenant.id}, using UTC")
        return ZoneInfo('UTC')


def tenant_now(tenant: Tenant, now: Optional[datetime] = None) -> datetime:
    """
    Current wall-clock time in the tenant's timezone.

    A naive ``now`` is taken as already expressed in tenant local time.
    """
    zone = tenant_zone(tenant)
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def get_barber(session, barber_id: int, tenant_id: Optional[int] = None) -> Barber:
    """Load an active barber, optionally scoped to a tenant."""
    query = session.query(Barber).filter(Barber.id == barber_id, Barber.active.is_(True))
    if tenant_id is not None:
        query = query.filter(Barber.tenant_id == tenant_id)
    barber = query.first()
    if barber is None:
        raise NotFoundError('Barbeiro não encontrado.')
    return barber


def working_window(session, barber: Barber, day: date) -> Optional[WorkingWindow]:
    """
    Resolve the working window for a date.

    A per-date override wins over the weekday template. None means the
    barber does not work that day.
    """
    override = session.query(AvailabilityOverride).filter(
        AvailabilityOverride.barber_id == barber.id,
        AvailabilityOverride.date == day
    ).first()

    template = barber.hours_for_weekday(day.weekday())

    if override is not None:
        if not override.available:
            return None
        if override.start_time and override.end_time and override.start_time < override.end_time:
            return WorkingWindow(start=override.start_time, end=override.end_time)
        # Available override without custom hours keeps the template

    if template is None:
        return None

    return WorkingWindow(
        start=template.start_time,
        end=template.end_time,
        break_start=template.break_start,
        break_end=template.break_end
    )


def claim_units(start: int, end: int) -> List[int]:
    """
    Fixed claim units (minutes from midnight) covering [start, end).

    Units are counted from midnight, not from the working window, so any two
    overlapping appointments share at least one unit whatever grid they were
    booked on.
    """
    first = start - start % CLAIM_UNIT_MINUTES
    return list(range(first, end, CLAIM_UNIT_MINUTES))


def booked_intervals(session, barber_id: int, day: date) -> List[Tuple[int, int]]:
    """Minute intervals held by non-cancelled appointments of a barber on a date."""
    rows = session.query(Appointment.start_time, Appointment.end_time).filter(
        Appointment.barber_id == barber_id,
        Appointment.date == day,
        Appointment.status != AppointmentStatus.CANCELLED.value
    ).all()
    return [(minutes_of(start), minutes_of(end)) for start, end in rows]


def ensure_not_past(tenant: Tenant, day: date, now: Optional[datetime] = None) -> datetime:
    """Reject dates before the tenant's local today. Returns the local now."""
    local_now = tenant_now(tenant, now)
    if day < local_now.date():
        raise InvalidSlotError('Não é possível consultar ou agendar uma data passada.')
    return local_now


def compute_available_slots(
    session,
    barber_id: int,
    day: date,
    now: Optional[datetime] = None,
    tenant_id: Optional[int] = None
) -> List[SlotView]:
    """
    Compute the annotated slot list of a barber for a date.

    Args:
        session: Database session
        barber_id: Barber ID (must be active)
        day: Calendar date, not before the tenant's local today
        now: Injectable current instant (defaults to the system clock)
        tenant_id: Restrict the barber lookup to this tenant

    Returns:
        list[SlotView]: ascending by start time, each FREE or BOOKED.
        Empty when the barber does not work that day. On the tenant's
        local today, slots that already started are omitted.

    Raises:
        NotFoundError: unknown or inactive barber
        InvalidSlotError: date in the past
    """
    barber = get_barber(session, barber_id, tenant_id)
    local_now = ensure_not_past(barber.tenant, day, now)

    window = working_window(session, barber, day)
    if window is None:
        return []

    busy = booked_intervals(session, barber.id, day)
    cutoff = minutes_of(local_now.time()) if day == local_now.date() else None

    slots = []
    for start, end in generate_slot_grid(window, barber.slot_minutes):
        if cutoff is not None and start <= cutoff:
            continue
        booked = any(overlaps(start, end, b_start, b_end) for b_start, b_end in busy)
        slots.append(SlotView(
            start=time_from_minutes(start),
            end=time_from_minutes(end),
            status=SlotStatus.BOOKED if booked else SlotStatus.FREE
        ))
    return slots
