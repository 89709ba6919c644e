"""
Dashboard counters for barbershops and the platform admin.
Provides aggregated appointment metrics for the barbershop and barber views.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from sqlalchemy import func, case
from app.models import Appointment, AppointmentStatus, Barber, Client, Service, Tenant

CENTS = Decimal('0.01')
PERFORMANCE_WINDOW_DAYS = 30


def get_dashboard_data(session, tenant_id: int, today: date, barber_id: Optional[int] = None) -> dict:
    """
    Get dashboard data for a tenant (optionally narrowed to one barber).

    Args:
        session: SQLAlchemy session
        tenant_id: Current tenant ID
        today: Tenant-local date used for "today" and "upcoming"
        barber_id: Restrict every figure to this barber

    Returns:
        dict with keys:
            - appointments_today: int (non-cancelled)
            - upcoming_count: int (scheduled, from today on)
            - completed_count: int
            - cancelled_count: int
            - revenue_completed: str (sum of service prices of completed appointments)
            - client_count: int
            - barber_count: int
            - next_appointments: list of dicts
    """
    base = session.query(Appointment).filter(Appointment.tenant_id == tenant_id)
    if barber_id is not None:
        base = base.filter(Appointment.barber_id == barber_id)

    # 1. Status counters in a single pass
    counters = session.query(
        func.coalesce(func.sum(case(
            ((Appointment.date == today) & (Appointment.status != AppointmentStatus.CANCELLED.value), 1),
            else_=0
        )), 0).label('appointments_today'),
        func.coalesce(func.sum(case(
            ((Appointment.date >= today) & (Appointment.status == AppointmentStatus.SCHEDULED.value), 1),
            else_=0
        )), 0).label('upcoming_count'),
        func.coalesce(func.sum(case(
            (Appointment.status == AppointmentStatus.COMPLETED.value, 1),
            else_=0
        )), 0).label('completed_count'),
        func.coalesce(func.sum(case(
            (Appointment.status == AppointmentStatus.CANCELLED.value, 1),
            else_=0
        )), 0).label('cancelled_count'),
    ).filter(Appointment.tenant_id == tenant_id)
    if barber_id is not None:
        counters = counters.filter(Appointment.barber_id == barber_id)
    counters = counters.first()

    # 2. Revenue of completed appointments
    revenue_query = session.query(func.coalesce(func.sum(Service.price), 0)).join(
        Appointment, Appointment.service_id == Service.id
    ).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.status == AppointmentStatus.COMPLETED.value
    )
    if barber_id is not None:
        revenue_query = revenue_query.filter(Appointment.barber_id == barber_id)
    revenue = Decimal(str(revenue_query.scalar() or 0))

    # 3. Tenant-wide counts
    client_count = session.query(func.count(Client.id)).filter(Client.tenant_id == tenant_id).scalar() or 0
    barber_count = session.query(func.count(Barber.id)).filter(
        Barber.tenant_id == tenant_id,
        Barber.active.is_(True)
    ).scalar() or 0

    # 4. Next scheduled appointments
    next_appointments = base.filter(
        Appointment.date >= today,
        Appointment.status == AppointmentStatus.SCHEDULED.value
    ).order_by(Appointment.date, Appointment.start_time).limit(10).all()

    return {
        'appointments_today': int(counters.appointments_today or 0),
        'upcoming_count': int(counters.upcoming_count or 0),
        'completed_count': int(counters.completed_count or 0),
        'cancelled_count': int(counters.cancelled_count or 0),
        'revenue_completed': str(revenue.quantize(CENTS)),
        'client_count': int(client_count),
        'barber_count': int(barber_count),
        'next_appointments': [appointment.to_dict() for appointment in next_appointments],
    }


def get_admin_dashboard_data(session, now: Optional[datetime] = None) -> dict:
    """Platform-wide tenant overview for the admin panel."""
    now = now or datetime.now(timezone.utc)
    tenants = session.query(Tenant).order_by(Tenant.created_at.desc()).all()
    appointment_counts = dict(
        session.query(Appointment.tenant_id, func.count(Appointment.id))
        .group_by(Appointment.tenant_id)
        .all()
    )

    return {
        'tenant_count': len(tenants),
        'onboarding_pending_count': sum(1 for tenant in tenants if not tenant.onboarding_complete),
        'tenants': [
            dict(tenant.to_dict(), appointment_count=appointment_counts.get(tenant.id, 0),
                 is_suspended=tenant.is_suspended, trial_expired=tenant.trial_expired(now))
            for tenant in tenants
        ],
    }


def get_barber_performance(session, barber: Barber, today: date, days: int = PERFORMANCE_WINDOW_DAYS) -> dict:
    """
    Revenue and commission of a barber over the last ``days`` days.

    Only COMPLETED appointments between ``today - days`` and ``today``
    (inclusive) count. The barber's own commission rate wins over the
    tenant's default rate.

    Returns:
        dict with keys:
            - barber_id, barber_name
            - commission_percent: str
            - period_start, period_end: ISO dates
            - total_generated: str (sum of service prices)
            - total_commission: str
            - services: list of {date, service, price, commission}, newest first
    """
    period_start = today - timedelta(days=days)
    rate = barber.commission_percent
    if rate is None:
        rate = barber.tenant.default_commission_percent
    rate = Decimal(str(rate or 0))

    appointments = session.query(Appointment).filter(
        Appointment.tenant_id == barber.tenant_id,
        Appointment.barber_id == barber.id,
        Appointment.status == AppointmentStatus.COMPLETED.value,
        Appointment.date >= period_start,
        Appointment.date <= today
    ).order_by(Appointment.date.desc(), Appointment.start_time.desc()).all()

    total_generated = Decimal('0')
    total_commission = Decimal('0')
    services = []
    for appointment in appointments:
        price = Decimal(str(appointment.service.price)) if appointment.service else Decimal('0')
        commission = (price * rate / 100).quantize(CENTS, rounding=ROUND_HALF_UP)
        total_generated += price
        total_commission += commission
        services.append({
            'date': appointment.date.isoformat(),
            'service': appointment.service.name if appointment.service else None,
            'price': str(price.quantize(CENTS)),
            'commission': str(commission),
        })

    return {
        'barber_id': barber.id,
        'barber_name': barber.name,
        'commission_percent': str(rate.quantize(CENTS)),
        'period_start': period_start.isoformat(),
        'period_end': today.isoformat(),
        'total_generated': str(total_generated.quantize(CENTS)),
        'total_commission': str(total_commission.quantize(CENTS)),
        'services': services,
    }
