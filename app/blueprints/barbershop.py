"""
Barbershop dashboard blueprint.
Everything under /<slug>/ that the owner (and partly the barbers) manage:
stats, appointments, barbers and their schedules, services, clients and
the public profile settings. Every view goes through the access gate.
"""

from flask import Blueprint, current_app, g, jsonify, request, Response
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging

from app.database import get_session
from app.exceptions import BusinessLogicError
from app.forms.booking_forms import (
    AvailabilityOverrideForm, BarberForm, ServiceForm, WorkingHoursForm, validate_or_raise
)
from app.middleware import current_tenant, require_access
from app.models import Appointment, Client, UserRole
from app.services import barber_service, booking_service
from app.services.availability_service import tenant_now
from app.services.dashboard_service import get_barber_performance, get_dashboard_data
from app.utils.formatters import parse_date

logger = logging.getLogger(__name__)


barbershop_bp = Blueprint('barbershop', __name__, url_prefix='/<slug>')

SETTINGS_FIELDS = ('address', 'phone', 'instagram_url', 'whatsapp_url', 'timezone')


def _date_arg(name: str):
    try:
        return parse_date(request.args.get(name))
    except ValueError:
        raise BusinessLogicError('Data inválida. Use o formato AAAA-MM-DD.')


@barbershop_bp.route('/dashboard')
@require_access(UserRole.BARBEARIA, UserRole.BARBEIRO)
def dashboard(slug: str) -> Response:
    """Stats for today; barbers only see their own figures."""
    tenant = current_tenant()
    today = tenant_now(tenant).date()
    data = get_dashboard_data(get_session(), tenant.id, today, barber_id=g.identity.barber_id)
    return jsonify({'tenant': tenant.to_dict(), 'today': today.isoformat(), **data})


# ============================================================================
# APPOINTMENTS
# ============================================================================

@barbershop_bp.route('/appointments')
@require_access(UserRole.BARBEARIA)
def list_appointments(slug: str) -> Response:
    """Appointments of the tenant, optionally filtered by date, barber and status."""
    tenant = current_tenant()
    query = get_session().query(Appointment).filter(Appointment.tenant_id == tenant.id)

    day = _date_arg('date')
    if day:
        query = query.filter(Appointment.date == day)
    barber_id = request.args.get('barber_id', type=int)
    if barber_id:
        query = query.filter(Appointment.barber_id == barber_id)
    status = request.args.get('status')
    if status:
        query = query.filter(Appointment.status == status.upper())

    appointments = query.order_by(Appointment.date, Appointment.start_time).all()
    return jsonify({'appointments': [appointment.to_dict() for appointment in appointments]})


@barbershop_bp.route('/appointments/<int:appointment_id>/status', methods=['POST'])
@require_access(UserRole.BARBEARIA)
def update_appointment_status(slug: str, appointment_id: int) -> Response:
    """Mark an appointment COMPLETED or CANCELLED."""
    db_session = get_session()
    tenant = current_tenant()
    data = request.get_json(silent=True) or request.form

    appointment = booking_service.get_appointment(db_session, tenant.id, appointment_id)
    booking_service.update_appointment_status(db_session, appointment, (data.get('status') or '').upper())
    db_session.commit()

    return jsonify({'status': 'success', 'appointment': appointment.to_dict()})


# ============================================================================
# BARBERS AND SCHEDULES
# ============================================================================

@barbershop_bp.route('/barbers', methods=['GET', 'POST'])
@require_access(UserRole.BARBEARIA)
def barbers(slug: str) -> Union[Response, Tuple[Response, int]]:
    db_session = get_session()
    tenant = current_tenant()

    if request.method == 'GET':
        barber_list = barber_service.list_barbers(db_session, tenant.id, only_active=False)
        return jsonify({'barbers': [barber.to_dict(include_schedule=True) for barber in barber_list]})

    form = validate_or_raise(BarberForm())
    barber = barber_service.create_barber(
        db_session,
        tenant.id,
        name=form.name.data,
        phone=form.phone.data,
        specialty=form.specialty.data,
        slot_minutes=form.slot_minutes.data or current_app.config.get('DEFAULT_SLOT_MINUTES', 30),
        commission_percent=form.commission_percent.data
    )
    db_session.commit()
    return jsonify({'status': 'success', 'barber': barber.to_dict(include_schedule=True)}), 201


@barbershop_bp.route('/barbers/<int:barber_id>/working-hours', methods=['POST'])
@require_access(UserRole.BARBEARIA)
def set_working_hours(slug: str, barber_id: int) -> Response:
    """Create or replace the weekly template entry of one weekday."""
    db_session = get_session()
    barber = barber_service.get_tenant_barber(db_session, current_tenant().id, barber_id)

    form = validate_or_raise(WorkingHoursForm())
    barber_service.set_working_hours(
        db_session,
        barber,
        weekday=form.weekday.data,
        start_time=form.start_time.data,
        end_time=form.end_time.data,
        break_start=form.break_start.data,
        break_end=form.break_end.data
    )
    db_session.commit()
    return jsonify({'status': 'success', 'barber': barber.to_dict(include_schedule=True)})


@barbershop_bp.route('/barbers/<int:barber_id>/working-hours/<int:weekday>', methods=['DELETE'])
@require_access(UserRole.BARBEARIA)
def clear_working_hours(slug: str, barber_id: int, weekday: int) -> Response:
    db_session = get_session()
    barber = barber_service.get_tenant_barber(db_session, current_tenant().id, barber_id)
    barber_service.clear_working_hours(db_session, barber, weekday)
    db_session.commit()
    return jsonify({'status': 'success', 'barber': barber.to_dict(include_schedule=True)})


@barbershop_bp.route('/barbers/<int:barber_id>/performance')
@require_access(UserRole.BARBEARIA)
def barber_performance(slug: str, barber_id: int) -> Response:
    """Last 30 days of completed services and commission of one barber."""
    db_session = get_session()
    tenant = current_tenant()
    barber = barber_service.get_tenant_barber(db_session, tenant.id, barber_id)
    return jsonify(get_barber_performance(db_session, barber, tenant_now(tenant).date()))


@barbershop_bp.route('/barbers/<int:barber_id>/overrides', methods=['GET', 'POST'])
@require_access(UserRole.BARBEARIA)
def overrides(slug: str, barber_id: int) -> Union[Response, Tuple[Response, int]]:
    """Per-date exceptions: days off or custom hours."""
    db_session = get_session()
    tenant = current_tenant()
    barber = barber_service.get_tenant_barber(db_session, tenant.id, barber_id)

    if request.method == 'GET':
        start = _date_arg('start') or tenant_now(tenant).date()
        end = _date_arg('end') or start + timedelta(days=365)
        items = barber_service.list_overrides(db_session, barber, start, end)
        return jsonify({'overrides': [item.to_dict() for item in items]})

    form = validate_or_raise(AvailabilityOverrideForm())
    override = barber_service.set_override(
        db_session,
        barber,
        day=form.date.data,
        available=form.available.data,
        start_time=form.start_time.data,
        end_time=form.end_time.data
    )
    db_session.commit()
    return jsonify({'status': 'success', 'override': override.to_dict()}), 201


# ============================================================================
# SERVICES, CLIENTS, SETTINGS
# ============================================================================

@barbershop_bp.route('/services', methods=['GET', 'POST'])
@require_access(UserRole.BARBEARIA)
def services(slug: str) -> Union[Response, Tuple[Response, int]]:
    db_session = get_session()
    tenant = current_tenant()

    if request.method == 'GET':
        return jsonify({'services': [item.to_dict() for item in barber_service.list_services(db_session, tenant.id)]})

    form = validate_or_raise(ServiceForm())
    service = barber_service.create_service(
        db_session, tenant.id, form.name.data, form.price.data, form.duration_minutes.data
    )
    db_session.commit()
    return jsonify({'status': 'success', 'service': service.to_dict()}), 201


@barbershop_bp.route('/clients')
@require_access(UserRole.BARBEARIA)
def clients(slug: str) -> Response:
    tenant = current_tenant()
    query = get_session().query(Client).filter(Client.tenant_id == tenant.id)

    search = (request.args.get('q') or '').strip()
    if search:
        query = query.filter(Client.name.ilike(f'%{search}%') | Client.phone.contains(search))

    return jsonify({'clients': [client.to_dict() for client in query.order_by(Client.name).all()]})


@barbershop_bp.route('/settings', methods=['GET', 'POST'])
@require_access(UserRole.BARBEARIA)
def settings(slug: str) -> Response:
    """Public profile data and the tenant timezone."""
    db_session = get_session()
    tenant = current_tenant()

    if request.method == 'POST':
        data = request.get_json(silent=True) or request.form
        timezone_name = data.get('timezone')
        if timezone_name:
            try:
                ZoneInfo(timezone_name)
            except (ZoneInfoNotFoundError, ValueError):
                raise BusinessLogicError(f'Fuso horário inválido: {timezone_name}')

        if data.get('default_commission_percent') not in (None, ''):
            try:
                commission = Decimal(str(data.get('default_commission_percent')))
            except InvalidOperation:
                commission = None
            if commission is None or not Decimal('0') <= commission <= Decimal('100'):
                raise BusinessLogicError('A comissão padrão deve estar entre 0 e 100%.')
            tenant.default_commission_percent = commission

        for field in SETTINGS_FIELDS:
            if field in data:
                setattr(tenant, field, data.get(field) or None)
        if not tenant.timezone:
            tenant.timezone = current_app.config.get('DEFAULT_TIMEZONE', 'America/Sao_Paulo')
        db_session.commit()
        logger.info(f"Settings updated for tenant {tenant.id}")

    return jsonify({'tenant': dict(tenant.to_dict(), timezone=tenant.timezone)})
