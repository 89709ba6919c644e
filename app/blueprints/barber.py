"""Barber area: a barber's own agenda and availability."""

from flask import Blueprint, g, jsonify, request, Response
from typing import Tuple, Union
import logging

from app.database import get_session
from app.exceptions import BusinessLogicError
from app.forms.booking_forms import AvailabilityOverrideForm, validate_or_raise
from app.middleware import current_tenant, require_access
from app.models import Appointment, AppointmentStatus, UserRole
from app.services import barber_service, booking_service
from app.services.availability_service import compute_available_slots, tenant_now
from app.services.dashboard_service import get_barber_performance
from app.utils.formatters import parse_date

logger = logging.getLogger(__name__)


barber_bp = Blueprint('barber', __name__, url_prefix='/barbeiro')


def _requested_day(tenant):
    try:
        day = parse_date(request.args.get('date'))
    except ValueError:
        raise BusinessLogicError('Data inválida. Use o formato AAAA-MM-DD.')
    return day or tenant_now(tenant).date()


@barber_bp.route('/appointments')
@require_access(UserRole.BARBEIRO)
def appointments() -> Response:
    """Scheduled appointments of the logged-in barber from a date on."""
    tenant = current_tenant()
    day = _requested_day(tenant)

    items = get_session().query(Appointment).filter(
        Appointment.tenant_id == tenant.id,
        Appointment.barber_id == g.identity.barber_id,
        Appointment.date >= day,
        Appointment.status == AppointmentStatus.SCHEDULED.value
    ).order_by(Appointment.date, Appointment.start_time).all()

    return jsonify({'date': day.isoformat(), 'appointments': [item.to_dict() for item in items]})


@barber_bp.route('/appointments/<int:appointment_id>/complete', methods=['POST'])
@require_access(UserRole.BARBEIRO)
def complete(appointment_id: int) -> Response:
    db_session = get_session()
    appointment = booking_service.get_appointment(db_session, g.identity.tenant_id, appointment_id)
    if appointment.barber_id != g.identity.barber_id:
        raise BusinessLogicError('Este agendamento é de outro barbeiro.')

    booking_service.complete_appointment(db_session, appointment)
    db_session.commit()
    return jsonify({'status': 'success', 'appointment': appointment.to_dict()})


@barber_bp.route('/performance')
@require_access(UserRole.BARBEIRO)
def performance() -> Response:
    """The logged-in barber's own revenue and commission (last 30 days)."""
    db_session = get_session()
    tenant = current_tenant()
    barber = barber_service.get_tenant_barber(db_session, tenant.id, g.identity.barber_id)
    return jsonify(get_barber_performance(db_session, barber, tenant_now(tenant).date()))


@barber_bp.route('/availability', methods=['GET', 'POST'])
@require_access(UserRole.BARBEIRO)
def availability() -> Union[Response, Tuple[Response, int]]:
    """GET: own slots for a date. POST: day off or custom hours for a date."""
    db_session = get_session()
    tenant = current_tenant()
    barber = barber_service.get_tenant_barber(db_session, tenant.id, g.identity.barber_id)

    if request.method == 'GET':
        day = _requested_day(tenant)
        slots = compute_available_slots(db_session, barber.id, day, tenant_id=tenant.id)
        return jsonify({
            'barber': barber.to_dict(include_schedule=True),
            'date': day.isoformat(),
            'slots': [slot.to_dict() for slot in slots],
        })

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
