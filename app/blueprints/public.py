"""
Public booking blueprint.
The barbershop's public page: profile, live availability, booking and
self-service lookup/cancellation by phone. No login involved.
"""

from flask import Blueprint, jsonify, request, Response
from typing import Tuple
import logging

from app.database import get_session
from app.exceptions import BusinessLogicError, NotFoundError
from app.forms.booking_forms import BookingForm, validate_or_raise
from app.models import Tenant
from app.services import barber_service, booking_service
from app.services.auth_service import RESERVED_SLUGS
from app.services.availability_service import compute_available_slots, get_barber
from app.utils.formatters import parse_date

logger = logging.getLogger(__name__)


public_bp = Blueprint('public', __name__)


def _get_public_tenant_or_404(slug: str) -> Tenant:
    if slug in RESERVED_SLUGS:
        raise NotFoundError('Barbearia não encontrada.')
    tenant = get_session().query(Tenant).filter(
        Tenant.slug == slug,
        Tenant.active.is_(True),
        Tenant.is_suspended.is_(False)
    ).first()
    if tenant is None:
        raise NotFoundError('Barbearia não encontrada.')
    return tenant


def _client_phone() -> str:
    data = request.get_json(silent=True) or request.form
    phone = request.args.get('telefone') or data.get('telefone') or data.get('client_phone')
    if not phone:
        raise BusinessLogicError('Informe seu telefone.')
    return phone


@public_bp.route('/<slug>')
def profile(slug: str) -> Response:
    """Barbershop profile with its barbers and services."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)

    return jsonify({
        'tenant': tenant.to_dict(),
        'barbers': [barber.to_dict() for barber in barber_service.list_barbers(db_session, tenant.id)],
        'services': [service.to_dict() for service in barber_service.list_services(db_session, tenant.id)],
    })


@public_bp.route('/<slug>/agendamento/horarios')
def available_slots(slug: str) -> Response:
    """Slots of a barber for a date, each FREE or BOOKED."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)

    barber_id = request.args.get('barber_id', type=int)
    if not barber_id:
        raise BusinessLogicError('Escolha um barbeiro.')
    try:
        day = parse_date(request.args.get('date', ''))
    except ValueError:
        day = None
    if day is None:
        raise BusinessLogicError('Data inválida. Use o formato AAAA-MM-DD.')

    barber = get_barber(db_session, barber_id, tenant.id)
    slots = compute_available_slots(db_session, barber.id, day, tenant_id=tenant.id)

    return jsonify({
        'barber': barber.to_dict(),
        'date': day.isoformat(),
        'slots': [slot.to_dict() for slot in slots],
    })


@public_bp.route('/<slug>/agendamento', methods=['POST'])
def book(slug: str) -> Tuple[Response, int]:
    """Book a slot. Conflicts answer 409 with the fresh free slots."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)
    form = validate_or_raise(BookingForm())

    appointment = booking_service.book_appointment(
        db_session,
        barber_id=form.barber_id.data,
        day=form.date.data,
        start=form.time.data,
        client_name=form.client_name.data,
        client_phone=form.client_phone.data,
        service_id=form.service_id.data,
        tenant_id=tenant.id
    )
    db_session.commit()

    return jsonify({
        'status': 'success',
        'message': 'Agendamento confirmado!',
        'appointment': appointment.to_dict()
    }), 201


@public_bp.route('/<slug>/agendamento/cliente')
def client_appointments(slug: str) -> Response:
    """Upcoming appointments of the client owning a phone number."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)

    appointments = booking_service.upcoming_for_phone(db_session, tenant, _client_phone())
    return jsonify({'appointments': [appointment.to_dict() for appointment in appointments]})


@public_bp.route('/<slug>/agendamento/historico')
def client_history(slug: str) -> Response:
    """Full appointment history (past and cancelled included) of a phone."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)

    client, appointments = booking_service.client_history(db_session, tenant, _client_phone())
    return jsonify({
        'client': client.to_dict() if client else None,
        'appointments': [appointment.to_dict() for appointment in appointments]
    })


@public_bp.route('/<slug>/agendamento/<int:appointment_id>/cancelar', methods=['POST'])
def cancel(slug: str, appointment_id: int) -> Response:
    """Client-side cancellation; the phone must match the booking."""
    db_session = get_session()
    tenant = _get_public_tenant_or_404(slug)

    appointment = booking_service.cancel_by_client(db_session, tenant, appointment_id, _client_phone())
    db_session.commit()

    return jsonify({'status': 'success', 'appointment': appointment.to_dict()})
