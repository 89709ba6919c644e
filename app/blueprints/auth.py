"""
Authentication blueprint.
Handles barbershop signup, login, logout, the initial setup step and the
trial-expired landing page.
"""

from flask import Blueprint, current_app, g, jsonify, request, session, Response
from typing import Tuple, Union
import logging

from app.database import get_session
from app.exceptions import UnauthorizedError
from app.forms.booking_forms import InitialSetupForm, validate_or_raise
from app.middleware import current_tenant, require_access
from app.middleware.access_gate import INITIAL_SETUP_PATH, LOGIN_PATH, TRIAL_EXPIRED_PATH
from app.models import UserRole
from app.services import auth_service

logger = logging.getLogger(__name__)


auth_bp = Blueprint('auth', __name__)


def _payload() -> dict:
    """Accept both form posts and JSON bodies."""
    return request.get_json(silent=True) or request.form.to_dict()


def _landing_path(identity) -> str:
    if identity.needs_onboarding:
        return INITIAL_SETUP_PATH
    return identity.dashboard_path()


@auth_bp.route('/register', methods=['POST'])
def register() -> Tuple[Response, int]:
    """Create owner + tenant (placeholder name, trial started) and log in."""
    data = _payload()
    db_session = get_session()

    user = auth_service.register_barbershop(
        db_session,
        email=data.get('email', ''),
        password=data.get('password', ''),
        full_name=data.get('full_name', ''),
        trial_days=current_app.config.get('TRIAL_DAYS', 7),
        name_prefix=current_app.config.get('PLACEHOLDER_NAME_PREFIX', 'Barbearia de '),
        timezone_name=current_app.config.get('DEFAULT_TIMEZONE', 'America/Sao_Paulo')
    )
    db_session.commit()

    session.clear()
    session['user_id'] = user.id
    session.permanent = True

    return jsonify({
        'status': 'success',
        'user': user.to_dict(),
        'tenant': user.tenant.to_dict(),
        'redirect': INITIAL_SETUP_PATH
    }), 201


@auth_bp.route('/login', methods=['GET', 'POST'])
def login() -> Response:
    """GET: login landing (where the gate sends anonymous users). POST: check credentials."""
    if request.method == 'GET':
        if g.get('identity'):
            return jsonify({'status': 'authenticated', 'redirect': _landing_path(g.identity)})
        return jsonify({'status': 'login_required', 'message': 'Faça login para continuar.'})

    data = _payload()
    db_session = get_session()

    user = auth_service.authenticate(db_session, data.get('email', ''), data.get('password', ''))
    identity = auth_service.build_identity(db_session, user)
    if identity is None:
        raise UnauthorizedError('Sua conta está suspensa ou inativa. Entre em contato com o suporte.')

    session.clear()
    session['user_id'] = user.id
    session.permanent = True

    logger.info(f"User {user.id} logged in as {identity.role.value}")
    return jsonify({
        'status': 'success',
        'user': user.to_dict(),
        'redirect': _landing_path(identity)
    })


@auth_bp.route('/logout', methods=['POST'])
def logout() -> Response:
    """Close the session."""
    if g.get('user'):
        logger.info(f"User {g.user.id} logged out")
    session.clear()
    return jsonify({'status': 'success', 'redirect': LOGIN_PATH})


@auth_bp.route('/initial-setup', methods=['GET', 'POST'])
@require_access(UserRole.BARBEARIA)
def initial_setup() -> Union[Response, Tuple[Response, int]]:
    """First-time setup: replace the placeholder name with the real one."""
    tenant = current_tenant()

    if request.method == 'GET':
        return jsonify({'tenant': tenant.to_dict()})

    form = validate_or_raise(InitialSetupForm())
    db_session = get_session()
    auth_service.complete_initial_setup(db_session, tenant, form.name.data)
    db_session.commit()

    return jsonify({
        'status': 'success',
        'tenant': tenant.to_dict(),
        'redirect': f'/{tenant.slug}/dashboard'
    })


@auth_bp.route(TRIAL_EXPIRED_PATH)
def trial_expired() -> Response:
    """Landing page for tenants whose trial window is over."""
    tenant = current_tenant()
    return jsonify({
        'status': 'trial_expired',
        'message': 'Seu período de teste terminou. Assine um plano para continuar usando o BarberPro.',
        'tenant': tenant.to_dict() if tenant else None
    })
