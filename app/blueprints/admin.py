"""
Admin Blueprint - Backoffice panel for the platform owner.

Routes:
- /admin/dashboard - Tenant list and counts
- /admin/tenants/<id>/extend-trial - Push the trial end forward
- /admin/tenants/<id>/end-trial - Clear the trial window (paid tenant)
- /admin/tenants/<id>/suspend - Suspend tenant
- /admin/tenants/<id>/reactivate - Reactivate tenant
"""

from flask import Blueprint, redirect, request, jsonify, Response, url_for
from app.exceptions import BusinessLogicError, NotFoundError
from app.database import get_session
from app.middleware import require_access
from app.models import Tenant, UserRole
from app.services import auth_service
from app.services.dashboard_service import get_admin_dashboard_data
import logging

logger = logging.getLogger(__name__)


admin_bp = Blueprint('admin', __name__, url_prefix='/admin')


def _get_tenant_or_404(tenant_id: int) -> Tenant:
    """Fetch tenant or raise NotFoundError."""
    tenant = get_session().query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError('Barbearia não encontrada')
    return tenant


def _tenant_response(tenant: Tenant) -> Response:
    return jsonify({
        'status': 'success',
        'tenant': dict(tenant.to_dict(), is_suspended=tenant.is_suspended)
    })


@admin_bp.route('/')
def index() -> Response:
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/dashboard')
@require_access(UserRole.ADMIN)
def dashboard() -> Response:
    return jsonify(get_admin_dashboard_data(get_session()))


@admin_bp.route('/tenants/<int:tenant_id>/extend-trial', methods=['POST'])
@require_access(UserRole.ADMIN)
def extend_trial(tenant_id: int) -> Response:
    """Give a tenant more trial days (from max(now, current end))."""
    session_db = get_session()
    tenant = _get_tenant_or_404(tenant_id)
    data = request.get_json(silent=True) or request.form

    try:
        days = int(data.get('days', 7))
    except (TypeError, ValueError):
        raise BusinessLogicError('Número de dias inválido.')

    auth_service.extend_trial(session_db, tenant, days)
    session_db.commit()
    return _tenant_response(tenant)


@admin_bp.route('/tenants/<int:tenant_id>/end-trial', methods=['POST'])
@require_access(UserRole.ADMIN)
def end_trial(tenant_id: int) -> Response:
    session_db = get_session()
    tenant = _get_tenant_or_404(tenant_id)
    auth_service.end_trial(session_db, tenant)
    session_db.commit()
    return _tenant_response(tenant)


@admin_bp.route('/tenants/<int:tenant_id>/suspend', methods=['POST'])
@require_access(UserRole.ADMIN)
def suspend_tenant(tenant_id: int) -> Response:
    """Suspend a tenant - its users are logged out on their next request."""
    session_db = get_session()
    tenant = _get_tenant_or_404(tenant_id)

    if tenant.is_suspended:
        raise BusinessLogicError(f'A barbearia "{tenant.name}" já está suspensa.')

    tenant.is_suspended = True
    session_db.commit()
    logger.info(f"Tenant {tenant.id} suspended")
    return _tenant_response(tenant)


@admin_bp.route('/tenants/<int:tenant_id>/reactivate', methods=['POST'])
@require_access(UserRole.ADMIN)
def reactivate_tenant(tenant_id: int) -> Response:
    """Reactivate a suspended tenant."""
    session_db = get_session()
    tenant = _get_tenant_or_404(tenant_id)

    if not tenant.is_suspended:
        raise BusinessLogicError(f'A barbearia "{tenant.name}" não está suspensa.')

    tenant.is_suspended = False
    session_db.commit()
    logger.info(f"Tenant {tenant.id} reactivated")
    return _tenant_response(tenant)
