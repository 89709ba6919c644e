"""Middleware for authentication, tenant context and route gating."""
from datetime import datetime, timezone
from functools import wraps
from flask import session, g, redirect, request, current_app
from app.database import get_session
from app.models import AppUser, UserRole
from app.middleware.access_gate import decide


def load_identity():
    """
    Load the current identity into g (Flask's per-request global).

    Called before each request. Sets g.user and g.identity when the session
    belongs to an active user whose tenant (if any) is usable; both stay
    None for anonymous requests.
    """
    g.user = None
    g.identity = None

    try:
        user_id = session.get('user_id')
        if not user_id:
            return

        db_session = get_session()
        user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
        if not user:
            session.pop('user_id', None)
            return

        from app.services.auth_service import build_identity
        identity = build_identity(db_session, user)
        if identity is None:
            # Tenant suspended, deactivated or missing - force re-login
            session.clear()
            return

        g.user = user
        g.identity = identity
    except Exception as e:
        # Avoid crashing the whole app if context loading fails
        current_app.logger.error(f"Error in load_identity: {e}", exc_info=True)


def current_tenant():
    """Tenant of the gated identity (None for ADMIN and anonymous requests)."""
    identity = g.get('identity')
    if identity is None or identity.tenant_id is None:
        return None
    from app.models import Tenant
    return get_session().get(Tenant, identity.tenant_id)


def _redirect_response(target):
    response = redirect(target)
    if request.headers.get('HX-Request'):
        # HTMX: force a full page navigation
        response.headers['HX-Redirect'] = target
    return response


def require_access(*allowed_roles):
    """
    Decorator: run the access gate before the view.

    The verdict is computed on every call from g.identity, the request path
    and the current instant; a redirect verdict short-circuits the view.
    A ``slug`` view argument is checked against the identity's tenant.

    Usage:
        @require_access(UserRole.BARBEARIA)
        @require_access(UserRole.BARBEARIA, UserRole.BARBEIRO)
    """
    roles = frozenset(UserRole(role) for role in allowed_roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verdict = decide(
                g.get('identity'),
                request.path,
                roles,
                datetime.now(timezone.utc),
                route_slug=kwargs.get('slug')
            )
            if not verdict.allowed:
                current_app.logger.info(f"Access gate: {request.path} -> {verdict}")
                return _redirect_response(verdict.target)
            return f(*args, **kwargs)
        decorated_function.allowed_roles = roles
        return decorated_function
    return decorator
