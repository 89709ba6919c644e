"""
Access gate - decides, for every protected navigation, whether the current
identity may see the requested page or where it must be sent instead.

decide() is pure: identity, path, allowed roles and the current instant go
in, a Verdict comes out. Nothing is cached; a verdict can flip from ALLOW to
REDIRECT purely because the trial clock moved on.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from app.models.app_user import TENANT_SCOPED_ROLES, UserRole


LOGIN_PATH = '/login'
INITIAL_SETUP_PATH = '/initial-setup'
TRIAL_EXPIRED_PATH = '/trial-expired'

ROLE_HOME_PATHS = {
    UserRole.ADMIN: '/admin/dashboard',
    UserRole.BARBEIRO: '/barbeiro/appointments',
}


@dataclass(frozen=True)
class Identity:
    """Authenticated principal as seen by the gate (read-only)."""
    user_id: int
    role: UserRole
    tenant_id: Optional[int] = None
    tenant_slug: Optional[str] = None
    onboarding_pending: bool = False
    trial_expires_at: Optional[datetime] = None
    barber_id: Optional[int] = None

    @property
    def is_tenant_scoped(self) -> bool:
        return self.role in TENANT_SCOPED_ROLES

    @property
    def needs_onboarding(self) -> bool:
        # Only the barbershop owner goes through initial setup
        return self.role == UserRole.BARBEARIA and self.onboarding_pending

    def trial_expired(self, now: datetime) -> bool:
        if not self.is_tenant_scoped or self.trial_expires_at is None:
            return False
        return _as_utc(self.trial_expires_at) < _as_utc(now)

    def dashboard_path(self) -> str:
        if self.tenant_slug:
            return f'/{self.tenant_slug}/dashboard'
        return ROLE_HOME_PATHS.get(self.role, LOGIN_PATH)


class VerdictKind(enum.Enum):
    ALLOW = 'ALLOW'
    REDIRECT = 'REDIRECT'


@dataclass(frozen=True)
class Verdict:
    """ALLOW, or REDIRECT(target)."""
    kind: VerdictKind
    target: Optional[str] = None

    @classmethod
    def allow(cls) -> 'Verdict':
        return cls(VerdictKind.ALLOW)

    @classmethod
    def redirect(cls, target: str) -> 'Verdict':
        return cls(VerdictKind.REDIRECT, target)

    @property
    def allowed(self) -> bool:
        return self.kind == VerdictKind.ALLOW

    def __str__(self):
        return 'ALLOW' if self.allowed else f'REDIRECT({self.target})'


ALLOW = Verdict.allow()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize_path(path: str) -> str:
    path = (path or '/').split('?', 1)[0]
    if len(path) > 1:
        path = path.rstrip('/')
    return path or '/'


def decide(
    identity: Optional[Identity],
    requested_path: str,
    allowed_roles: Iterable[UserRole],
    now: datetime,
    route_slug: Optional[str] = None
) -> Verdict:
    """
    Evaluate the routing rules in order; the first match wins.

    1. no identity                                  -> /login
    2. owner with onboarding pending, not on setup  -> /initial-setup
    3. onboarding done (or n/a) but on setup page   -> own dashboard
    4. tenant-scoped identity with expired trial    -> /trial-expired
    5. role not allowed on this route               -> /login
    6. tenant route of somebody else's barbershop   -> own dashboard
    7. ALLOW

    Onboarding is checked before the trial: an owner who never
    finished setup is sent to setup even when the trial already ended.

    Args:
        identity: Current principal or None when anonymous
        requested_path: Path being navigated to
        allowed_roles: Roles the route accepts
        now: Current instant (injected, never read from a global clock here)
        route_slug: Tenant slug embedded in the route, if any

    Returns:
        Verdict
    """
    path = _normalize_path(requested_path)
    on_setup_page = path == INITIAL_SETUP_PATH

    if identity is None:
        return Verdict.redirect(LOGIN_PATH)

    if identity.needs_onboarding and not on_setup_page:
        return Verdict.redirect(INITIAL_SETUP_PATH)

    if not identity.needs_onboarding and on_setup_page:
        return Verdict.redirect(identity.dashboard_path())

    if identity.trial_expired(now):
        return Verdict.redirect(TRIAL_EXPIRED_PATH)

    if identity.role not in set(allowed_roles):
        return Verdict.redirect(LOGIN_PATH)

    if route_slug is not None and identity.is_tenant_scoped and identity.tenant_slug != route_slug:
        return Verdict.redirect(identity.dashboard_path())

    return ALLOW
