"""
Authentication service for user management.

Handles barbershop signup, credential checks, identity resolution for the
access gate and the initial-setup (onboarding) step.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.exceptions import BusinessLogicError, UnauthorizedError
from app.middleware.access_gate import Identity
from app.models import AppUser, Barber, Tenant, UserRole
from app.utils.formatters import slugify

logger = logging.getLogger(__name__)

# First path segments owned by the application; a tenant slug may not take them
RESERVED_SLUGS = frozenset({
    'admin', 'barbeiro', 'login', 'logout', 'register', 'initial-setup',
    'trial-expired', 'health', 'static', 'booking-success', 'api',
})

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    return EMAIL_PATTERN.match(email or '') is not None


def placeholder_name(full_name: str, prefix: str = 'Barbearia de ') -> str:
    """Temporary barbershop name given at signup ("Barbearia de João")."""
    first_name = (full_name or '').strip().split(' ')[0] or 'Novo Cliente'
    return f'{prefix}{first_name}'


def generate_unique_tenant_slug(session, name: str, exclude_tenant_id: Optional[int] = None) -> str:
    """Generate a unique, non-reserved slug for a tenant."""
    base_slug = slugify(name) or 'barbearia'
    slug = base_slug
    counter = 1
    while True:
        if slug not in RESERVED_SLUGS:
            query = session.query(Tenant).filter(Tenant.slug == slug)
            if exclude_tenant_id is not None:
                query = query.filter(Tenant.id != exclude_tenant_id)
            if not query.first():
                return slug
        slug = f"{base_slug}-{counter}"
        counter += 1


def register_barbershop(session, email: str, password: str, full_name: str,
                        trial_days: int = 7, name_prefix: str = 'Barbearia de ',
                        timezone_name: str = 'America/Sao_Paulo') -> AppUser:
    """
    Create a barbershop owner and their tenant.

    The tenant starts with a placeholder name, onboarding pending and a
    trial window of ``trial_days``. The caller commits.

    Raises:
        BusinessLogicError: invalid input or email already registered
    """
    email = (email or '').strip().lower()
    full_name = (full_name or '').strip()

    errors = []
    if not is_valid_email(email):
        errors.append('Email inválido.')
    if not password or len(password) < 6:
        errors.append('A senha deve ter pelo menos 6 caracteres.')
    if not full_name:
        errors.append('O nome é obrigatório.')
    if errors:
        raise BusinessLogicError(' '.join(errors))

    if session.query(AppUser).filter(func.lower(AppUser.email) == email).first():
        raise BusinessLogicError('Este email já está cadastrado.')

    now = datetime.now(timezone.utc)
    name = placeholder_name(full_name, name_prefix)

    try:
        tenant = Tenant(
            slug=generate_unique_tenant_slug(session, name),
            name=name,
            onboarding_complete=False,
            timezone=timezone_name,
            trial_started_at=now,
            trial_expires_at=now + timedelta(days=trial_days),
            active=True
        )
        session.add(tenant)
        session.flush()

        user = AppUser(
            email=email,
            full_name=full_name,
            role=UserRole.BARBEARIA.value,
            tenant_id=tenant.id,
            active=True
        )
        user.set_password(password)
        session.add(user)
        session.flush()
    except IntegrityError:
        session.rollback()
        logger.warning(f"Signup race for email {email} or slug")
        raise BusinessLogicError('Não foi possível criar a conta. Tente novamente.')

    logger.info(f"Registered barbershop {tenant.slug} (tenant {tenant.id}) for {email}, trial until {tenant.trial_expires_at}")
    return user


def authenticate(session, email: str, password: str) -> AppUser:
    """
    Check credentials.

    Raises:
        UnauthorizedError: unknown email, inactive user or wrong password
    """
    email = (email or '').strip().lower()
    if not email or not password:
        raise BusinessLogicError('Email e senha são obrigatórios.')

    user = session.query(AppUser).filter(func.lower(AppUser.email) == email).first()
    if not user or not user.active or not user.check_password(password):
        logger.warning(f"Failed login for {email}")
        raise UnauthorizedError('Email ou senha incorretos.')
    return user


def build_identity(session, user: AppUser) -> Optional[Identity]:
    """
    Resolve the gate's view of a user.

    Tenant-scoped roles must resolve to exactly one active, non-suspended
    tenant; otherwise None is returned and the session is treated as
    anonymous.
    """
    role = user.user_role

    if role == UserRole.ADMIN:
        return Identity(user_id=user.id, role=role)

    tenant = user.tenant
    if tenant is None or not tenant.active or tenant.is_suspended:
        logger.warning(f"User {user.id} has no usable tenant (tenant_id={user.tenant_id})")
        return None

    barber_id = None
    if role == UserRole.BARBEIRO:
        barber = session.query(Barber).filter(
            Barber.user_id == user.id,
            Barber.tenant_id == tenant.id
        ).first()
        if barber is None:
            logger.warning(f"Barber profile missing for user {user.id}")
            return None
        barber_id = barber.id

    return Identity(
        user_id=user.id,
        role=role,
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
        onboarding_pending=not tenant.onboarding_complete,
        trial_expires_at=tenant.trial_expires_at,
        barber_id=barber_id
    )


def complete_initial_setup(session, tenant: Tenant, name: str) -> Tenant:
    """
    Give the barbershop its real name and finish onboarding.

    The slug follows the new name. The caller commits.
    """
    name = (name or '').strip()
    if not name:
        raise BusinessLogicError('Informe o nome da sua barbearia.')
    if tenant.onboarding_complete:
        raise BusinessLogicError('A configuração inicial já foi concluída.')

    tenant.name = name
    tenant.slug = generate_unique_tenant_slug(session, name, exclude_tenant_id=tenant.id)
    tenant.onboarding_complete = True
    session.flush()

    logger.info(f"Tenant {tenant.id} finished onboarding as '{name}' ({tenant.slug})")
    return tenant


def extend_trial(session, tenant: Tenant, days: int) -> Tenant:
    """Push the trial end forward from max(now, current end). Admin action."""
    if days <= 0:
        raise BusinessLogicError('O número de dias deve ser positivo.')

    now = datetime.now(timezone.utc)
    current = tenant.trial_expires_at
    if current is not None and current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    base = current if current and current > now else now
    tenant.trial_expires_at = base + timedelta(days=days)
    session.flush()

    logger.info(f"Trial of tenant {tenant.id} extended to {tenant.trial_expires_at}")
    return tenant


def end_trial(session, tenant: Tenant) -> Tenant:
    """Mark a tenant as paid: no trial window applies anymore."""
    tenant.trial_expires_at = None
    session.flush()
    logger.info(f"Trial cleared for tenant {tenant.id}")
    return tenant
