"""Client directory: race-safe find-or-create by phone number."""
import logging
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError

from app.exceptions import BusinessLogicError
from app.models import Client

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r'\D+')


def normalize_phone(phone: str) -> str:
    """
    Canonical phone form: digits only, keeping a leading '+'.

    "(11) 98888-7777" and "11988887777" are the same client; no other
    matching is attempted.

    Raises:
        BusinessLogicError: if no digits are left
    """
    raw = (phone or '').strip()
    digits = _NON_DIGITS.sub('', raw)
    if not digits:
        raise BusinessLogicError('Telefone inválido.')
    return f'+{digits}' if raw.startswith('+') else digits


def find_client_by_phone(session, tenant_id: int, phone: str) -> Optional[Client]:
    """Tenant-scoped lookup by canonical phone."""
    return session.query(Client).filter(
        Client.tenant_id == tenant_id,
        Client.phone == normalize_phone(phone)
    ).first()


def find_or_create_client(session, tenant_id: int, phone: str, name: str) -> Client:
    """
    Get or create the client with this phone number for a tenant.

    This function is idempotent and safe under concurrency thanks to the
    unique constraint on (tenant_id, phone): the insert runs in a SAVEPOINT
    and a uniqueness violation falls back to fetching the winner's row.
    The outer transaction is left untouched.

    Args:
        session: SQLAlchemy session
        tenant_id: Tenant ID
        phone: Phone number as typed by the client
        name: Client name (only used when creating)

    Returns:
        Client: existing or newly created client
    """
    canonical = normalize_phone(phone)
    name = (name or '').strip()

    client = find_client_by_phone(session, tenant_id, canonical)
    if client:
        return client

    if not name:
        raise BusinessLogicError('O nome do cliente é obrigatório.')

    try:
        with session.begin_nested():
            client = Client(tenant_id=tenant_id, name=name, phone=canonical)
            session.add(client)
        logger.info(f"Created client {client.id} for tenant {tenant_id}")
        return client

    except IntegrityError:
        # Race condition: another request created the same phone simultaneously
        logger.info(f"Client with phone {canonical} created concurrently for tenant {tenant_id}, reusing it")
        client = find_client_by_phone(session, tenant_id, canonical)
        if client is None:
            raise
        return client
