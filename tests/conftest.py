import pytest
from datetime import time
import uuid
from decimal import Decimal

from app import create_app
from app.database import create_all, drop_all, get_session
from app.models import (
    Tenant, AppUser, UserRole, Barber, WorkingHours, Service
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    return create_app('config.TestingConfig')


@pytest.fixture(autouse=True)
def database(app):
    """Fresh schema for every test."""
    create_all()
    yield
    get_session().remove()
    drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session():
    """Create database session for testing."""
    session = get_session()
    yield session
    session.rollback()


def make_tenant(session, name='Barbearia Teste', onboarding_complete=True, trial_expires_at=None):
    suffix = str(uuid.uuid4())[:8]
    tenant = Tenant(
        slug=f'barbearia-{suffix}',
        name=f'{name} {suffix}',
        onboarding_complete=onboarding_complete,
        timezone='America/Sao_Paulo',
        trial_expires_at=trial_expires_at,
        active=True
    )
    session.add(tenant)
    session.commit()
    return tenant


def make_user(session, tenant=None, role=UserRole.BARBEARIA):
    suffix = str(uuid.uuid4())[:8]
    user = AppUser(
        email=f'user-{suffix}@test.com',
        full_name='João Silva',
        role=role.value,
        tenant_id=tenant.id if tenant else None,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


def make_barber(session, tenant, slot_minutes=60, start=time(9, 0), end=time(12, 0),
                break_start=None, break_end=None, user=None):
    """Barber working the same hours every day of the week."""
    barber = Barber(
        tenant_id=tenant.id,
        user_id=user.id if user else None,
        name='Carlos',
        slot_minutes=slot_minutes,
        active=True
    )
    barber.working_hours = [
        WorkingHours(weekday=weekday, start_time=start, end_time=end,
                     break_start=break_start, break_end=break_end)
        for weekday in range(7)
    ]
    session.add(barber)
    session.commit()
    return barber


@pytest.fixture(scope='function')
def tenant1(session):
    """Create first test tenant."""
    return make_tenant(session, 'Barbearia Um')


@pytest.fixture(scope='function')
def tenant2(session):
    """Create second test tenant for isolation tests."""
    return make_tenant(session, 'Barbearia Dois')


@pytest.fixture(scope='function')
def owner1(session, tenant1):
    """Barbershop owner of tenant1."""
    return make_user(session, tenant1, UserRole.BARBEARIA)


@pytest.fixture(scope='function')
def owner2(session, tenant2):
    """Barbershop owner of tenant2."""
    return make_user(session, tenant2, UserRole.BARBEARIA)


@pytest.fixture(scope='function')
def admin_user(session):
    return make_user(session, None, UserRole.ADMIN)


@pytest.fixture(scope='function')
def barber(session, tenant1):
    """Barber of tenant1 with 09:00-12:00 every day and 60 minute slots."""
    return make_barber(session, tenant1)


@pytest.fixture(scope='function')
def service(session, tenant1):
    service = Service(tenant_id=tenant1.id, name='Corte', price=Decimal('35.00'), duration_minutes=60, active=True)
    session.add(service)
    session.commit()
    return service


def login(client, user_id):
    with client.session_transaction() as sess:
        sess['user_id'] = user_id
    return client


@pytest.fixture(scope='function')
def authenticated_client(client, owner1):
    """Create authenticated client for the owner of tenant1."""
    return login(client, owner1.id)


@pytest.fixture
def tenant_factory(session):
    return lambda **kwargs: make_tenant(session, **kwargs)


@pytest.fixture
def user_factory(session):
    return lambda tenant=None, role=UserRole.BARBEARIA: make_user(session, tenant, role)


@pytest.fixture
def barber_factory(session):
    return lambda tenant, **kwargs: make_barber(session, tenant, **kwargs)


@pytest.fixture
def login_as(client):
    return lambda user_id: login(client, user_id)
