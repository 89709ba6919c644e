"""
Integration tests for signup, login, initial setup and the trial gate.
"""

from datetime import datetime, timedelta, timezone

from app.models import AppUser, Tenant, UserRole
from app.services.auth_service import placeholder_name


class TestRegistration:
    """Signup creates an owner, a placeholder tenant and a trial window."""

    def test_register_starts_onboarding(self, client, session):
        response = client.post('/register', json={
            'email': 'Joao@Example.com',
            'password': 'segredo123',
            'full_name': 'João Silva'
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['redirect'] == '/initial-setup'
        assert data['tenant']['name'] == 'Barbearia de João'
        assert data['tenant']['onboarding_complete'] is False

        user = session.query(AppUser).filter_by(email='joao@example.com').one()
        assert user.role == UserRole.BARBEARIA.value
        tenant = session.get(Tenant, user.tenant_id)
        assert tenant.trial_expires_at is not None
        assert tenant.trial_started_at is not None

    def test_register_rejects_duplicate_email(self, client, owner1):
        email = owner1.email
        response = client.post('/register', json={'email': email, 'password': 'segredo123', 'full_name': 'Outro'})
        assert response.status_code == 400
        assert response.get_json()['status'] == 'error'

    def test_register_validates_fields(self, client):
        response = client.post('/register', json={'email': 'invalido', 'password': '1', 'full_name': ''})
        assert response.status_code == 400

    def test_placeholder_name(self):
        assert placeholder_name('Maria Souza') == 'Barbearia de Maria'


class TestOnboardingFlow:
    """Pending onboarding sends every page to /initial-setup until it is done."""

    def test_full_flow(self, client):
        response = client.post('/register', json={
            'email': 'ze@example.com', 'password': 'segredo123', 'full_name': 'Zé Souza'
        })
        slug = response.get_json()['tenant']['slug']

        response = client.get(f'/{slug}/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == '/initial-setup'

        response = client.get('/initial-setup')
        assert response.status_code == 200

        response = client.post('/initial-setup', json={'name': 'Barbearia do Zé'})
        assert response.status_code == 200
        data = response.get_json()
        assert data['tenant']['onboarding_complete'] is True
        assert data['redirect'] == '/barbearia-do-ze/dashboard'

        response = client.get('/barbearia-do-ze/dashboard')
        assert response.status_code == 200

        response = client.get('/initial-setup')
        assert response.status_code == 302
        assert response.headers['Location'] == '/barbearia-do-ze/dashboard'

    def test_setup_requires_a_name(self, client):
        client.post('/register', json={'email': 'ana@example.com', 'password': 'segredo123', 'full_name': 'Ana'})
        response = client.post('/initial-setup', json={'name': ''})
        assert response.status_code == 400

    def test_htmx_redirect_header(self, client):
        client.post('/register', json={'email': 'bia@example.com', 'password': 'segredo123', 'full_name': 'Bia'})
        response = client.get('/admin/dashboard', headers={'HX-Request': 'true'})
        assert response.status_code == 302
        assert response.headers['HX-Redirect'] == '/initial-setup'


class TestLogin:

    def test_login_success(self, client, owner1, tenant1):
        email, slug = owner1.email, tenant1.slug
        response = client.post('/login', json={'email': email, 'password': 'password123'})

        assert response.status_code == 200
        assert response.get_json()['redirect'] == f'/{slug}/dashboard'
        assert client.get(f'/{slug}/dashboard').status_code == 200

    def test_login_wrong_password(self, client, owner1):
        response = client.post('/login', json={'email': owner1.email, 'password': 'errada'})
        assert response.status_code == 403

    def test_login_pending_onboarding_lands_on_setup(self, client, tenant_factory, user_factory):
        tenant = tenant_factory(onboarding_complete=False)
        user = user_factory(tenant)
        response = client.post('/login', json={'email': user.email, 'password': 'password123'})
        assert response.get_json()['redirect'] == '/initial-setup'

    def test_login_suspended_tenant(self, client, session, owner1, tenant1):
        tenant1.is_suspended = True
        session.commit()
        response = client.post('/login', json={'email': owner1.email, 'password': 'password123'})
        assert response.status_code == 403

    def test_logout(self, authenticated_client, tenant1):
        slug = tenant1.slug
        assert authenticated_client.post('/logout').status_code == 200
        response = authenticated_client.get(f'/{slug}/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'


class TestTrialGate:

    def test_expired_trial_redirects(self, client, session, tenant_factory, user_factory, login_as):
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        tenant = tenant_factory(trial_expires_at=yesterday)
        user = user_factory(tenant)
        slug, user_id = tenant.slug, user.id
        login_as(user_id)

        response = client.get(f'/{slug}/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == '/trial-expired'

        response = client.get('/trial-expired')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'trial_expired'

    def test_active_trial_allows(self, client, tenant_factory, user_factory, login_as):
        tenant = tenant_factory(trial_expires_at=datetime.now(timezone.utc) + timedelta(days=3))
        user = user_factory(tenant)
        slug = tenant.slug
        login_as(user.id)

        assert client.get(f'/{slug}/dashboard').status_code == 200

    def test_anonymous_redirected_to_login(self, client, tenant1):
        response = client.get(f'/{tenant1.slug}/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'

    def test_login_landing_is_not_a_barbershop_page(self, client, tenant1):
        response = client.get(f'/{tenant1.slug}/dashboard', follow_redirects=True)
        assert response.status_code == 200
        assert response.get_json()['status'] == 'login_required'

    def test_login_landing_for_logged_in_user(self, authenticated_client, tenant1):
        slug = tenant1.slug
        response = authenticated_client.get('/login')
        assert response.get_json() == {'status': 'authenticated', 'redirect': f'/{slug}/dashboard'}
