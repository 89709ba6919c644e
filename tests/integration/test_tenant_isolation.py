"""
Critical integration tests for tenant isolation.
These tests ensure that data is properly isolated between tenants.
"""

from datetime import date, datetime, timezone

from app.models import Appointment, Barber, Client, UserRole
from app.services.booking_service import reserve_slot
from app.services.dashboard_service import get_dashboard_data


DAY = date(2024, 6, 10)
NOW = datetime(2024, 6, 9, 15, 0, tzinfo=timezone.utc)


class TestDataIsolation:
    """Service-level queries never cross tenants."""

    def test_same_phone_two_tenants(self, session, tenant1, tenant2, barber_factory):
        barber1 = barber_factory(tenant1)
        barber2 = barber_factory(tenant2)

        first = reserve_slot(session, barber1.id, DAY, '10:00', 'Ana', '11988887777', now=NOW)
        second = reserve_slot(session, barber2.id, DAY, '10:00', 'Ana', '11988887777', now=NOW)
        session.commit()

        assert first.client_id != second.client_id
        assert session.query(Client).filter(Client.tenant_id == tenant1.id).count() == 1
        assert session.query(Client).filter(Client.tenant_id == tenant2.id).count() == 1

    def test_dashboard_counts_only_own_appointments(self, session, tenant1, tenant2, barber_factory):
        barber1 = barber_factory(tenant1)
        barber2 = barber_factory(tenant2)
        reserve_slot(session, barber1.id, DAY, '09:00', 'Ana', '1100000001', now=NOW)
        reserve_slot(session, barber2.id, DAY, '09:00', 'Bia', '1100000002', now=NOW)
        reserve_slot(session, barber2.id, DAY, '10:00', 'Caio', '1100000003', now=NOW)
        session.commit()

        data = get_dashboard_data(session, tenant1.id, DAY)

        assert data['appointments_today'] == 1
        assert data['upcoming_count'] == 1
        assert data['client_count'] == 1
        assert data['barber_count'] == 1


class TestRouteIsolation:
    """Owners only reach their own /<slug>/ pages."""

    def test_other_tenant_dashboard_redirects_home(self, authenticated_client, tenant1, tenant2):
        own, other = tenant1.slug, tenant2.slug
        response = authenticated_client.get(f'/{other}/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == f'/{own}/dashboard'

    def test_barbers_listing_is_scoped(self, authenticated_client, tenant1, tenant2, barber_factory):
        own_barber = barber_factory(tenant1)
        barber_factory(tenant2)
        slug, own_id = tenant1.slug, own_barber.id

        response = authenticated_client.get(f'/{slug}/barbers')
        assert response.status_code == 200
        assert [item['id'] for item in response.get_json()['barbers']] == [own_id]

    def test_cannot_edit_other_tenant_barber(self, authenticated_client, tenant1, tenant2, barber_factory):
        foreign_barber = barber_factory(tenant2)
        slug, foreign_id = tenant1.slug, foreign_barber.id

        response = authenticated_client.post(
            f'/{slug}/barbers/{foreign_id}/working-hours',
            json={'weekday': 0, 'start_time': '08:00', 'end_time': '17:00'}
        )
        assert response.status_code == 404

    def test_cannot_update_other_tenant_appointment(self, session, authenticated_client, tenant1, tenant2,
                                                     barber_factory):
        foreign_barber = barber_factory(tenant2)
        appointment = reserve_slot(session, foreign_barber.id, DAY, '10:00', 'Ana', '11988887777', now=NOW)
        session.commit()
        slug, appointment_id = tenant1.slug, appointment.id

        response = authenticated_client.post(
            f'/{slug}/appointments/{appointment_id}/status', json={'status': 'CANCELLED'}
        )
        assert response.status_code == 404


class TestBarbershopRoutes:
    """Owner management pages."""

    def test_create_barber_and_schedule(self, authenticated_client, session, tenant1):
        slug = tenant1.slug

        response = authenticated_client.post(f'/{slug}/barbers', json={'name': 'Rafael', 'slot_minutes': 30})
        assert response.status_code == 201
        barber_id = response.get_json()['barber']['id']

        response = authenticated_client.post(f'/{slug}/barbers/{barber_id}/working-hours', json={
            'weekday': 0, 'start_time': '09:00', 'end_time': '18:00',
            'break_start': '12:00', 'break_end': '13:00'
        })
        assert response.status_code == 200
        hours = response.get_json()['barber']['working_hours']
        assert hours == [{'weekday': 0, 'start_time': '09:00', 'end_time': '18:00',
                          'break_start': '12:00', 'break_end': '13:00'}]

        response = authenticated_client.post(f'/{slug}/barbers/{barber_id}/overrides', json={
            'date': '2030-01-07', 'available': False
        })
        assert response.status_code == 201

        response = authenticated_client.delete(f'/{slug}/barbers/{barber_id}/working-hours/0')
        assert response.get_json()['barber']['working_hours'] == []
        assert session.get(Barber, barber_id).tenant_id is not None

    def test_invalid_working_hours(self, authenticated_client, tenant1, barber):
        slug, barber_id = tenant1.slug, barber.id
        response = authenticated_client.post(f'/{slug}/barbers/{barber_id}/working-hours', json={
            'weekday': 1, 'start_time': '18:00', 'end_time': '09:00'
        })
        assert response.status_code == 400

    def test_schedule_times_on_five_minute_marks(self, authenticated_client, tenant1, barber):
        slug, barber_id = tenant1.slug, barber.id
        response = authenticated_client.post(f'/{slug}/barbers/{barber_id}/working-hours', json={
            'weekday': 1, 'start_time': '09:07', 'end_time': '18:00'
        })
        assert response.status_code == 400

        response = authenticated_client.post(f'/{slug}/barbers', json={'name': 'Rafael', 'slot_minutes': 7})
        assert response.status_code == 400

    def test_create_service(self, authenticated_client, tenant1):
        slug = tenant1.slug
        response = authenticated_client.post(f'/{slug}/services', json={
            'name': 'Barba', 'price': '25.50', 'duration_minutes': 30
        })
        assert response.status_code == 201
        assert response.get_json()['service']['price'] == '25.50'

    def test_complete_appointment_and_dashboard(self, session, authenticated_client, tenant1, barber, service):
        appointment = reserve_slot(session, barber.id, DAY, '10:00', 'Ana', '11988887777',
                                   service_id=service.id, now=NOW)
        session.commit()
        slug, appointment_id = tenant1.slug, appointment.id

        response = authenticated_client.post(f'/{slug}/appointments/{appointment_id}/status',
                                             json={'status': 'completed'})
        assert response.status_code == 200
        assert response.get_json()['appointment']['status'] == 'COMPLETED'

        response = authenticated_client.get(f'/{slug}/dashboard')
        assert response.status_code == 200
        assert response.get_json()['revenue_completed'] == '35.00'

    def test_clients_and_settings(self, session, authenticated_client, tenant1, barber):
        reserve_slot(session, barber.id, DAY, '10:00', 'Ana', '11988887777', now=NOW)
        session.commit()
        slug = tenant1.slug

        response = authenticated_client.get(f'/{slug}/clients', query_string={'q': 'ana'})
        assert [item['phone'] for item in response.get_json()['clients']] == ['11988887777']

        response = authenticated_client.post(f'/{slug}/settings', json={'timezone': 'Mars/Olympus'})
        assert response.status_code == 400

        response = authenticated_client.post(f'/{slug}/settings', json={'address': 'Rua A, 10'})
        assert response.get_json()['tenant']['address'] == 'Rua A, 10'


class TestBarberArea:
    """Barbers see their own agenda; owner pages stay closed."""

    def test_barber_pages(self, client, session, tenant1, barber_factory, user_factory, login_as):
        user = user_factory(tenant1, UserRole.BARBEIRO)
        barber = barber_factory(tenant1, user=user)
        slug = tenant1.slug
        login_as(user.id)

        assert client.get('/barbeiro/appointments').status_code == 200
        assert client.get(f'/{slug}/dashboard').status_code == 200

        response = client.get(f'/{slug}/barbers')
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'

        response = client.get('/barbeiro/availability', query_string={'date': '2030-01-07'})
        assert response.status_code == 200
        assert len(response.get_json()['slots']) == 3

    def test_barber_without_profile_is_anonymous(self, client, tenant1, user_factory, login_as):
        user = user_factory(tenant1, UserRole.BARBEIRO)
        login_as(user.id)
        response = client.get('/barbeiro/appointments')
        assert response.headers['Location'] == '/login'


class TestAdminArea:

    def test_admin_dashboard_and_trial_extension(self, client, tenant1, admin_user, login_as):
        tenant_id = tenant1.id
        login_as(admin_user.id)

        response = client.get('/admin/dashboard')
        assert response.status_code == 200
        assert response.get_json()['tenant_count'] == 1

        response = client.post(f'/admin/tenants/{tenant_id}/extend-trial', json={'days': 10})
        assert response.status_code == 200
        assert response.get_json()['tenant']['trial_expires_at'] is not None

    def test_owner_cannot_open_admin(self, authenticated_client):
        response = authenticated_client.get('/admin/dashboard')
        assert response.status_code == 302
        assert response.headers['Location'] == '/login'
