"""
Unit tests for the access gate decision function.
"""

import pytest
from datetime import datetime, timedelta, timezone

from app.middleware.access_gate import (
    ALLOW, Identity, Verdict, VerdictKind, decide,
    INITIAL_SETUP_PATH, LOGIN_PATH, TRIAL_EXPIRED_PATH
)
from app.models import UserRole


NOW = datetime(2024, 6, 10, 15, 0, tzinfo=timezone.utc)
YESTERDAY = NOW - timedelta(days=1)
NEXT_WEEK = NOW + timedelta(days=7)

OWNER_AND_BARBER = {UserRole.BARBEARIA, UserRole.BARBEIRO}


def owner(onboarding_pending=False, trial_expires_at=None, slug='joe'):
    return Identity(
        user_id=1,
        role=UserRole.BARBEARIA,
        tenant_id=10,
        tenant_slug=slug,
        onboarding_pending=onboarding_pending,
        trial_expires_at=trial_expires_at
    )


def barber(trial_expires_at=None, slug='joe'):
    return Identity(
        user_id=2,
        role=UserRole.BARBEIRO,
        tenant_id=10,
        tenant_slug=slug,
        trial_expires_at=trial_expires_at,
        barber_id=5
    )


ADMIN = Identity(user_id=3, role=UserRole.ADMIN)


class TestVerdict:
    """Tests for the Verdict variant."""

    def test_allow(self):
        assert ALLOW.allowed is True
        assert ALLOW.kind == VerdictKind.ALLOW
        assert str(ALLOW) == 'ALLOW'

    def test_redirect(self):
        verdict = Verdict.redirect('/login')
        assert verdict.allowed is False
        assert verdict.target == '/login'
        assert str(verdict) == 'REDIRECT(/login)'


class TestRuleOrder:
    """Each rule, in evaluation order."""

    def test_anonymous_goes_to_login(self):
        assert decide(None, '/joe/dashboard', OWNER_AND_BARBER, NOW) == Verdict.redirect(LOGIN_PATH)

    def test_anonymous_on_setup_page_goes_to_login(self):
        assert decide(None, INITIAL_SETUP_PATH, {UserRole.BARBEARIA}, NOW) == Verdict.redirect(LOGIN_PATH)

    def test_pending_onboarding_redirects_to_setup(self):
        verdict = decide(owner(onboarding_pending=True), '/joe/dashboard', OWNER_AND_BARBER, NOW)
        assert verdict == Verdict.redirect(INITIAL_SETUP_PATH)

    def test_pending_onboarding_allows_setup_page(self):
        verdict = decide(owner(onboarding_pending=True), INITIAL_SETUP_PATH, {UserRole.BARBEARIA}, NOW)
        assert verdict == ALLOW

    def test_setup_page_unreachable_once_complete(self):
        verdict = decide(owner(), INITIAL_SETUP_PATH, {UserRole.BARBEARIA}, NOW)
        assert verdict == Verdict.redirect('/joe/dashboard')

    def test_setup_page_without_slug_goes_to_role_home(self):
        verdict = decide(ADMIN, INITIAL_SETUP_PATH, {UserRole.BARBEARIA}, NOW)
        assert verdict == Verdict.redirect('/admin/dashboard')

    def test_expired_trial_redirects(self):
        """Owner with a trial that ended yesterday."""
        verdict = decide(owner(trial_expires_at=YESTERDAY), '/joe/dashboard', OWNER_AND_BARBER, NOW)
        assert verdict == Verdict.redirect(TRIAL_EXPIRED_PATH)

    def test_expired_trial_applies_to_barbers_too(self):
        verdict = decide(barber(trial_expires_at=YESTERDAY), '/joe/dashboard', OWNER_AND_BARBER, NOW)
        assert verdict == Verdict.redirect(TRIAL_EXPIRED_PATH)

    def test_trial_expiring_exactly_now_is_still_active(self):
        verdict = decide(owner(trial_expires_at=NOW), '/joe/dashboard', OWNER_AND_BARBER, NOW)
        assert verdict == ALLOW

    def test_wrong_role_goes_to_login(self):
        verdict = decide(barber(), '/joe/settings', {UserRole.BARBEARIA}, NOW)
        assert verdict == Verdict.redirect(LOGIN_PATH)

    def test_admin_on_tenant_page_goes_to_login(self):
        verdict = decide(ADMIN, '/joe/dashboard', OWNER_AND_BARBER, NOW, route_slug='joe')
        assert verdict == Verdict.redirect(LOGIN_PATH)

    def test_other_tenant_slug_redirects_to_own_dashboard(self):
        verdict = decide(owner(), '/bob/dashboard', OWNER_AND_BARBER, NOW, route_slug='bob')
        assert verdict == Verdict.redirect('/joe/dashboard')

    def test_barber_allowed_on_dashboard(self):
        """BARBEIRO of 'joe' requesting /joe/dashboard."""
        verdict = decide(barber(), '/joe/dashboard', OWNER_AND_BARBER, NOW, route_slug='joe')
        assert verdict == ALLOW

    def test_admin_allowed_on_admin_pages(self):
        assert decide(ADMIN, '/admin/dashboard', {UserRole.ADMIN}, NOW) == ALLOW

    def test_admin_is_exempt_from_trial(self):
        assert decide(ADMIN, '/admin/dashboard', {UserRole.ADMIN}, NOW).allowed


class TestOrderInvariants:
    """Properties that depend on the order of the rules."""

    @pytest.mark.parametrize('trial_expires_at', [None, YESTERDAY, NEXT_WEEK])
    @pytest.mark.parametrize('path', ['/joe/dashboard', '/joe/settings', '/barbeiro/appointments', '/admin/dashboard'])
    def test_onboarding_checked_before_trial_and_role(self, trial_expires_at, path):
        identity = owner(onboarding_pending=True, trial_expires_at=trial_expires_at)
        for roles in ({UserRole.BARBEARIA}, {UserRole.ADMIN}, OWNER_AND_BARBER):
            assert decide(identity, path, roles, NOW) == Verdict.redirect(INITIAL_SETUP_PATH)

    def test_onboarding_flag_ignored_for_barbers(self):
        identity = Identity(user_id=2, role=UserRole.BARBEIRO, tenant_id=10, tenant_slug='joe',
                            onboarding_pending=True, barber_id=5)
        assert decide(identity, '/joe/dashboard', OWNER_AND_BARBER, NOW, route_slug='joe') == ALLOW

    def test_trial_checked_before_role(self):
        verdict = decide(barber(trial_expires_at=YESTERDAY), '/admin/dashboard', {UserRole.ADMIN}, NOW)
        assert verdict == Verdict.redirect(TRIAL_EXPIRED_PATH)

    def test_verdict_flips_with_the_clock(self):
        identity = owner(trial_expires_at=NEXT_WEEK)
        assert decide(identity, '/joe/dashboard', OWNER_AND_BARBER, NOW) == ALLOW
        later = NEXT_WEEK + timedelta(seconds=1)
        assert decide(identity, '/joe/dashboard', OWNER_AND_BARBER, later) == Verdict.redirect(TRIAL_EXPIRED_PATH)

    def test_naive_expiry_is_treated_as_utc(self):
        identity = owner(trial_expires_at=YESTERDAY.replace(tzinfo=None))
        assert decide(identity, '/joe/dashboard', OWNER_AND_BARBER, NOW) == Verdict.redirect(TRIAL_EXPIRED_PATH)

    def test_query_string_and_trailing_slash_ignored(self):
        identity = owner(onboarding_pending=True)
        assert decide(identity, '/initial-setup/?next=/joe', {UserRole.BARBEARIA}, NOW) == ALLOW
