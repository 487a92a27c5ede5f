import pytest
from datetime import datetime, timedelta, timezone as dt_timezone

from apps.notifications.models import NotificationThrottle
from apps.notifications.rate_limiter import NotificationRateLimiter, limiter_for

START = datetime(2026, 1, 10, 8, 0, tzinfo=dt_timezone.utc)


class FakeClock:

    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.mark.services
@pytest.mark.django_db
class TestNotificationRateLimiter:

    def test_first_send_allowed(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        assert limiter.can_notify(12) is True
        assert NotificationThrottle.objects.get(key='7:new_job').last_sent_at == START

    def test_second_send_inside_window_denied(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        limiter.can_notify(12)

        clock.advance(hours=11, minutes=59)

        assert limiter.can_notify(12) is False
        # A denied check does not move the window.
        assert NotificationThrottle.objects.get(key='7:new_job').last_sent_at == START

    def test_allowed_again_at_window_boundary(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        limiter.can_notify(12)

        clock.advance(hours=12)

        assert limiter.can_notify(12) is True
        assert NotificationThrottle.objects.get(key='7:new_job').last_sent_at == START + timedelta(hours=12)

    def test_keys_are_independent(self, clock):
        assert limiter_for(7, 'new_job', clock=clock).can_notify(12) is True
        assert limiter_for(7, 'new_rating', clock=clock).can_notify(12) is True
        assert limiter_for(8, 'new_job', clock=clock).can_notify(12) is True
        assert limiter_for(7, 'new_job', clock=clock).can_notify(12) is False

    def test_reset_clears_cooldown(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        limiter.can_notify(12)

        limiter.reset()

        assert limiter.can_notify(12) is True

    def test_time_until_allowed(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        assert limiter.time_until_allowed(12) == timedelta(0)

        limiter.can_notify(12)
        clock.advance(hours=3)

        assert limiter.time_until_allowed(12) == timedelta(hours=9)
        clock.advance(hours=10)
        assert limiter.time_until_allowed(12) == timedelta(0)

    def test_time_until_allowed_is_read_only(self, clock):
        limiter = NotificationRateLimiter('7:new_job', clock=clock)
        limiter.time_until_allowed(12)
        assert not NotificationThrottle.objects.exists()
