"""
Test configuration - pytest fixtures and factory_boy factories.

RUNNING TESTS:
# Run all tests
pytest -v

# Run by marker
pytest -m services -v
pytest -m api -v
pytest -m workflow -v
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import factory
import pytest
from django.utils import timezone
from factory.django import DjangoModelFactory


# ============================================================================
# USER FACTORIES
# ============================================================================

class UserFactory(DjangoModelFactory):
    """Factory for the custom User model."""

    class Meta:
        model = 'users.User'
        skip_postgeneration_save = True

    username = factory.LazyAttribute(lambda o: f"user_{uuid.uuid4().hex[:8]}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    user_type = 'homeowner'
    password = factory.PostGenerationMethodCall('set_password', 'testpass123')
    is_active = True

    @factory.post_generation
    def save_password(obj, create, extracted, **kwargs):
        if create:
            obj.save()


class HomeownerFactory(DjangoModelFactory):
    """Homeowner profile; ``homeowner.user`` is the account that posts jobs."""

    class Meta:
        model = 'users.Homeowner'

    user = factory.SubFactory(UserFactory, user_type='homeowner')
    property_type = 'house'
    driveway_size = 'medium'


class WorkerFactory(DjangoModelFactory):
    """Worker profile for a teenage worker."""

    class Meta:
        model = 'users.Worker'

    user = factory.SubFactory(UserFactory, user_type='worker')
    age = 15
    bio = factory.Faker('sentence')
    travel_radius_miles = 3
    available_now = True
    verified = True


class ParentConsentFactory(DjangoModelFactory):
    """Pending consent request; pass ``consent_given=True`` for a granted one."""

    class Meta:
        model = 'users.ParentConsent'

    worker = factory.LazyAttribute(lambda o: WorkerFactory(verified=False).user)
    parent_email = factory.Faker('email')
    parent_name = factory.Faker('name')
    consent_token = factory.LazyFunction(lambda: uuid.uuid4().hex)
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=7))


# ============================================================================
# JOB FACTORIES
# ============================================================================

class JobFactory(DjangoModelFactory):
    """Posted job. Pass ``worker`` and a later ``status`` to build jobs further along."""

    class Meta:
        model = 'jobs.Job'

    homeowner = factory.LazyAttribute(lambda o: HomeownerFactory().user)
    worker = None
    status = 'posted'
    service_type = 'driveway'
    address = factory.Faker('street_address')
    city = 'Burlington'
    zip = '05401'
    lat = 44.4759
    lng = -73.2121
    price_offered = Decimal('40.00')
    payment_method = 'cash'
    payment_status = 'pending'


class RatingFactory(DjangoModelFactory):

    class Meta:
        model = 'jobs.Rating'

    job = factory.SubFactory(
        JobFactory, status='completed', worker=factory.LazyFunction(lambda: WorkerFactory().user)
    )
    rater = factory.LazyAttribute(lambda o: o.job.homeowner)
    rated = factory.LazyAttribute(lambda o: o.job.worker)
    rater_type = 'homeowner'
    rating = 5


# ============================================================================
# EARNINGS FACTORIES
# ============================================================================

class EarningFactory(DjangoModelFactory):
    """Completed cash earning; ``job`` defaults to a reviewed job for ``user``."""

    class Meta:
        model = 'earnings.Earning'

    user = factory.LazyAttribute(lambda o: WorkerFactory().user)
    job = factory.LazyAttribute(lambda o: JobFactory(worker=o.user, status='reviewed'))
    gross_amount = Decimal('40.00')
    platform_fee = Decimal('0.00')
    future_fund_contribution = Decimal('0.00')
    net_amount = Decimal('40.00')
    payment_method = 'cash'
    status = 'completed'


class SavingsGoalFactory(DjangoModelFactory):

    class Meta:
        model = 'earnings.SavingsGoal'

    user = factory.LazyAttribute(lambda o: WorkerFactory().user)
    name = 'New shovel'
    target_amount = Decimal('100.00')
    current_amount = Decimal('0.00')


# ============================================================================
# PYTEST FIXTURES
# ============================================================================

@pytest.fixture
def user_factory(db):
    """Provide UserFactory for tests."""
    return UserFactory


@pytest.fixture
def homeowner_factory(db):
    return HomeownerFactory


@pytest.fixture
def worker_factory(db):
    return WorkerFactory


@pytest.fixture
def parent_consent_factory(db):
    return ParentConsentFactory


@pytest.fixture
def job_factory(db):
    return JobFactory


@pytest.fixture
def rating_factory(db):
    return RatingFactory


@pytest.fixture
def earning_factory(db):
    return EarningFactory


@pytest.fixture
def savings_goal_factory(db):
    return SavingsGoalFactory


@pytest.fixture
def homeowner(db):
    """User account with a homeowner profile."""
    return HomeownerFactory().user


@pytest.fixture
def worker(db):
    """User account with a worker profile."""
    return WorkerFactory().user


@pytest.fixture
def other_worker(db):
    return WorkerFactory().user


@pytest.fixture
def unverified_worker(db):
    """Worker whose parent has not granted consent yet."""
    return WorkerFactory(verified=False, available_now=False).user


@pytest.fixture
def parent(db):
    return UserFactory(user_type='parent')


@pytest.fixture
def posted_job(db, homeowner):
    return JobFactory(homeowner=homeowner)


@pytest.fixture
def completed_job(db, homeowner, worker):
    """Card job worked through to completion by ``worker``."""
    now = timezone.now()
    return JobFactory(
        homeowner=homeowner,
        worker=worker,
        status='completed',
        payment_method='card',
        claimed_at=now,
        confirmed_at=now,
        started_at=now,
        completed_at=now,
    )


@pytest.fixture
def api_client(db):
    """Provide a DRF API test client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def homeowner_client(db, homeowner):
    from rest_framework.test import APIClient
    client = APIClient()
    client.force_authenticate(user=homeowner)
    return client


@pytest.fixture
def worker_client(db, worker):
    from rest_framework.test import APIClient
    client = APIClient()
    client.force_authenticate(user=worker)
    return client
