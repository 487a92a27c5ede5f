import pytest

from rest_framework.test import APIClient

from apps.users.models import Worker
from apps.users.services import WorkerService
from core.results import RejectionCode

BURLINGTON = (44.4759, -73.2121)


def _worker_at(worker_factory, lat, lng, **kwargs):
    return worker_factory(user__lat=lat, user__lng=lng, **kwargs)


@pytest.mark.services
@pytest.mark.django_db
class TestAvailability:

    def test_unverified_worker_cannot_go_online(self, unverified_worker):
        result = WorkerService.set_availability(unverified_worker.id, True)

        assert result.code == RejectionCode.CONSENT_REQUIRED
        assert Worker.objects.get(user=unverified_worker).available_now is False

    def test_going_offline_needs_no_consent(self, worker_factory):
        worker = worker_factory(verified=False, available_now=True)

        assert WorkerService.set_availability(worker.user_id, False).success is True
        assert Worker.objects.get(pk=worker.pk).available_now is False

    def test_verified_worker_goes_online(self, worker_factory):
        worker = worker_factory(available_now=False)

        result = WorkerService.set_availability(worker.user_id, True)

        assert result.data == {'available_now': True}


@pytest.mark.services
@pytest.mark.django_db
class TestAvailableWorkers:

    def test_nearest_first_within_radius(self, worker_factory):
        lat, lng = BURLINGTON
        far = _worker_at(worker_factory, lat + 0.04, lng)
        near = _worker_at(worker_factory, lat + 0.01, lng)
        # Inside the bounding box, outside the radius.
        _worker_at(worker_factory, lat + 0.07, lng + 0.10)
        unlocated = _worker_at(worker_factory, None, None)

        workers = WorkerService.available_workers(lat=lat, lng=lng, radius_miles=5)

        assert [w.id for w in workers] == [near.id, far.id, unlocated.id]
        assert workers[0].distance_miles < workers[1].distance_miles <= 5
        assert workers[2].distance_miles is None

    def test_only_verified_and_available(self, worker_factory):
        lat, lng = BURLINGTON
        online = _worker_at(worker_factory, lat, lng)
        _worker_at(worker_factory, lat, lng, available_now=False)
        _worker_at(worker_factory, lat, lng, verified=False)

        workers = WorkerService.available_workers(lat=lat, lng=lng)

        assert [w.id for w in workers] == [online.id]

    def test_min_rating(self, worker_factory):
        lat, lng = BURLINGTON
        _worker_at(worker_factory, lat, lng, avg_rating=3.5)
        good = _worker_at(worker_factory, lat, lng, avg_rating=4.8)

        workers = WorkerService.available_workers(lat=lat, lng=lng, min_rating=4.5)

        assert [w.id for w in workers] == [good.id]

    def test_without_location_best_rated_first(self, worker_factory):
        ok = worker_factory(avg_rating=4.0)
        best = worker_factory(avg_rating=4.9)

        workers = WorkerService.available_workers()

        assert [w.id for w in workers] == [best.id, ok.id]


@pytest.mark.api
@pytest.mark.django_db
class TestWorkersAPI:

    def test_search_from_query_location(self, homeowner_client, worker_factory):
        lat, lng = BURLINGTON
        nearby = _worker_at(worker_factory, lat + 0.01, lng)
        _worker_at(worker_factory, 40.71, -74.00)

        response = homeowner_client.get('/api/workers/', {'lat': lat, 'lng': lng, 'radius': 5})

        assert response.status_code == 200
        assert [w['id'] for w in response.data] == [nearby.user_id]
        assert response.data[0]['distance_miles'] == pytest.approx(0.69, abs=0.01)

    def test_search_requires_login(self, api_client):
        assert api_client.get('/api/workers/').status_code == 401

    def test_availability_endpoint(self, worker_client, unverified_worker):
        assert worker_client.post(
            '/api/users/profile/worker/availability/', {'available': False}, format='json'
        ).status_code == 200

        client = APIClient()
        client.force_authenticate(user=unverified_worker)
        response = client.post('/api/users/profile/worker/availability/', {'available': True}, format='json')

        assert response.status_code == 403
        assert response.data['code'] == 'consent_required'

    def test_availability_needs_boolean(self, worker_client):
        response = worker_client.post('/api/users/profile/worker/availability/', {}, format='json')
        assert response.status_code == 400
