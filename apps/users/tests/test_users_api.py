import pytest

from rest_framework.authtoken.models import Token

from apps.users.models import Homeowner, ParentConsent, User, Worker


SIGNUP = {
    'username': 'maplekid',
    'password': 'Sn0wDay!2026',
    'confirm_password': 'Sn0wDay!2026',
    'first_name': 'Sam',
    'last_name': 'Rivera',
    'email': 'sam@example.com',
}


@pytest.mark.api
@pytest.mark.django_db
class TestSignupAPI:

    url = '/api/auth/signup/'

    def test_worker_signup_creates_profile_and_token(self, api_client):
        response = api_client.post(self.url, {**SIGNUP, 'role': 'worker', 'age': 15}, format='json')

        assert response.status_code == 201
        user = User.objects.get(username='maplekid')
        assert response.data['token'] == Token.objects.get(user=user).key
        assert response.data['user']['role'] == 'worker'
        assert Worker.objects.get(user=user).age == 15

    def test_worker_signup_with_parent_email_requests_consent(self, api_client):
        payload = {**SIGNUP, 'role': 'worker', 'age': 14, 'parent_email': 'mom@example.com'}

        response = api_client.post(self.url, payload, format='json')

        assert response.status_code == 201
        worker = Worker.objects.get(user__username='maplekid')
        assert worker.verified is False
        consent = ParentConsent.objects.get(worker=worker.user)
        assert consent.parent_email == 'mom@example.com'
        assert consent.consent_given is False

    def test_parent_signup_has_no_profile(self, api_client):
        response = api_client.post(self.url, {**SIGNUP, 'role': 'parent'}, format='json')

        assert response.status_code == 201
        user = User.objects.get(username='maplekid')
        assert user.user_type == 'parent'
        assert not user.is_homeowner and not user.is_worker

    def test_homeowner_signup_with_phone_only(self, api_client):
        payload = {**SIGNUP, 'role': 'homeowner', 'email': None, 'phone_number': '+18025550199'}

        response = api_client.post(self.url, payload, format='json')

        assert response.status_code == 201
        user = User.objects.get(username='maplekid')
        assert user.email is None
        assert Homeowner.objects.filter(user=user).exists()

    def test_worker_must_give_age(self, api_client):
        response = api_client.post(self.url, {**SIGNUP, 'role': 'worker'}, format='json')
        assert response.status_code == 400
        assert 'age' in response.data

    @pytest.mark.parametrize('age', [12, 20])
    def test_worker_age_range(self, api_client, age):
        response = api_client.post(self.url, {**SIGNUP, 'role': 'worker', 'age': age}, format='json')
        assert response.status_code == 400

    def test_duplicate_email(self, api_client, user_factory):
        user_factory(email='sam@example.com')
        response = api_client.post(self.url, {**SIGNUP, 'role': 'homeowner'}, format='json')
        assert response.status_code == 400
        assert 'email' in response.data

    def test_password_mismatch(self, api_client):
        payload = {**SIGNUP, 'role': 'homeowner', 'confirm_password': 'different-pass-1'}
        response = api_client.post(self.url, payload, format='json')
        assert response.status_code == 400


@pytest.mark.api
@pytest.mark.django_db
class TestLoginAPI:

    url = '/api/auth/login/'

    @pytest.mark.parametrize('identifier', ['username', 'email'])
    def test_login_by_username_or_email(self, api_client, user_factory, identifier):
        user = user_factory()

        response = api_client.post(
            self.url, {'identifier': getattr(user, identifier), 'password': 'testpass123'}, format='json'
        )

        assert response.status_code == 200
        assert response.data['user']['id'] == user.id

    def test_wrong_password(self, api_client, user_factory):
        user = user_factory()
        response = api_client.post(self.url, {'identifier': user.username, 'password': 'nope'}, format='json')
        assert response.status_code == 400

    def test_logout_deletes_token(self, homeowner_client, homeowner):
        Token.objects.create(user=homeowner)

        response = homeowner_client.post('/api/auth/logout/')

        assert response.status_code == 200
        assert not Token.objects.filter(user=homeowner).exists()


@pytest.mark.api
@pytest.mark.django_db
class TestProfileAPI:

    def test_worker_profile(self, worker_client, worker):
        response = worker_client.get('/api/users/profile/worker/')
        assert response.status_code == 200
        assert response.data['age'] == 15

    def test_homeowner_cannot_read_worker_profile(self, homeowner_client):
        assert homeowner_client.get('/api/users/profile/worker/').status_code == 403

    def test_update_location(self, homeowner_client, homeowner):
        response = homeowner_client.put('/api/users/profile/', {'lat': 44.48, 'lng': -73.21}, format='json')

        assert response.status_code == 200
        homeowner.refresh_from_db()
        assert (homeowner.lat, homeowner.lng) == (44.48, -73.21)


@pytest.mark.api
@pytest.mark.django_db
class TestRatingsAndReviewsAPI:

    def test_rating_stats(self, homeowner_client, worker, rating_factory, job_factory, homeowner):
        for score in (5, 5, 4, 2):
            job = job_factory(homeowner=homeowner, worker=worker, status='completed')
            rating_factory(job=job, rater=homeowner, rated=worker, rating=score)

        response = homeowner_client.get(f'/api/users/{worker.id}/ratings/')

        assert response.status_code == 200
        assert response.data['total_ratings'] == 4
        assert response.data['average_rating'] == 4.0
        assert response.data['rating_breakdown']['5_star'] == 50.0
        assert response.data['rating_breakdown']['1_star'] == 0

    def test_rating_stats_unknown_user(self, homeowner_client):
        assert homeowner_client.get('/api/users/999999/ratings/').status_code == 404

    def test_reviews_hide_private(self, worker_client, worker, rating_factory, job_factory, homeowner):
        public_job = job_factory(homeowner=homeowner, worker=worker, status='completed')
        private_job = job_factory(homeowner=homeowner, worker=worker, status='completed')
        rating_factory(job=public_job, rater=homeowner, rated=worker, review_text='Fast and careful')
        rating_factory(job=private_job, rater=homeowner, rated=worker, is_public=False)

        response = worker_client.get('/api/users/reviews/')

        assert response.status_code == 200
        assert [r['review'] for r in response.data] == ['Fast and careful']
        assert response.data[0]['reviewer']['id'] == homeowner.id
