import pytest
from decimal import Decimal
from unittest.mock import patch

from apps.earnings.models import SavingsGoal
from apps.jobs.models import Job
from core.exceptions import PaymentGatewayError


@pytest.mark.api
@pytest.mark.django_db
class TestEarningsAPI:

    def test_summary_counts_completed_only(self, worker_client, worker, earning_factory):
        earning_factory(user=worker, net_amount=Decimal('40.00'))
        earning_factory(user=worker, net_amount=Decimal('20.00'), status='pending')

        response = worker_client.get('/api/earnings/summary/')

        assert response.status_code == 200
        assert Decimal(response.data['total_earned']) == Decimal('40.00')
        assert response.data['jobs_completed'] == 1

    def test_summary_requires_worker(self, homeowner_client):
        assert homeowner_client.get('/api/earnings/summary/').status_code == 403

    def test_list_only_own_earnings(self, worker_client, worker, earning_factory):
        mine = earning_factory(user=worker)
        earning_factory()

        response = worker_client.get('/api/earnings/')

        assert [e['id'] for e in response.data] == [mine.id]
        assert response.data[0]['job_service_type'] == 'driveway'

    def test_weekly_series_length(self, worker_client):
        response = worker_client.get('/api/earnings/weekly/', {'periods': 4})

        assert response.status_code == 200
        assert len(response.data) == 4
        assert all(Decimal(row['amount']) == 0 for row in response.data)

    def test_monthly_series_rejects_bad_periods(self, worker_client):
        assert worker_client.get('/api/earnings/monthly/', {'periods': 0}).status_code == 400

    def test_growth_calculator(self, homeowner_client):
        response = homeowner_client.get('/api/earnings/growth-calculator/', {'principal': '1000', 'years': 10})

        assert response.status_code == 200
        assert response.data['projected_value'] == '1967.15'
        assert response.data['growth'] == '967.15'


@pytest.mark.api
@pytest.mark.django_db
class TestSavingsGoalsAPI:

    url = '/api/earnings/goals/'

    def test_create_and_list(self, worker_client, worker):
        created = worker_client.post(self.url, {'name': 'Snowboard', 'target_amount': '300.00'}, format='json')

        assert created.status_code == 201
        listed = worker_client.get(self.url)
        assert [g['name'] for g in listed.data['goals']] == ['Snowboard']
        assert listed.data['progress']['total_goals'] == 1

    def test_deposit_and_delete(self, worker_client, worker, savings_goal_factory):
        goal = savings_goal_factory(user=worker, target_amount=Decimal('20.00'))

        deposit = worker_client.post(f'{self.url}{goal.id}/', {'amount': '20.00'}, format='json')

        assert deposit.status_code == 200
        assert deposit.data['achieved'] is True
        assert deposit.data['progress'] == 100.0

        assert worker_client.delete(f'{self.url}{goal.id}/').status_code == 204
        assert not SavingsGoal.objects.filter(pk=goal.id).exists()

    def test_cannot_touch_other_workers_goal(self, worker_client, savings_goal_factory):
        goal = savings_goal_factory()
        assert worker_client.delete(f'{self.url}{goal.id}/').status_code == 404


@pytest.mark.api
@pytest.mark.django_db
class TestJobPaymentAPI:

    @pytest.fixture
    def card_job(self, job_factory, homeowner, worker):
        return job_factory(homeowner=homeowner, worker=worker, status='confirmed', payment_method='card')

    @patch('apps.earnings.payments.get_gateway')
    def test_starts_payment(self, mock_get_gateway, homeowner_client, card_job):
        mock_get_gateway.return_value.create_charge.return_value = 'pi_api_1'

        response = homeowner_client.post(f'/api/jobs/{card_job.id}/pay/')

        assert response.status_code == 202
        assert response.data['payment_reference'] == 'pi_api_1'
        assert Job.objects.get(pk=card_job.pk).payment_status == 'processing'

    @patch('apps.earnings.payments.get_gateway')
    def test_gateway_outage_is_503(self, mock_get_gateway, homeowner_client, card_job):
        mock_get_gateway.return_value.create_charge.side_effect = PaymentGatewayError('timeout')

        response = homeowner_client.post(f'/api/jobs/{card_job.id}/pay/')

        assert response.status_code == 503
        assert 'timeout' not in str(response.data)
        assert Job.objects.get(pk=card_job.pk).payment_status == 'pending'

    def test_worker_cannot_pay(self, worker_client, card_job):
        assert worker_client.post(f'/api/jobs/{card_job.id}/pay/').status_code == 403
