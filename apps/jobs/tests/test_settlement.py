"""
Rating submission and settlement tests.
"""

import pytest
from decimal import Decimal
from io import StringIO

from django.core import mail
from django.core.management import call_command

from apps.earnings.models import Earning
from apps.earnings.payments import handle_payment_succeeded
from apps.jobs.models import Job, JobStatus, Rating
from apps.jobs.settlement import RatingSubmission, submit_rating, try_settle
from apps.users.models import Homeowner, Worker
from core.results import RejectionCode


def _rate_both(job, homeowner_score=5, worker_score=4):
    first = submit_rating(job.id, job.homeowner_id, RatingSubmission(rating=homeowner_score, review_text='Great job'))
    second = submit_rating(job.id, job.worker_id, RatingSubmission(rating=worker_score))
    return first, second


# ============================================================================
# VALIDATION
# ============================================================================

@pytest.mark.services
@pytest.mark.django_db
class TestSubmitRatingValidation:

    @pytest.mark.parametrize('score', [0, 6, -1, True, 4.5, '5'])
    def test_rejects_invalid_score(self, completed_job, score):
        result = submit_rating(completed_job.id, completed_job.homeowner_id, RatingSubmission(rating=score))

        assert result.code == RejectionCode.INVALID_RATING
        assert not Rating.objects.exists()

    def test_rejects_invalid_category_score(self, completed_job):
        result = submit_rating(
            completed_job.id, completed_job.homeowner_id,
            RatingSubmission(rating=5, quality_rating=9),
        )
        assert result.code == RejectionCode.INVALID_RATING
        assert 'quality_rating' in result.errors

    def test_rejects_outsider(self, completed_job, other_worker):
        result = submit_rating(completed_job.id, other_worker.id, RatingSubmission(rating=5))
        assert result.code == RejectionCode.NOT_PARTY

    def test_rejects_missing_job(self, worker):
        result = submit_rating(123456, worker.id, RatingSubmission(rating=5))
        assert result.code == RejectionCode.NOT_FOUND

    def test_rejects_job_not_completed(self, job_factory, homeowner, worker):
        job = job_factory(homeowner=homeowner, worker=worker, status='in_progress')
        result = submit_rating(job.id, homeowner.id, RatingSubmission(rating=5))
        assert result.code == RejectionCode.INVALID_STATE

    def test_rejects_duplicate(self, completed_job):
        submit_rating(completed_job.id, completed_job.homeowner_id, RatingSubmission(rating=5))
        before = Worker.objects.values('avg_rating', 'total_ratings').get(user_id=completed_job.worker_id)

        again = submit_rating(completed_job.id, completed_job.homeowner_id, RatingSubmission(rating=1))

        assert again.code == RejectionCode.ALREADY_RATED
        assert Rating.objects.filter(job=completed_job).count() == 1
        assert Rating.objects.get(job=completed_job).rating == 5
        after = Worker.objects.values('avg_rating', 'total_ratings').get(user_id=completed_job.worker_id)
        assert after == before == {'avg_rating': 5.0, 'total_ratings': 1}

    def test_rejects_mismatched_rated_user(self, completed_job, other_worker):
        result = submit_rating(
            completed_job.id, completed_job.homeowner_id, RatingSubmission(rating=5), rated_id=other_worker.id
        )
        assert result.code == RejectionCode.INVALID_INPUT

    def test_rated_party_and_type_derived_from_job(self, completed_job):
        result = submit_rating(
            completed_job.id, completed_job.worker_id,
            RatingSubmission(rating=3, payment_rating=4, quality_rating=2),
        )

        rating = result.data['rating']
        assert rating.rated_id == completed_job.homeowner_id
        assert rating.rater_type == 'worker'
        assert rating.payment_rating == 4
        # Homeowner-side categories are not stored on a worker's rating.
        assert rating.quality_rating is None


# ============================================================================
# SETTLEMENT
# ============================================================================

@pytest.mark.services
@pytest.mark.django_db
class TestSettlement:

    def test_first_rating_does_not_settle(self, completed_job):
        result = submit_rating(completed_job.id, completed_job.homeowner_id, RatingSubmission(rating=5))

        assert result.success is True
        assert result.data['settled'] is False
        completed_job.refresh_from_db()
        assert completed_job.status == JobStatus.COMPLETED
        assert not Earning.objects.exists()

    def test_card_job_settles_with_fee_split(self, completed_job, homeowner, worker):
        first, second = _rate_both(completed_job)

        assert first.data['settled'] is False
        assert second.data['settled'] is True

        completed_job.refresh_from_db()
        assert completed_job.status == JobStatus.REVIEWED
        assert completed_job.reviewed_at is not None
        assert completed_job.price_final == Decimal('40.00')

        earning = Earning.objects.get(job=completed_job)
        assert earning.user_id == worker.id
        assert earning.gross_amount == Decimal('40.00')
        assert earning.platform_fee == Decimal('2.80')
        assert earning.future_fund_contribution == Decimal('1.20')
        assert earning.net_amount == Decimal('36.00')
        assert earning.status == 'pending'

        profile = Worker.objects.get(user=worker)
        assert profile.total_earnings == Decimal('36.00')
        assert profile.future_fund_balance == Decimal('1.20')
        assert profile.completed_jobs_count == 1
        assert profile.avg_rating == 5.0
        assert profile.total_ratings == 1

        owner_profile = Homeowner.objects.get(user=homeowner)
        assert owner_profile.jobs_completed_count == 1
        assert owner_profile.avg_rating == 4.0
        assert owner_profile.total_ratings == 1

    def test_cash_job_pays_full_amount(self, job_factory, homeowner, worker):
        job = job_factory(homeowner=homeowner, worker=worker, status='completed', payment_method='cash',
                          price_offered=Decimal('25.00'))

        _rate_both(job)

        earning = Earning.objects.get(job=job)
        assert earning.platform_fee == Decimal('0.00')
        assert earning.future_fund_contribution == Decimal('0.00')
        assert earning.net_amount == Decimal('25.00')
        assert earning.status == 'completed'
        assert Worker.objects.get(user=worker).total_earnings == Decimal('25.00')

    def test_try_settle_is_idempotent(self, completed_job, worker):
        _rate_both(completed_job)

        again = try_settle(completed_job.id)
        once_more = try_settle(completed_job.id)

        assert again.data['settled'] is False
        assert once_more.data['settled'] is False
        assert Earning.objects.filter(job=completed_job).count() == 1
        assert Worker.objects.get(user=worker).completed_jobs_count == 1
        assert Homeowner.objects.get(user=completed_job.homeowner).jobs_completed_count == 1

    def test_try_settle_waits_for_two_ratings(self, completed_job):
        assert try_settle(completed_job.id).data['settled'] is False
        completed_job.refresh_from_db()
        assert completed_job.status == JobStatus.COMPLETED

    def test_payment_before_settlement_keeps_one_earning(self, completed_job, worker):
        handle_payment_succeeded({'id': 'pi_early', 'metadata': {'job_id': str(completed_job.id)}})

        _, second = _rate_both(completed_job)

        assert second.data['settled'] is True
        assert Earning.objects.filter(job=completed_job).count() == 1
        profile = Worker.objects.get(user=worker)
        assert profile.completed_jobs_count == 1
        assert profile.total_earnings == Decimal('36.00')
        completed_job.refresh_from_db()
        assert completed_job.payment_status == 'paid'
        assert completed_job.status == JobStatus.REVIEWED

    def test_aggregates_recomputed_from_all_ratings(self, homeowner, worker, job_factory):
        for score in (5, 3):
            job = job_factory(homeowner=homeowner, worker=worker, status='completed')
            submit_rating(job.id, homeowner.id, RatingSubmission(rating=score))

        profile = Worker.objects.get(user=worker)
        assert profile.total_ratings == 2
        assert profile.avg_rating == 4.0

    def test_settlement_notifies_worker_after_commit(self, completed_job, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            _rate_both(completed_job)

        subjects = [m.subject for m in mail.outbox]
        assert "Job complete" in subjects
        assert "You received a new rating" in subjects


# ============================================================================
# RECONCILIATION
# ============================================================================

@pytest.mark.workflow
@pytest.mark.django_db
class TestReconcileSettlements:

    def _rate_directly(self, job, rating_factory):
        rating_factory(job=job, rater=job.homeowner, rated=job.worker, rater_type='homeowner', rating=5)
        rating_factory(job=job, rater=job.worker, rated=job.homeowner, rater_type='worker', rating=5)

    def test_settles_stuck_jobs(self, completed_job, rating_factory):
        self._rate_directly(completed_job, rating_factory)
        out = StringIO()

        call_command('reconcile_settlements', stdout=out)

        completed_job.refresh_from_db()
        assert completed_job.status == JobStatus.REVIEWED
        assert Earning.objects.filter(job=completed_job).count() == 1
        assert 'Settled 1 job(s)' in out.getvalue()

    def test_dry_run_changes_nothing(self, completed_job, rating_factory):
        self._rate_directly(completed_job, rating_factory)
        out = StringIO()

        call_command('reconcile_settlements', '--dry-run', stdout=out)

        assert Job.objects.get(pk=completed_job.pk).status == JobStatus.COMPLETED
        assert not Earning.objects.exists()
        assert f'Would settle job {completed_job.id}' in out.getvalue()

    def test_ignores_jobs_with_one_rating(self, completed_job, rating_factory):
        rating_factory(job=completed_job, rater=completed_job.homeowner, rated=completed_job.worker)
        out = StringIO()

        call_command('reconcile_settlements', stdout=out)

        assert Job.objects.get(pk=completed_job.pk).status == JobStatus.COMPLETED
        assert 'Settled 0 job(s)' in out.getvalue()
