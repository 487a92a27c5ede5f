"""
Ratings and settlement.

A job settles once both parties have rated it: the job moves completed ->
reviewed, the worker's Earning is recorded (once per job, whatever path gets
there first), and both parties' rating aggregates are recomputed from the
underlying rows. try_settle is the only settlement entry point and is safe to
call any number of times, concurrently or after a crash.
"""

import logging
from dataclasses import dataclass, fields
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F

from apps.earnings import ledger
from apps.notifications.services import notify
from apps.users.models import Homeowner, User, Worker
from core.constants import MIN_RATING, MAX_RATING, DEFAULT_NOTIFICATION_WINDOW_HOURS
from core.results import RejectionCode, ServiceResult
from .models import Job, JobStatus, Rating, RATEABLE_STATUSES
from .services import JobService

logger = logging.getLogger(__name__)

HOMEOWNER_CATEGORIES = ('quality_rating', 'punctuality_rating', 'communication_rating')
WORKER_CATEGORIES = ('payment_rating', 'accuracy_rating', 'treatment_rating')


@dataclass
class RatingSubmission:
    rating: int
    review_text: Optional[str] = None
    quality_rating: Optional[int] = None
    punctuality_rating: Optional[int] = None
    communication_rating: Optional[int] = None
    would_hire_again: Optional[bool] = None
    payment_rating: Optional[int] = None
    accuracy_rating: Optional[int] = None
    treatment_rating: Optional[int] = None
    would_work_again: Optional[bool] = None
    is_public: bool = True


def _valid_score(value):
    return isinstance(value, int) and not isinstance(value, bool) and MIN_RATING <= value <= MAX_RATING


def _validate(submission):
    errors = {}
    if not _valid_score(submission.rating):
        errors['rating'] = f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}."
    for name in HOMEOWNER_CATEGORIES + WORKER_CATEGORIES:
        value = getattr(submission, name)
        if value is not None and not _valid_score(value):
            errors[name] = f"Must be an integer between {MIN_RATING} and {MAX_RATING}."
    return errors


def refresh_rating_aggregates(user_id):
    """Recompute avg_rating / total_ratings on whichever profiles the user has."""
    stats = Rating.objects.filter(rated_id=user_id).aggregate(average=Avg('rating'), total=Count('id'))
    values = {
        'avg_rating': round(stats['average'] or 0, 2),
        'total_ratings': stats['total'],
    }
    Worker.objects.filter(user_id=user_id).update(**values)
    Homeowner.objects.filter(user_id=user_id).update(**values)


def submit_rating(job_id, rater_id, submission: RatingSubmission, rated_id=None, rater_type=None) -> ServiceResult:
    """
    Record one party's rating of the other and settle the job if this was
    the second rating.

    ``rated_id`` and ``rater_type`` are derived from the job; when a caller
    supplies them they must agree with it.
    """
    errors = _validate(submission)
    if errors:
        return ServiceResult.rejected(RejectionCode.INVALID_RATING, "Invalid rating.", errors=errors)

    job = Job.objects.filter(pk=job_id).first()
    if job is None:
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
    if not job.is_party(rater_id):
        return ServiceResult.rejected(RejectionCode.NOT_PARTY, "You are not part of this job.")
    if job.status not in RATEABLE_STATUSES:
        return ServiceResult.rejected(
            RejectionCode.INVALID_STATE, "Job must be completed before rating.", errors={'status': job.status}
        )

    is_homeowner = rater_id == job.homeowner_id
    expected_rated = job.worker_id if is_homeowner else job.homeowner_id
    expected_type = 'homeowner' if is_homeowner else 'worker'
    if (rated_id is not None and rated_id != expected_rated) or (rater_type is not None and rater_type != expected_type):
        return ServiceResult.rejected(RejectionCode.INVALID_INPUT, "Rated user does not match this job.")

    if Rating.objects.filter(job_id=job_id, rater_id=rater_id).exists():
        return ServiceResult.rejected(RejectionCode.ALREADY_RATED, "You have already rated this job.")

    # Category ratings only make sense from the side that owns them.
    own = HOMEOWNER_CATEGORIES + ('would_hire_again',) if is_homeowner else WORKER_CATEGORIES + ('would_work_again',)
    values = {
        f.name: getattr(submission, f.name)
        for f in fields(submission)
        if f.name in own or f.name in ('rating', 'review_text', 'is_public')
    }

    try:
        with transaction.atomic():
            rating = Rating.objects.create(
                job_id=job_id,
                rater_id=rater_id,
                rated_id=expected_rated,
                rater_type=expected_type,
                **values,
            )
            refresh_rating_aggregates(expected_rated)
    except IntegrityError:
        logger.info(f"Duplicate rating for job {job_id} by user {rater_id} rejected by unique constraint")
        return ServiceResult.rejected(RejectionCode.ALREADY_RATED, "You have already rated this job.")

    logger.info(f"Rating {rating.id} ({rating.rating}/5) recorded for job {job_id} by {expected_type} {rater_id}")
    transaction.on_commit(lambda: _notify_rated(expected_rated, job_id, rating.rating))

    settled = try_settle(job_id)
    return ServiceResult.ok(
        {'rating': rating, 'settled': settled.data['settled']},
        "Rating submitted. Job settled." if settled.data['settled'] else "Rating submitted.",
    )


def try_settle(job_id) -> ServiceResult:
    """
    Settle a job that holds both ratings. Exactly one caller wins the
    completed -> reviewed move and performs the side effects; everyone else
    gets ``settled=False``.
    """
    if Rating.objects.filter(job_id=job_id).count() < 2:
        return ServiceResult.ok({'settled': False}, "Waiting for both parties to rate.")

    with transaction.atomic():
        if not JobService.mark_reviewed(job_id):
            return ServiceResult.ok({'settled': False}, "Job already settled.")

        job = Job.objects.get(pk=job_id)
        earning = ledger.create_earning(
            job.worker_id, job.id, job.payout_amount, job.payment_method,
            notes=f"Job {job.id} settled",
        )
        if earning is not None and job.payment_method == 'cash':
            # Cash changes hands on site; nothing left for a gateway to confirm.
            ledger.update_earning_status(earning.id, 'completed')

        Homeowner.objects.filter(user_id=job.homeowner_id).update(
            jobs_completed_count=F('jobs_completed_count') + 1
        )
        refresh_rating_aggregates(job.homeowner_id)
        refresh_rating_aggregates(job.worker_id)

    logger.info(f"Job {job_id} settled (earning {'created' if earning else 'already present'})")
    transaction.on_commit(lambda: _notify_settled(job))
    return ServiceResult.ok({'settled': True, 'earning': earning}, "Job settled.")


def _notify_rated(user_id, job_id, score):
    user = User.objects.filter(pk=user_id).first()
    if user is None:
        return
    notify(
        user, 'new_rating', "You received a new rating",
        f"You were rated {score}/5 for job #{job_id}.",
        metadata={'job_id': job_id}, window_hours=DEFAULT_NOTIFICATION_WINDOW_HOURS,
    )


def _notify_settled(job):
    worker = User.objects.filter(pk=job.worker_id).first()
    if worker is None:
        return
    notify(
        worker, 'job_settled', "Job complete",
        f"Both ratings are in for job #{job.id}. Your earnings of ${job.payout_amount} have been recorded.",
        metadata={'job_id': job.id}, window_hours=DEFAULT_NOTIFICATION_WINDOW_HOURS,
    )


def jobs_pending_settlement():
    """Ids of completed jobs that already hold two ratings."""
    return list(
        Job.objects.filter(status=JobStatus.COMPLETED)
        .annotate(rating_count=Count('ratings'))
        .filter(rating_count__gte=2)
        .values_list('id', flat=True)
    )


def settle_pending_jobs():
    """Settle every job returned by jobs_pending_settlement. Returns the ids settled here."""
    settled = []
    for job_id in jobs_pending_settlement():
        if try_settle(job_id).data['settled']:
            settled.append(job_id)
    return settled
