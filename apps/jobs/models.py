from django.db import models
from django.conf import settings
from django.db.models import Q
from core.constants import (
    SERVICE_TYPE_CHOICES, PAYMENT_METHOD_CHOICES, PAYMENT_STATUS_CHOICES, RATER_TYPE_CHOICES,
    MIN_RATING, MAX_RATING,
)


class JobStatus(models.TextChoices):
    POSTED = 'posted', 'Posted'                  # Created by a homeowner, open to claims
    CLAIMED = 'claimed', 'Claimed'               # A worker holds the job exclusively
    CONFIRMED = 'confirmed', 'Confirmed'         # Parties agreed on the job and price
    IN_PROGRESS = 'in_progress', 'In Progress'   # Worker started, before-photo taken
    COMPLETED = 'completed', 'Completed'         # Worker finished, awaiting ratings
    REVIEWED = 'reviewed', 'Reviewed'            # Both parties rated, job settled
    CANCELLED = 'cancelled', 'Cancelled'
    DISPUTED = 'disputed', 'Disputed'            # Set only by moderation


# Legal moves per state. Transition code in services.py refuses anything else.
VALID_JOB_TRANSITIONS = {
    JobStatus.POSTED: {JobStatus.CLAIMED, JobStatus.CANCELLED},
    JobStatus.CLAIMED: {JobStatus.CONFIRMED, JobStatus.CANCELLED},
    JobStatus.CONFIRMED: {JobStatus.CONFIRMED, JobStatus.IN_PROGRESS, JobStatus.CANCELLED},
    JobStatus.IN_PROGRESS: {JobStatus.COMPLETED, JobStatus.CANCELLED},
    JobStatus.COMPLETED: {JobStatus.REVIEWED},
    JobStatus.REVIEWED: set(),
    JobStatus.CANCELLED: set(),
    JobStatus.DISPUTED: set(),
}

TERMINAL_STATUSES = {JobStatus.REVIEWED, JobStatus.CANCELLED, JobStatus.DISPUTED}
RATEABLE_STATUSES = {JobStatus.COMPLETED, JobStatus.REVIEWED}


def states_leading_to(target):
    """All states from which ``target`` is a legal move."""
    return sorted(state for state, targets in VALID_JOB_TRANSITIONS.items() if target in targets)


class Job(models.Model):
    homeowner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='posted_jobs')
    worker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, null=True, blank=True, related_name='claimed_jobs'
    )
    status = models.CharField(max_length=20, choices=JobStatus.choices, default=JobStatus.POSTED)
    service_type = models.CharField(max_length=20, choices=SERVICE_TYPE_CHOICES)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100, blank=True, null=True)
    zip = models.CharField(max_length=10, blank=True, null=True)
    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)
    description = models.TextField(blank=True, null=True)
    special_instructions = models.TextField(blank=True, null=True)
    estimated_duration_minutes = models.PositiveIntegerField(blank=True, null=True)
    scheduled_for = models.DateTimeField(blank=True, null=True)
    is_asap = models.BooleanField(default=False)

    price_offered = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)
    price_accepted = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)
    price_final = models.DecimalField(max_digits=8, decimal_places=2, blank=True, null=True)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_reference = models.CharField(max_length=100, blank=True, null=True)

    before_photo_url = models.URLField(max_length=500, blank=True, null=True)
    after_photo_url = models.URLField(max_length=500, blank=True, null=True)
    worker_notes = models.TextField(blank=True, null=True)

    claimed_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    cancellation_reason = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at']),
            models.Index(fields=['lat', 'lng']),
        ]

    def __str__(self):
        return f"{self.get_service_type_display()} at {self.address} ({self.status})"

    @property
    def payout_amount(self):
        """Amount settled to the worker: final, then accepted, then offered price."""
        for price in (self.price_final, self.price_accepted, self.price_offered):
            if price is not None:
                return price
        return 0

    def is_party(self, user_id):
        return user_id is not None and user_id in (self.homeowner_id, self.worker_id)


class JobStateTransition(models.Model):
    """Audit log entry written alongside every applied transition."""
    job = models.ForeignKey(Job, on_delete=models.CASCADE, related_name='transitions')
    from_status = models.CharField(max_length=20, choices=JobStatus.choices)
    to_status = models.CharField(max_length=20, choices=JobStatus.choices)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"Job {self.job_id}: {self.from_status} -> {self.to_status}"


class Rating(models.Model):
    job = models.ForeignKey(Job, on_delete=models.PROTECT, related_name='ratings')
    rater = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='ratings_given')
    rated = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='ratings_received')
    rater_type = models.CharField(max_length=10, choices=RATER_TYPE_CHOICES)
    rating = models.PositiveSmallIntegerField(choices=[(i, i) for i in range(MIN_RATING, MAX_RATING + 1)])
    review_text = models.TextField(blank=True, null=True)
    # Submitted by the homeowner about the worker
    quality_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    punctuality_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    communication_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    would_hire_again = models.BooleanField(blank=True, null=True)
    # Submitted by the worker about the homeowner
    payment_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    accuracy_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    treatment_rating = models.PositiveSmallIntegerField(blank=True, null=True)
    would_work_again = models.BooleanField(blank=True, null=True)
    is_public = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['job', 'rater'], name='unique_rating_per_rater_per_job'),
            models.CheckConstraint(
                condition=Q(rating__gte=MIN_RATING) & Q(rating__lte=MAX_RATING),
                name='rating_value_in_range',
            ),
        ]

    def __str__(self):
        return f"Rating for job {self.job_id} by {self.rater_id} ({self.rating}/5)"
