"""
Job lifecycle service.

Every state change goes through _apply_transition, which locks the job row,
reads which legal source state it is in and issues an UPDATE guarded on that
status and on who is acting. The returned row count is the outcome: 1 means
this caller won, 0 means the guard failed (another worker claimed first, the
actor is not a party, the job moved on). Nothing here saves a loaded model
back.

Guard failures are returned as rejected ServiceResults. Database errors
propagate to the caller untouched.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from django.db import transaction
from django.db.models import Count, F, Q
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.earnings.fees import to_money
from apps.notifications.services import notify
from apps.users.models import Homeowner, Worker
from core.constants import (
    SERVICE_TYPE_CHOICES, PAYMENT_METHOD_CHOICES, PAYMENT_STATUS_CHOICES, MAX_JOB_PRICE,
)
from core.geo import bounding_box, distance_miles, zip_city, zip_coordinates
from core.results import RejectionCode, ServiceResult
from .models import Job, JobStateTransition, JobStatus, states_leading_to

logger = logging.getLogger(__name__)

SERVICE_TYPES = {value for value, _ in SERVICE_TYPE_CHOICES}
PAYMENT_METHODS = {value for value, _ in PAYMENT_METHOD_CHOICES}
PAYMENT_STATUSES = {value for value, _ in PAYMENT_STATUS_CHOICES}


@dataclass
class NewJob:
    """Fields a homeowner supplies when posting a job."""
    service_type: str
    address: str
    price_offered: object
    payment_method: str = 'cash'
    city: Optional[str] = None
    zip: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    description: Optional[str] = None
    special_instructions: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    scheduled_for: Optional[datetime] = None
    is_asap: bool = False


def _party(user_id):
    return Q(homeowner_id=user_id) | Q(worker_id=user_id)


def _apply_transition(job_id, target, actor_id=None, guard=None, updates=None):
    """
    Move a job to ``target`` if it is in a state that legally leads there and
    ``guard`` holds. Returns the state it moved from, or None.

    The row is locked while its current state is read, then moved by an
    UPDATE conditioned on that state; the audit row is written in the same
    transaction.
    """
    values = {'status': target, 'updated_at': timezone.now()}
    values.update(updates or {})
    guard = guard if guard is not None else Q()

    with transaction.atomic():
        source = (
            Job.objects.select_for_update()
            .filter(guard, pk=job_id, status__in=states_leading_to(target))
            .values_list('status', flat=True)
            .first()
        )
        if source is None:
            return None
        if not Job.objects.filter(guard, pk=job_id, status=source).update(**values):
            return None
        JobStateTransition.objects.create(
            job_id=job_id, from_status=source, to_status=target, actor_id=actor_id
        )
        return source


def _notify_counterpart(job_id, actor_id, notification_type, title, body):
    """After commit, tell the other party to the job what the actor just did."""
    def send():
        job = Job.objects.select_related('homeowner', 'worker').get(pk=job_id)
        recipient = job.worker if actor_id == job.homeowner_id else job.homeowner
        if recipient is not None:
            notify(recipient, notification_type, title, body.format(job=job), metadata={'job_id': job_id})

    transaction.on_commit(send)


def _rejection(job_id, actor_id, action, worker_only=False):
    """Explain why a guarded transition did not apply. Read-only."""
    job = Job.objects.filter(pk=job_id).only('status', 'homeowner_id', 'worker_id').first()
    if job is None:
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
    if worker_only and job.worker_id != actor_id:
        return ServiceResult.rejected(RejectionCode.NOT_PARTY, "You are not the worker on this job.")
    if not worker_only and not job.is_party(actor_id):
        return ServiceResult.rejected(RejectionCode.NOT_PARTY, "You are not part of this job.")
    return ServiceResult.rejected(
        RejectionCode.INVALID_STATE,
        f"Cannot {action} a job that is {job.get_status_display().lower()}.",
        errors={'status': job.status},
    )


class JobService:

    @staticmethod
    @transaction.atomic
    def create_job(homeowner_id, details: NewJob) -> ServiceResult:
        """
        Post a new job (status posted, payment pending).

        Validation happens before any write; the homeowner's posted-jobs
        counter is bumped in the same transaction as the insert.
        """
        errors = {}
        if details.service_type not in SERVICE_TYPES:
            errors['service_type'] = f"Must be one of {', '.join(sorted(SERVICE_TYPES))}."
        if details.payment_method not in PAYMENT_METHODS:
            errors['payment_method'] = f"Must be one of {', '.join(sorted(PAYMENT_METHODS))}."
        if not (details.address or '').strip():
            errors['address'] = "Address is required."
        if errors:
            return ServiceResult.rejected(RejectionCode.INVALID_INPUT, "Invalid job details.", errors=errors)

        try:
            price = to_money(details.price_offered)
        except ValueError:
            price = None
        if price is None or price <= 0 or price > MAX_JOB_PRICE:
            return ServiceResult.rejected(
                RejectionCode.INVALID_AMOUNT,
                f"Offered price must be greater than 0 and at most {MAX_JOB_PRICE}.",
                errors={'price_offered': details.price_offered},
            )

        lat, lng = details.lat, details.lng
        if (lat is None or lng is None) and details.zip:
            # ZIP centroid when the client sent no coordinates.
            lat, lng = zip_coordinates(details.zip) or (lat, lng)

        job = Job.objects.create(
            homeowner_id=homeowner_id,
            status=JobStatus.POSTED,
            payment_status='pending',
            service_type=details.service_type,
            address=details.address.strip(),
            city=details.city or zip_city(details.zip),
            zip=details.zip,
            lat=lat,
            lng=lng,
            description=details.description,
            special_instructions=details.special_instructions,
            estimated_duration_minutes=details.estimated_duration_minutes,
            scheduled_for=details.scheduled_for,
            is_asap=details.is_asap,
            price_offered=price,
            payment_method=details.payment_method,
        )
        Homeowner.objects.filter(user_id=homeowner_id).update(jobs_posted_count=F('jobs_posted_count') + 1)
        logger.info(f"Job {job.id} posted by homeowner {homeowner_id} ({job.service_type}, {price})")
        return ServiceResult.ok(job, "Job posted.")

    @staticmethod
    def claim_job(job_id, worker_id) -> ServiceResult:
        """
        Exclusively claim a posted job. Of any number of concurrent claimants
        exactly one succeeds; the rest get an ``unavailable`` rejection.
        Workers without a granted parent consent are refused before any write.
        """
        if not Worker.objects.filter(user_id=worker_id, verified=True).exists():
            logger.info(f"Claim on job {job_id} by worker {worker_id} rejected: no parent consent")
            return ServiceResult.rejected(
                RejectionCode.CONSENT_REQUIRED, "Parent consent required to claim jobs."
            )
        now = timezone.now()
        moved = _apply_transition(
            job_id, JobStatus.CLAIMED, actor_id=worker_id,
            guard=Q(worker__isnull=True) & ~Q(homeowner_id=worker_id),
            updates={'worker_id': worker_id, 'claimed_at': now},
        )
        if moved:
            logger.info(f"Job {job_id} claimed by worker {worker_id}")
            _notify_counterpart(
                job_id, worker_id, 'job_claimed', "Your job was claimed",
                "A worker claimed your job at {job.address}. Confirm it to lock in the price.",
            )
            return ServiceResult.ok(Job.objects.get(pk=job_id), "Job claimed.")

        if not Job.objects.filter(pk=job_id).exists():
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
        logger.info(f"Claim on job {job_id} by worker {worker_id} rejected: no longer available")
        return ServiceResult.rejected(RejectionCode.UNAVAILABLE, "This job is no longer available.")

    @staticmethod
    def confirm_job(job_id, actor_id, price_accepted=None) -> ServiceResult:
        """
        Either party confirms a claimed job. Only the homeowner may set the
        accepted price; it is the amount later charged and settled.
        """
        updates = {'confirmed_at': timezone.now()}
        if price_accepted is not None:
            try:
                price = to_money(price_accepted)
            except ValueError:
                price = None
            if price is None or price <= 0 or price > MAX_JOB_PRICE:
                return ServiceResult.rejected(
                    RejectionCode.INVALID_AMOUNT,
                    f"Accepted price must be greater than 0 and at most {MAX_JOB_PRICE}.",
                    errors={'price_accepted': price_accepted},
                )
            homeowner_id = Job.objects.filter(pk=job_id).values_list('homeowner_id', flat=True).first()
            if homeowner_id is None:
                return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
            if homeowner_id != actor_id:
                return ServiceResult.rejected(
                    RejectionCode.NOT_PARTY, "Only the homeowner can set the accepted price."
                )
            updates['price_accepted'] = price

        moved = _apply_transition(
            job_id, JobStatus.CONFIRMED, actor_id=actor_id, guard=_party(actor_id), updates=updates
        )
        if moved:
            logger.info(f"Job {job_id} confirmed by user {actor_id}")
            return ServiceResult.ok(Job.objects.get(pk=job_id), "Job confirmed.")
        return _rejection(job_id, actor_id, 'confirm')

    @staticmethod
    def start_job(job_id, worker_id, before_photo_url=None) -> ServiceResult:
        moved = _apply_transition(
            job_id, JobStatus.IN_PROGRESS, actor_id=worker_id,
            guard=Q(worker_id=worker_id),
            updates={'started_at': timezone.now(), 'before_photo_url': before_photo_url},
        )
        if moved:
            logger.info(f"Job {job_id} started by worker {worker_id}")
            _notify_counterpart(
                job_id, worker_id, 'job_started', "Work has started", "Your worker started on {job.address}."
            )
            return ServiceResult.ok(Job.objects.get(pk=job_id), "Job started.")
        return _rejection(job_id, worker_id, 'start', worker_only=True)

    @staticmethod
    def complete_job(job_id, worker_id, after_photo_url=None, notes=None) -> ServiceResult:
        moved = _apply_transition(
            job_id, JobStatus.COMPLETED, actor_id=worker_id,
            guard=Q(worker_id=worker_id),
            updates={
                'completed_at': timezone.now(),
                'after_photo_url': after_photo_url,
                'worker_notes': notes,
            },
        )
        if moved:
            logger.info(f"Job {job_id} completed by worker {worker_id}")
            _notify_counterpart(
                job_id, worker_id, 'job_completed', "Your job is done",
                "The job at {job.address} is complete. Rate your worker to finish up.",
            )
            return ServiceResult.ok(Job.objects.get(pk=job_id), "Job completed.")
        return _rejection(job_id, worker_id, 'complete', worker_only=True)

    @staticmethod
    def cancel_job(job_id, actor_id, reason=None) -> ServiceResult:
        """Either party cancels a job that has not been completed."""
        moved = _apply_transition(
            job_id, JobStatus.CANCELLED, actor_id=actor_id,
            guard=_party(actor_id),
            updates={
                'cancelled_at': timezone.now(),
                'cancelled_by_id': actor_id,
                'cancellation_reason': reason,
            },
        )
        if moved:
            logger.info(f"Job {job_id} cancelled by user {actor_id} while {moved}")
            _notify_counterpart(
                job_id, actor_id, 'job_cancelled', "Job cancelled", "The job at {job.address} was cancelled."
            )
            return ServiceResult.ok(Job.objects.get(pk=job_id), "Job cancelled.")
        return _rejection(job_id, actor_id, 'cancel')

    @staticmethod
    def mark_reviewed(job_id) -> bool:
        """
        Settlement gate: completed -> reviewed. Only the settlement
        coordinator calls this; True means this caller performed the move.
        """
        moved = _apply_transition(
            job_id, JobStatus.REVIEWED,
            updates={
                'reviewed_at': timezone.now(),
                'price_final': Coalesce(F('price_final'), F('price_accepted'), F('price_offered')),
            },
        )
        if moved:
            logger.info(f"Job {job_id} marked reviewed")
        return moved is not None

    @staticmethod
    def update_payment_status(job_id, payment_status, reference=None) -> ServiceResult:
        """Record a payment outcome. Allowed in every job status."""
        if payment_status not in PAYMENT_STATUSES:
            return ServiceResult.rejected(
                RejectionCode.INVALID_INPUT,
                f"Payment status must be one of {', '.join(sorted(PAYMENT_STATUSES))}.",
            )
        updates = {'payment_status': payment_status, 'updated_at': timezone.now()}
        if reference:
            updates['payment_reference'] = reference
        if not Job.objects.filter(pk=job_id).update(**updates):
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
        logger.info(f"Job {job_id} payment status set to {payment_status}")
        return ServiceResult.ok(message=f"Payment status set to {payment_status}.")

    @staticmethod
    def get_job(job_id) -> Optional[Job]:
        return Job.objects.select_related('homeowner', 'worker').filter(pk=job_id).first()

    @staticmethod
    def available_jobs(lat=None, lng=None, radius_miles=None, service_type=None,
                       min_price=None, max_price=None, limit=50, offset=0) -> List[Job]:
        """
        Posted jobs open to claims.

        With coordinates, jobs farther than ``radius_miles`` are dropped and
        the rest ordered by distance (jobs without coordinates last);
        otherwise newest first.
        """
        jobs = Job.objects.filter(status=JobStatus.POSTED)
        if service_type:
            jobs = jobs.filter(service_type=service_type)
        if min_price is not None:
            jobs = jobs.filter(price_offered__gte=min_price)
        if max_price is not None:
            jobs = jobs.filter(price_offered__lte=max_price)

        if lat is None or lng is None:
            return list(jobs.order_by('-created_at')[offset:offset + limit])

        if radius_miles:
            box = bounding_box(lat, lng, radius_miles)
            jobs = jobs.filter(
                Q(lat__range=(box['min_lat'], box['max_lat']), lng__range=(box['min_lng'], box['max_lng']))
                | Q(lat__isnull=True)
                | Q(lng__isnull=True)
            )

        def _distance(job):
            if job.lat is None or job.lng is None:
                return float('inf')
            return distance_miles(lat, lng, job.lat, job.lng)

        ranked = []
        for job in jobs:
            job.distance_miles = _distance(job)
            # The box is only a pre-filter; its corners lie outside the radius.
            if radius_miles and job.distance_miles != float('inf') and job.distance_miles > radius_miles:
                continue
            ranked.append(job)
        ranked.sort(key=lambda job: job.distance_miles)
        return ranked[offset:offset + limit]

    @staticmethod
    def jobs_for_user(user_id, role, statuses=None, limit=50, offset=0) -> List[Job]:
        column = 'homeowner_id' if role == 'homeowner' else 'worker_id'
        jobs = Job.objects.filter(**{column: user_id})
        if statuses:
            jobs = jobs.filter(status__in=statuses)
        return list(jobs.order_by('-created_at')[offset:offset + limit])

    @staticmethod
    def count_by_status(user_id, role):
        column = 'homeowner_id' if role == 'homeowner' else 'worker_id'
        counts = {value: 0 for value in JobStatus.values}
        for row in Job.objects.filter(**{column: user_id}).values('status').annotate(count=Count('id')):
            counts[row['status']] = row['count']
        return counts
