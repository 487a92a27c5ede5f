"""
Card payments and gateway callbacks.

A homeowner starts a card payment once the job is confirmed. The gateway
reports the outcome asynchronously through signed webhook events, which are
dispatched by handle_event. Every handler is idempotent: gateways redeliver.
"""

import logging

from django.db import transaction
from django.utils import timezone

from apps.jobs.models import Job, JobStatus
from apps.jobs.services import JobService
from apps.notifications.services import notify
from core.exceptions import PaymentGatewayError
from core.results import RejectionCode, ServiceResult
from . import ledger
from .gateway import get_gateway

logger = logging.getLogger(__name__)

CHARGEABLE_STATUSES = (JobStatus.CONFIRMED, JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.REVIEWED)
RETRYABLE_PAYMENT_STATUSES = ('pending', 'failed')


def start_card_payment(job_id, homeowner_id, gateway=None) -> ServiceResult:
    """
    Charge the homeowner's card for a job.

    The job is moved to payment_status=processing with a conditional update
    first, so two concurrent requests cannot both charge. If the gateway call
    fails the status goes back to pending and PaymentGatewayError propagates.
    """
    job = Job.objects.select_related('homeowner', 'worker').filter(pk=job_id).first()
    if job is None:
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Job not found.")
    if job.homeowner_id != homeowner_id:
        return ServiceResult.rejected(RejectionCode.NOT_PARTY, "Only the homeowner can pay for this job.")
    if job.payment_method != 'card':
        return ServiceResult.rejected(RejectionCode.INVALID_INPUT, "This job is paid in cash.")

    claimed = Job.objects.filter(
        pk=job_id,
        status__in=CHARGEABLE_STATUSES,
        payment_status__in=RETRYABLE_PAYMENT_STATUSES,
    ).update(payment_status='processing', updated_at=timezone.now())
    if not claimed:
        job.refresh_from_db(fields=['status', 'payment_status'])
        return ServiceResult.rejected(
            RejectionCode.INVALID_STATE,
            f"Cannot charge a job that is {job.status} with payment {job.payment_status}.",
            errors={'status': job.status, 'payment_status': job.payment_status},
        )

    gateway = gateway or get_gateway()
    try:
        reference = gateway.create_charge(
            job.payout_amount, job.homeowner, job.worker,
            metadata={'job_id': job.id, 'homeowner_id': job.homeowner_id, 'worker_id': job.worker_id},
        )
    except PaymentGatewayError:
        Job.objects.filter(pk=job_id, payment_status='processing').update(payment_status='pending')
        raise

    Job.objects.filter(pk=job_id).update(payment_reference=reference, updated_at=timezone.now())
    logger.info(f"Card payment {reference} started for job {job_id}")
    return ServiceResult.ok({'job_id': job_id, 'payment_reference': reference}, "Payment processing.")


def _job_from_metadata(obj):
    job_id = (obj.get('metadata') or {}).get('job_id')
    try:
        job_id = int(job_id)
    except (TypeError, ValueError):
        return None
    return Job.objects.select_related('homeowner', 'worker').filter(pk=job_id).first()


def handle_payment_succeeded(intent):
    job = _job_from_metadata(intent)
    if job is None:
        logger.error(f"payment_intent.succeeded {intent.get('id')} without a known job")
        return False

    with transaction.atomic():
        JobService.update_payment_status(job.id, 'paid', intent.get('id'))
        if job.worker_id is None:
            logger.error(f"Job {job.id} paid but has no worker; no earning recorded")
            return False
        earning = ledger.create_earning(
            job.worker_id, job.id, job.payout_amount, 'card', notes=f"Card payment {intent.get('id')}"
        )

    if earning is not None:
        transaction.on_commit(lambda: _notify_paid(job))
    logger.info(f"Payment succeeded for job {job.id}")
    return True


def handle_payment_failed(intent):
    job = _job_from_metadata(intent)
    if job is None:
        logger.error(f"payment_intent.payment_failed {intent.get('id')} without a known job")
        return False

    JobService.update_payment_status(job.id, 'failed', intent.get('id'))
    reason = (intent.get('last_payment_error') or {}).get('message', 'Payment declined')
    logger.warning(f"Payment failed for job {job.id}: {reason}")
    transaction.on_commit(lambda: notify(
        job.homeowner, 'payment_failed', "Payment failed",
        f"Your card payment for job #{job.id} failed: {reason}. Please try again.",
        metadata={'job_id': job.id},
    ))
    return True


def handle_transfer(transfer, succeeded):
    earning_id = (transfer.get('metadata') or {}).get('earning_id')
    if not earning_id:
        logger.error(f"Transfer {transfer.get('id')} without earning_id metadata")
        return False
    result = ledger.update_earning_status(
        earning_id, 'completed' if succeeded else 'failed', transfer_reference=transfer.get('id')
    )
    return result.success


def handle_event(event):
    """Dispatch a verified gateway event. Returns True if it changed anything."""
    event_type = event.get('type')
    obj = (event.get('data') or {}).get('object') or {}

    if event_type == 'payment_intent.succeeded':
        return handle_payment_succeeded(obj)
    if event_type == 'payment_intent.payment_failed':
        return handle_payment_failed(obj)
    if event_type == 'transfer.created':
        return handle_transfer(obj, succeeded=True)
    if event_type == 'transfer.failed':
        return handle_transfer(obj, succeeded=False)

    logger.info(f"Ignoring gateway event {event_type}")
    return False


def _notify_paid(job):
    notify(
        job.homeowner, 'payment_received', "Payment confirmed",
        f"Your payment of ${job.payout_amount} for job #{job.id} went through.",
        metadata={'job_id': job.id},
    )
    notify(
        job.worker, 'payment_received', "Payment received",
        f"The homeowner's payment of ${job.payout_amount} for job #{job.id} has been received.",
        metadata={'job_id': job.id},
    )
