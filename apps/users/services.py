"""
Parent consent and worker discovery.

A worker is verified only through a granted ParentConsent. Grant and revoke
each flip the consent row with a conditional UPDATE and then set the worker's
``verified`` flag in the same transaction, so the two never disagree.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.crypto import get_random_string

from core.constants import CONSENT_REQUEST_DAYS, DEFAULT_WORKER_SEARCH_RADIUS_MILES
from core.geo import bounding_box, distance_miles
from core.results import RejectionCode, ServiceResult
from .models import ParentConsent, User, Worker

logger = logging.getLogger(__name__)


def _send_consent_email(consent_id):
    consent = ParentConsent.objects.select_related('worker').get(pk=consent_id)
    worker = consent.worker
    link = f"{settings.CONSENT_LINK_BASE}{consent.consent_token}"
    try:
        send_mail(
            subject=f"{worker.first_name} wants to shovel snow with A Kid and a Shovel",
            message=(
                f"Hi {consent.parent_name or 'there'},\n\n"
                f"{worker.get_full_name()} signed up to take snow removal jobs and needs your "
                f"permission first. Review and approve the request here:\n\n{link}\n\n"
                f"The link expires in {CONSENT_REQUEST_DAYS} days."
            ),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[consent.parent_email],
            fail_silently=False,
        )
        logger.info(f"Consent request {consent.id} emailed for worker {worker.id}")
    except Exception as e:
        logger.error(f"Failed to email consent request {consent.id}: {str(e)}")


class ConsentService:

    @staticmethod
    @transaction.atomic
    def request_consent(worker_id, parent_email, parent_name=None) -> ServiceResult:
        """Open a new consent request and email the parent a link to it."""
        try:
            validate_email(parent_email or '')
        except ValidationError:
            return ServiceResult.rejected(
                RejectionCode.INVALID_INPUT, "A valid parent email is required.",
                errors={'parent_email': parent_email},
            )
        if not Worker.objects.filter(user_id=worker_id).exists():
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Worker not found.")
        if ParentConsent.objects.filter(worker_id=worker_id, consent_given=True).exists():
            return ServiceResult.rejected(RejectionCode.INVALID_STATE, "Parent consent already granted.")

        consent = ParentConsent.objects.create(
            worker_id=worker_id,
            parent_email=parent_email,
            parent_name=parent_name,
            consent_token=get_random_string(48),
            expires_at=timezone.now() + timedelta(days=CONSENT_REQUEST_DAYS),
        )
        logger.info(f"Consent request {consent.id} opened for worker {worker_id}")
        transaction.on_commit(lambda: _send_consent_email(consent.id))
        return ServiceResult.ok(consent, "Consent request sent to parent.")

    @staticmethod
    def consent_status(worker_id) -> dict:
        consent = ParentConsent.objects.filter(worker_id=worker_id).first()
        if consent is None:
            return {'status': 'not_requested', 'message': "Parent consent has not been requested."}
        if consent.consent_given:
            return {
                'status': 'approved',
                'parent_email': consent.parent_email,
                'consent_given_at': consent.consent_given_at,
            }
        if consent.is_expired(timezone.now()):
            return {
                'status': 'expired',
                'parent_email': consent.parent_email,
                'message': "Consent request has expired.",
            }
        return {
            'status': 'pending',
            'parent_email': consent.parent_email,
            'created_at': consent.created_at,
            'expires_at': consent.expires_at,
        }

    @staticmethod
    def get_request(token) -> ServiceResult:
        """Look up a consent request for the parent's review page."""
        consent = ParentConsent.objects.select_related('worker').filter(consent_token=token).first()
        if consent is None:
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Invalid consent token.")
        if not consent.consent_given and consent.is_expired(timezone.now()):
            return ServiceResult.rejected(RejectionCode.INVALID_STATE, "Consent request has expired.")
        return ServiceResult.ok(consent)

    @staticmethod
    def grant_consent(token, agreed, parent=None, ip_address=None) -> ServiceResult:
        """
        Parent approves a request. A logged-in parent account is linked to the
        worker so it can revoke later; anonymous grants from the email link
        are allowed.
        """
        if not agreed:
            return ServiceResult.rejected(
                RejectionCode.INVALID_INPUT, "You must agree to the terms.", errors={'agreed': agreed}
            )
        parent_id = parent.id if parent is not None and parent.user_type == 'parent' else None
        now = timezone.now()

        with transaction.atomic():
            granted = ParentConsent.objects.filter(
                consent_token=token, consent_given=False, expires_at__gte=now
            ).update(consent_given=True, consent_given_at=now, parent_id=parent_id, ip_address=ip_address)
            if granted:
                consent = ParentConsent.objects.get(consent_token=token)
                updates = {'verified': True, 'verified_at': now}
                if parent_id:
                    updates['parent_id'] = parent_id
                Worker.objects.filter(user_id=consent.worker_id).update(**updates)
                logger.info(f"Parent consent granted for worker {consent.worker_id}")
                return ServiceResult.ok(consent, "Consent granted successfully.")

        consent = ParentConsent.objects.filter(consent_token=token).first()
        if consent is None:
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Invalid consent token.")
        if consent.consent_given:
            return ServiceResult.rejected(RejectionCode.INVALID_STATE, "Consent has already been granted.")
        return ServiceResult.rejected(RejectionCode.INVALID_STATE, "Consent request has expired.")

    @staticmethod
    @transaction.atomic
    def revoke_consent(parent_id, worker_id) -> ServiceResult:
        """The parent who granted consent withdraws it; the worker goes offline."""
        revoked = ParentConsent.objects.filter(
            worker_id=worker_id, parent_id=parent_id, consent_given=True
        ).update(consent_given=False, consent_given_at=None)
        if not revoked:
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "No consent record found.")
        Worker.objects.filter(user_id=worker_id).update(verified=False, verified_at=None, available_now=False)
        logger.info(f"Parent {parent_id} revoked consent for worker {worker_id}")
        return ServiceResult.ok(message="Consent revoked successfully.")


class WorkerService:

    @staticmethod
    def set_availability(worker_id, available) -> ServiceResult:
        if available and not Worker.objects.filter(user_id=worker_id, verified=True).exists():
            return ServiceResult.rejected(
                RejectionCode.CONSENT_REQUIRED, "Parent consent required to mark yourself available."
            )
        if not Worker.objects.filter(user_id=worker_id).update(available_now=available):
            return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Worker not found.")
        return ServiceResult.ok({'available_now': available})

    @staticmethod
    def available_workers(lat=None, lng=None, radius_miles=DEFAULT_WORKER_SEARCH_RADIUS_MILES,
                          min_rating=None, limit=50, offset=0) -> List[Worker]:
        """
        Verified workers marked available now.

        With coordinates, workers within ``radius_miles`` come back nearest
        first and workers with no location on file come last.
        """
        workers = Worker.objects.select_related('user').filter(available_now=True, verified=True)
        if min_rating is not None:
            workers = workers.filter(avg_rating__gte=min_rating)

        if lat is None or lng is None:
            ranked = list(workers.order_by('-avg_rating', 'id'))
            for worker in ranked:
                worker.distance_miles = None
            return ranked[offset:offset + limit]

        box = bounding_box(lat, lng, radius_miles)
        workers = workers.filter(
            Q(user__lat__range=(box['min_lat'], box['max_lat']), user__lng__range=(box['min_lng'], box['max_lng']))
            | Q(user__lat__isnull=True)
            | Q(user__lng__isnull=True)
        )

        ranked = []
        for worker in workers:
            worker.distance_miles = _user_distance(worker.user, lat, lng)
            if worker.distance_miles is None or worker.distance_miles <= radius_miles:
                ranked.append(worker)
        ranked.sort(key=lambda w: float('inf') if w.distance_miles is None else w.distance_miles)
        return ranked[offset:offset + limit]


def _user_distance(user: User, lat, lng) -> Optional[float]:
    if user.lat is None or user.lng is None:
        return None
    return distance_miles(lat, lng, user.lat, user.lng)
