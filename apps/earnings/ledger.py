"""
Earnings ledger.

Append-only payout records for workers plus the projections shown on the
earnings dashboard. Creating an earning and crediting the worker's profile
counters happen in one transaction; the OneToOne job column keeps a second
record for the same job out of the table even under concurrent writers.
"""

import logging
from datetime import timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F, Sum
from django.utils import timezone

from apps.users.models import Worker
from core.constants import FUTURE_FUND_GROWTH_RATE, FUTURE_FUND_GROWTH_YEARS
from core.results import RejectionCode, ServiceResult
from .fees import calculate_fees, project_growth, to_money
from .models import Earning

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
FINAL_EARNING_STATUSES = ('completed', 'failed')


def split_for(gross_amount, payment_method):
    """Fee split for a payout. Cash jobs pay the full gross as net."""
    gross = to_money(gross_amount)
    if payment_method == 'cash':
        if gross < 0:
            raise ValueError(f"Gross amount must not be negative: {gross}")
        return {'platform_fee': ZERO, 'future_fund': ZERO, 'net_amount': gross}
    return calculate_fees(gross)


@transaction.atomic
def create_earning(worker_id, job_id, gross_amount, payment_method, notes=None):
    """
    Record the payout for a job and credit the worker's totals.

    Returns the new Earning, or None if the job already has one. A malformed
    or negative amount raises ValueError before anything is written.
    """
    split = split_for(gross_amount, payment_method)

    if Earning.objects.filter(job_id=job_id).exists():
        logger.info(f"Earning already recorded for job {job_id}, skipping")
        return None

    try:
        with transaction.atomic():
            earning = Earning.objects.create(
                user_id=worker_id,
                job_id=job_id,
                gross_amount=to_money(gross_amount),
                platform_fee=split['platform_fee'],
                future_fund_contribution=split['future_fund'],
                net_amount=split['net_amount'],
                payment_method=payment_method,
                status='pending',
                notes=notes,
            )
    except IntegrityError:
        # Lost the insert race to another writer for the same job.
        logger.warning(f"Concurrent earning insert for job {job_id} rejected by unique constraint")
        return None

    updated = Worker.objects.filter(user_id=worker_id).update(
        total_earnings=F('total_earnings') + split['net_amount'],
        future_fund_balance=F('future_fund_balance') + split['future_fund'],
        completed_jobs_count=F('completed_jobs_count') + 1,
    )
    if not updated:
        logger.warning(f"No worker profile for user {worker_id}; earning {earning.id} recorded without totals")

    logger.info(
        f"Earning {earning.id} recorded for job {job_id}: gross={earning.gross_amount} "
        f"fee={earning.platform_fee} future_fund={earning.future_fund_contribution} net={earning.net_amount}"
    )
    return earning


def update_earning_status(earning_id, status, transfer_reference=None):
    """Move a pending earning to completed or failed (payment gateway callbacks)."""
    if status not in FINAL_EARNING_STATUSES:
        return ServiceResult.rejected(
            RejectionCode.INVALID_INPUT,
            f"Earning status must be one of {', '.join(FINAL_EARNING_STATUSES)}.",
        )

    updates = {'status': status, 'updated_at': timezone.now()}
    if transfer_reference:
        updates['transfer_reference'] = transfer_reference

    updated = Earning.objects.filter(pk=earning_id, status='pending').update(**updates)
    if updated:
        logger.info(f"Earning {earning_id} marked {status}")
        return ServiceResult.ok(message=f"Earning marked {status}.")

    if not Earning.objects.filter(pk=earning_id).exists():
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Earning not found.")
    logger.warning(f"Earning {earning_id} is no longer pending; ignoring status {status}")
    return ServiceResult.rejected(RejectionCode.INVALID_STATE, "Earning is no longer pending.")


def list_for_worker(worker_id, limit=50, offset=0):
    return list(Earning.objects.filter(user_id=worker_id).select_related('job')[offset:offset + limit])


def start_of_week(moment):
    """Midnight of the Sunday that starts ``moment``'s week."""
    local = timezone.localtime(moment)
    days_since_sunday = (local.weekday() + 1) % 7
    return (local - timedelta(days=days_since_sunday)).replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(moment):
    local = timezone.localtime(moment)
    return local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _completed_earnings(worker_id):
    return Earning.objects.filter(user_id=worker_id, status='completed')


def summarize(worker_id, now=None):
    """
    Earnings dashboard summary for a worker.

    Totals count completed earnings only. The projected Future Fund value
    compounds the current balance at 7% a year for 10 years.
    """
    now = now or timezone.now()
    completed = _completed_earnings(worker_id)

    all_time = completed.aggregate(total=Sum('net_amount'), count=Count('id'), average=Avg('net_amount'))
    this_month = completed.filter(created_at__gte=start_of_month(now)).aggregate(total=Sum('net_amount'))
    this_week = completed.filter(created_at__gte=start_of_week(now)).aggregate(total=Sum('net_amount'))

    balance = Worker.objects.filter(user_id=worker_id).values_list('future_fund_balance', flat=True).first()
    balance = to_money(balance or 0)
    projected = project_growth(balance, FUTURE_FUND_GROWTH_YEARS, FUTURE_FUND_GROWTH_RATE)

    return {
        'total_earned': to_money(all_time['total'] or 0),
        'this_month': to_money(this_month['total'] or 0),
        'this_week': to_money(this_week['total'] or 0),
        'jobs_completed': all_time['count'],
        'average_per_job': to_money(all_time['average'] or 0),
        'future_fund_balance': balance,
        'future_fund_projected': to_money(projected),
    }


def weekly_series(worker_id, weeks=12, now=None):
    """
    Net completed earnings per calendar week (weeks start on Sunday), oldest first.

    Every week in the range gets a bucket, including weeks with no earnings.
    """
    now = now or timezone.now()
    current_week = start_of_week(now)
    first_week = current_week - timedelta(weeks=weeks - 1)

    buckets = {(first_week + timedelta(weeks=i)).date(): ZERO for i in range(weeks)}
    for created_at, net_amount in _completed_earnings(worker_id).filter(
        created_at__gte=first_week
    ).values_list('created_at', 'net_amount'):
        key = start_of_week(created_at).date()
        if key in buckets:
            buckets[key] += net_amount

    return [{'week_start': day.isoformat(), 'amount': to_money(amount)} for day, amount in sorted(buckets.items())]


def monthly_series(worker_id, months=12, now=None):
    """Net completed earnings per calendar month, oldest first, one bucket per month."""
    now = now or timezone.now()
    current = start_of_month(now)
    first_year, first_month = _shift_month(current.year, current.month, -(months - 1))
    first_month_start = current.replace(year=first_year, month=first_month)

    buckets = {}
    for i in range(months):
        year, month = _shift_month(first_year, first_month, i)
        buckets[f"{year:04d}-{month:02d}"] = ZERO

    for created_at, net_amount in _completed_earnings(worker_id).filter(
        created_at__gte=first_month_start
    ).values_list('created_at', 'net_amount'):
        key = timezone.localtime(created_at).strftime('%Y-%m')
        if key in buckets:
            buckets[key] += net_amount

    return [{'month': month, 'amount': to_money(amount)} for month, amount in sorted(buckets.items())]
