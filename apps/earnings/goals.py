import logging

from django.db import transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from core.results import RejectionCode, ServiceResult
from .fees import to_money
from .models import SavingsGoal

logger = logging.getLogger(__name__)


def create_goal(user_id, name, target_amount, description=None, target_date=None, priority=0):
    try:
        target = to_money(target_amount)
    except ValueError as e:
        return ServiceResult.rejected(RejectionCode.INVALID_AMOUNT, str(e))
    if target <= 0:
        return ServiceResult.rejected(RejectionCode.INVALID_AMOUNT, "Target amount must be positive.")

    goal = SavingsGoal.objects.create(
        user_id=user_id,
        name=name,
        description=description,
        target_amount=target,
        target_date=target_date,
        priority=priority,
    )
    return ServiceResult.ok(goal, "Savings goal created.")


def goals_for(user_id):
    return list(SavingsGoal.objects.filter(user_id=user_id))


@transaction.atomic
def add_to_goal(goal_id, user_id, amount):
    """Add to a goal's saved amount; marks it achieved once it reaches the target."""
    try:
        amount = to_money(amount)
    except ValueError as e:
        return ServiceResult.rejected(RejectionCode.INVALID_AMOUNT, str(e))
    if amount <= 0:
        return ServiceResult.rejected(RejectionCode.INVALID_AMOUNT, "Amount must be positive.")

    updated = SavingsGoal.objects.filter(pk=goal_id, user_id=user_id).update(
        current_amount=F('current_amount') + amount,
        updated_at=timezone.now(),
    )
    if not updated:
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Savings goal not found.")

    SavingsGoal.objects.filter(
        pk=goal_id, achieved=False, current_amount__gte=F('target_amount')
    ).update(achieved=True, achieved_at=timezone.now())

    goal = SavingsGoal.objects.get(pk=goal_id)
    if goal.achieved:
        logger.info(f"Savings goal {goal_id} achieved for user {user_id}")
    return ServiceResult.ok(goal)


def delete_goal(goal_id, user_id):
    deleted, _ = SavingsGoal.objects.filter(pk=goal_id, user_id=user_id).delete()
    if not deleted:
        return ServiceResult.rejected(RejectionCode.NOT_FOUND, "Savings goal not found.")
    return ServiceResult.ok(message="Savings goal deleted.")


def goal_progress(user_id):
    totals = SavingsGoal.objects.filter(user_id=user_id).aggregate(
        total_goals=Count('id'),
        achieved_goals=Count('id', filter=Q(achieved=True)),
        total_target=Sum('target_amount'),
        total_saved=Sum('current_amount'),
    )
    total_target = to_money(totals['total_target'] or 0)
    total_saved = to_money(totals['total_saved'] or 0)
    return {
        'total_goals': totals['total_goals'],
        'achieved_goals': totals['achieved_goals'],
        'total_target': total_target,
        'total_saved': total_saved,
        'overall_progress': round(float(total_saved / total_target) * 100, 1) if total_target > 0 else 0.0,
    }
