# core/constants.py
from decimal import Decimal

USER_TYPE_CHOICES = (
    ('homeowner', 'Homeowner'),
    ('worker', 'Worker'),
    ('parent', 'Parent'),
)

SERVICE_TYPE_CHOICES = (
    ('driveway', 'Driveway'),
    ('walkway', 'Walkway'),
    ('car_brushing', 'Car Brushing'),
    ('combo', 'Combo'),
)

PAYMENT_METHOD_CHOICES = (
    ('cash', 'Cash'),
    ('card', 'Card'),
)

PAYMENT_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('processing', 'Processing'),
    ('paid', 'Paid'),
    ('failed', 'Failed'),
    ('refunded', 'Refunded'),
)

EARNING_STATUS_CHOICES = (
    ('pending', 'Pending'),        # Recorded, payout not yet confirmed
    ('completed', 'Completed'),    # Payout transfer confirmed by the gateway
    ('failed', 'Failed'),          # Payout transfer failed
)

RATER_TYPE_CHOICES = (
    ('homeowner', 'Homeowner'),
    ('worker', 'Worker'),
)

NOTIFICATION_CHANNEL_CHOICES = (
    ('email', 'Email'),
    ('sms', 'SMS'),
    ('both', 'Both'),
)

NOTIFICATION_STATUS_CHOICES = (
    ('pending', 'Pending'),
    ('sent', 'Sent'),
    ('failed', 'Failed'),
)

# Fee policy. Cash jobs are exempt and pay the full amount to the worker.
PLATFORM_FEE_RATE = Decimal('0.07')
FUTURE_FUND_RATE = Decimal('0.03')

# Future Fund projection shown on the earnings summary.
FUTURE_FUND_GROWTH_RATE = 0.07
FUTURE_FUND_GROWTH_YEARS = 10

MAX_JOB_PRICE = Decimal('500')
MIN_RATING = 1
MAX_RATING = 5

DEFAULT_NOTIFICATION_WINDOW_HOURS = 12
DEFAULT_SEARCH_RADIUS_MILES = 10
DEFAULT_WORKER_SEARCH_RADIUS_MILES = 5

# Days a parent has to act on a consent request.
CONSENT_REQUEST_DAYS = 7
