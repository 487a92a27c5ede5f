from django.db import models
from django.contrib.auth.models import AbstractUser
from django.db.models import Avg, Count
from core.constants import USER_TYPE_CHOICES


class User(AbstractUser):
    email = models.EmailField(blank=True, null=True, unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True, unique=True)
    user_type = models.CharField(max_length=10, choices=USER_TYPE_CHOICES, default='homeowner')
    address = models.CharField(max_length=255, blank=True, null=True)
    city = models.CharField(max_length=100, blank=True, null=True)
    zip = models.CharField(max_length=10, blank=True, null=True)
    lat = models.FloatField(blank=True, null=True)
    lng = models.FloatField(blank=True, null=True)
    payment_customer_id = models.CharField(max_length=100, blank=True, null=True)
    payout_account_id = models.CharField(max_length=100, blank=True, null=True)

    @property
    def is_homeowner(self):
        return hasattr(self, 'homeowner')

    @property
    def is_worker(self):
        return hasattr(self, 'worker')

    def get_rating_stats(self):
        """Get rating statistics from every rating addressed to this user."""
        from apps.jobs.models import Rating

        stats = {
            'average_rating': 0.0,
            'total_ratings': 0,
            'rating_breakdown': {
                '5_star': 0,
                '4_star': 0,
                '3_star': 0,
                '2_star': 0,
                '1_star': 0
            },
            'rating_distribution': {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        }

        ratings = Rating.objects.filter(rated=self)
        totals = ratings.aggregate(average=Avg('rating'), total=Count('id'))
        if not totals['total']:
            return stats

        stats['total_ratings'] = totals['total']
        stats['average_rating'] = round(totals['average'], 1)

        for row in ratings.values('rating').annotate(count=Count('id')):
            stats['rating_distribution'][row['rating']] = row['count']

        # Convert to percentages
        for value, count in stats['rating_distribution'].items():
            stats['rating_breakdown'][f'{value}_star'] = round(
                (count / stats['total_ratings']) * 100, 1
            )

        return stats


class Homeowner(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='homeowner')
    property_type = models.CharField(max_length=50, default='house')
    driveway_size = models.CharField(max_length=20, blank=True, null=True)
    special_instructions = models.TextField(blank=True, null=True)
    jobs_posted_count = models.PositiveIntegerField(default=0)
    jobs_completed_count = models.PositiveIntegerField(default=0)
    avg_rating = models.FloatField(default=0)
    total_ratings = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Homeowner: {self.user.username}"


class Worker(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='worker')
    parent = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='supervised_workers'
    )
    age = models.PositiveSmallIntegerField(blank=True, null=True)
    bio = models.TextField(blank=True, null=True)
    travel_radius_miles = models.PositiveSmallIntegerField(default=2)
    available_now = models.BooleanField(default=False)
    # Set only by a granted parent consent; unverified workers cannot claim jobs.
    verified = models.BooleanField(default=False)
    verified_at = models.DateTimeField(blank=True, null=True)
    total_earnings = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    future_fund_balance = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    completed_jobs_count = models.PositiveIntegerField(default=0)
    avg_rating = models.FloatField(default=0)
    total_ratings = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Worker: {self.user.username}"


class ParentConsent(models.Model):
    """
    A parent's consent for a worker to take jobs.

    The parent receives ``consent_token`` by email and grants consent from the
    link, logged in or not. Granting verifies the worker's profile; the parent
    account that granted it can later revoke it.
    """
    worker = models.ForeignKey(User, on_delete=models.CASCADE, related_name='parent_consents')
    parent = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='granted_consents'
    )
    parent_email = models.EmailField()
    parent_name = models.CharField(max_length=150, blank=True, null=True)
    consent_token = models.CharField(max_length=64, unique=True)
    consent_given = models.BooleanField(default=False)
    consent_given_at = models.DateTimeField(blank=True, null=True)
    ip_address = models.CharField(max_length=45, blank=True, null=True)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Consent for {self.worker.username} from {self.parent_email}"

    def is_expired(self, now):
        return not self.consent_given and self.expires_at < now
