from django.urls import path
from .views import (
    AuthSignupView, AuthLoginView, LogoutView, UserProfileView, UserProfileHomeownerView,
    UserProfileWorkerView, UserRatingStatsView, UserReviewsView, RecentReviewsView,
    ConsentStatusView, ConsentRequestView, ConsentVerifyView, ConsentGrantView, ConsentRevokeView,
    WorkerAvailabilityView, AvailableWorkerListView
)

urlpatterns = [
    # Authentication
    path('auth/signup/', AuthSignupView.as_view(), name='auth_signup'),
    path('auth/login/', AuthLoginView.as_view(), name='auth_login'),
    path('auth/logout/', LogoutView.as_view(), name='auth_logout'),

    # Profile Management
    path('users/profile/', UserProfileView.as_view(), name='user_profile'),
    path('users/profile/homeowner/', UserProfileHomeownerView.as_view(), name='user_profile_homeowner'),
    path('users/profile/worker/', UserProfileWorkerView.as_view(), name='user_profile_worker'),
    path('users/profile/worker/availability/', WorkerAvailabilityView.as_view(), name='worker_availability'),

    # Parent Consent
    path('consent/status/', ConsentStatusView.as_view(), name='consent_status'),
    path('consent/request/', ConsentRequestView.as_view(), name='consent_request'),
    path('consent/verify/<str:token>/', ConsentVerifyView.as_view(), name='consent_verify'),
    path('consent/grant/<str:token>/', ConsentGrantView.as_view(), name='consent_grant'),
    path('consent/revoke/', ConsentRevokeView.as_view(), name='consent_revoke'),

    # Worker Search
    path('workers/', AvailableWorkerListView.as_view(), name='available_workers'),

    # Rating Statistics
    path('users/ratings/', UserRatingStatsView.as_view(), name='user_ratings'),
    path('users/<int:user_id>/ratings/', UserRatingStatsView.as_view(), name='user_ratings_by_id'),

    # Reviews
    path('users/reviews/', UserReviewsView.as_view(), name='user_reviews'),
    path('users/<int:user_id>/reviews/', UserReviewsView.as_view(), name='user_reviews_by_id'),
    path('users/reviews/recent/', RecentReviewsView.as_view(), name='user_recent_reviews'),
    path('users/<int:user_id>/reviews/recent/', RecentReviewsView.as_view(), name='user_recent_reviews_by_id'),
]
