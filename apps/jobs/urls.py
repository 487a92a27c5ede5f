from django.urls import path
from .views import (
    JobCreateView, JobDetailView, AvailableJobListView, MyJobListView, JobClaimView,
    JobConfirmView, JobStartView, JobCompleteView, JobCancelView, JobHistoryView,
    JobRatingView, JobHasRatedView
)

urlpatterns = [
    path('jobs/create/', JobCreateView.as_view(), name='job_create'),
    path('jobs/available/', AvailableJobListView.as_view(), name='available_jobs'),
    path('jobs/mine/', MyJobListView.as_view(), name='my_jobs'),
    path('jobs/<int:pk>/details/', JobDetailView.as_view(), name='job_details'),
    path('jobs/<int:pk>/claim/', JobClaimView.as_view(), name='job_claim'),
    path('jobs/<int:pk>/confirm/', JobConfirmView.as_view(), name='job_confirm'),
    path('jobs/<int:pk>/start/', JobStartView.as_view(), name='job_start'),
    path('jobs/<int:pk>/complete/', JobCompleteView.as_view(), name='job_complete'),
    path('jobs/<int:pk>/cancel/', JobCancelView.as_view(), name='job_cancel'),
    path('jobs/<int:pk>/history/', JobHistoryView.as_view(), name='job_history'),
    path('jobs/<int:pk>/ratings/', JobRatingView.as_view(), name='job_ratings'),
    path('jobs/<int:pk>/ratings/check/', JobHasRatedView.as_view(), name='job_has_rated'),
]
