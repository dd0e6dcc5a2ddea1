from django.urls import path
from .views import BulkReviewView, ReviewSubmissionView, RevokeSubmissionView

urlpatterns = [
    path("bulk-review/", BulkReviewView.as_view(), name="submission-bulk-review"),
    path("<int:submission_id>/review/", ReviewSubmissionView.as_view(), name="submission-review"),
    path("<int:submission_id>/revoke/", RevokeSubmissionView.as_view(), name="submission-revoke"),
]
