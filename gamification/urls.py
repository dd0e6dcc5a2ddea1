from django.urls import path
from .views import AssignBadgeView, UserProgressView

urlpatterns = [
    path("users/<int:user_id>/progress/", UserProgressView.as_view(), name="user-progress"),
    path("badges/<str:badge_code>/assign/", AssignBadgeView.as_view(), name="badge-assign"),
]
