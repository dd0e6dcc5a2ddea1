from django.urls import path
from .views import CompletionWebhookView, ReprocessCompletionEventView

urlpatterns = [
    path("completions/webhook/", CompletionWebhookView.as_view(), name="completion-webhook"),
    path(
        "completions/<str:event_id>/reprocess/",
        ReprocessCompletionEventView.as_view(),
        name="completion-reprocess",
    ),
]
