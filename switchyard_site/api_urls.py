"""
API URL aggregation under `/api/`.
"""

from django.urls import include, path

urlpatterns = [
    path("", include("apps.orchestration.interfaces.api.urls")),
]
