from django.urls import path

from .views import ServiceDetailAPI, ServiceListAPI


urlpatterns = [
    path("orchestration/services/", ServiceListAPI.as_view(), name="orchestration_services"),
    path("orchestration/services/<str:service_id>/", ServiceDetailAPI.as_view(), name="orchestration_service_detail"),
]
