from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.orchestration.application.facade import ServiceFacade
from apps.orchestration.domain.errors import ConfigurationError

from .serializers import EntitySerializer, ServiceDetailSerializer

logger = logging.getLogger("switchyard.orchestration")


class ServiceListAPI(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request):
        try:
            services = ServiceFacade.all()
        except ConfigurationError as exc:
            logger.error("orchestration.services_unavailable", extra={"error": str(exc)})
            return Response({"detail": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response({"results": EntitySerializer(services, many=True).data})


class ServiceDetailAPI(APIView):
    permission_classes = [IsAdminUser]

    def get(self, request, service_id: str):
        try:
            facade = ServiceFacade(service_id)
        except ConfigurationError:
            return Response({"detail": "service_not_found"}, status=status.HTTP_404_NOT_FOUND)

        driver = facade.driver
        payload = {
            "id": facade.service.get_id(),
            "name": facade.service.get_name(),
            "driver": type(driver).__name__,
            "test_mode": driver.is_test_mode(),
            "default_provider": facade.get_default_provider(),
            "default_merchant": facade.get_default_merchant(),
            "providers": driver.providers(),
            "merchants": driver.merchants(),
        }
        return Response(ServiceDetailSerializer(payload).data)
