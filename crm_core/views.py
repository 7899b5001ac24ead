# crm_core/views.py
from django.conf import settings
from drf_spectacular.utils import extend_schema
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView


class HealthCheckView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response(
            {
                "status": "ok",
                "service": "Solar CRM workflow",
                "backend": settings.CRM_BACKEND_URL,
            }
        )
