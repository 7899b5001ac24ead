from rest_framework.views import APIView
from rest_framework.response import Response


class ApiHomeView(APIView):
    authentication_classes = []
    permission_classes = []

    def get(self, request):
        return Response(
            {
                "message": "Welcome to the Solar CRM workflow API",
                "endpoints": {
                    "login": "/crm/auth/login/",
                    "whoami": "/crm/whoami/",
                    "board": "/crm/board/",
                    "workflow_definition": "/crm/workflows/definition/",
                    "schema": "/api/schema/",
                    "swagger": "/api/schema/swagger-ui/",
                    "redoc": "/api/schema/redoc/",
                    "health": "/crm/health/",
                },
            }
        )
