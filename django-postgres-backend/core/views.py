from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import permissions


def home(request):
    return JsonResponse({"message": "Transport document numbering backend", "docs": "/api/schema/swagger/"})


def health(request):
    return JsonResponse({"ok": True})


class HealthCheckView(APIView):
    """Liveness plus a trivial database round trip."""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute("SELECT 1")
        except DatabaseError:
            return Response({"status": "degraded", "database": "unreachable"}, status=503)
        return Response({"status": "ok", "database": "ok"})
