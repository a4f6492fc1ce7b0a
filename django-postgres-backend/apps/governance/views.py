from rest_framework import generics, serializers

from .permissions import IsAdmin
from .models import AuditLog


class AuditLogListSerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLog
        fields = (
            "id", "actor_user", "action", "table_name", "record_id",
            "before_json", "after_json", "request_id", "created_at",
        )


class AuditLogListView(generics.ListAPIView):
    permission_classes = [IsAdmin]
    serializer_class = AuditLogListSerializer

    def get_queryset(self):
        qs = AuditLog.objects.all()
        table = self.request.query_params.get("table")
        record_id = self.request.query_params.get("record_id")
        action = self.request.query_params.get("action")
        if table:
            qs = qs.filter(table_name=table)
        if record_id:
            qs = qs.filter(record_id=str(record_id))
        if action:
            qs = qs.filter(action=action.upper())
        return qs.order_by("-created_at", "-id")
