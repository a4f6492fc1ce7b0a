from django.db import IntegrityError, transaction
from django.forms.models import model_to_dict
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiTypes
from rest_framework import filters, permissions, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.governance.permissions import IsAdminOrReadOnly
from apps.governance.services import audit
from . import services
from .models import NumberingConfig
from .serializers import AllocateNumberSerializer, Conflict, NumberingConfigSerializer


AUDIT_TABLE = "numbering_config"


def _actor(request):
    return request.user if request.user.is_authenticated else None


def _meta(request) -> dict:
    return {"ip": request.META.get("REMOTE_ADDR", ""), "user_agent": request.META.get("HTTP_USER_AGENT", "")}


def _snapshot(obj: NumberingConfig) -> dict:
    return model_to_dict(obj, exclude=["id"])


def _save(serializer) -> NumberingConfig:
    # a concurrent writer can still trip the active-series constraint after validate()
    try:
        with transaction.atomic():
            return serializer.save()
    except IntegrityError:
        raise Conflict()


class NumberingConfigViewSet(viewsets.ModelViewSet):
    queryset = NumberingConfig.objects.all()
    serializer_class = NumberingConfigSerializer
    permission_classes = [IsAdminOrReadOnly]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ["document_type", "branch_scope", "fiscal_year", "is_active", "per_branch"]
    search_fields = ["document_type", "branch_scope", "prefix", "suffix"]
    ordering_fields = ["document_type", "branch_scope", "fiscal_year", "created_at"]

    @transaction.atomic
    def perform_create(self, serializer):
        obj = _save(serializer)
        audit(_actor(self.request), table=AUDIT_TABLE, row_id=obj.pk, action="CREATE", after=_snapshot(obj), meta=_meta(self.request))

    @transaction.atomic
    def perform_update(self, serializer):
        before = _snapshot(serializer.instance)
        obj = _save(serializer)
        audit(_actor(self.request), table=AUDIT_TABLE, row_id=obj.pk, action="UPDATE", before=before, after=_snapshot(obj), meta=_meta(self.request))

    @transaction.atomic
    def perform_destroy(self, instance):
        if instance.has_issued_numbers:
            raise Conflict("This series has already issued numbers. Deactivate it instead.")
        before = _snapshot(instance)
        row_id = instance.pk
        instance.delete()
        audit(_actor(self.request), table=AUDIT_TABLE, row_id=row_id, action="DELETE", before=before, meta=_meta(self.request))


class AllocateNumberView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(
        tags=["Numbering"],
        summary="Allocate the next document number of a series",
        request=AllocateNumberSerializer,
        responses={
            200: OpenApiTypes.OBJECT,
            400: OpenApiTypes.OBJECT,
            404: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            500: OpenApiTypes.OBJECT,
        },
        examples=[
            OpenApiExample(
                "Next bilti for Kathmandu",
                value={"documentType": "bilti", "branchScope": "KTM", "fiscalYear": "2024/25"},
            )
        ],
    )
    def post(self, request):
        ser = AllocateNumberSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        series = ser.validated_data
        try:
            number = services.allocate_document_number(
                series["document_type"], series["branch_scope"], series["fiscal_year"]
            )
        except services.ConfigNotFound:
            return Response({"error": "config not found"}, status=status.HTTP_404_NOT_FOUND)
        except services.AllocationFailed as exc:
            code = status.HTTP_409_CONFLICT if exc.reason == services.AllocationFailed.CONFLICT else status.HTTP_500_INTERNAL_SERVER_ERROR
            return Response({"error": "allocation failed"}, status=code)

        audit(
            _actor(request),
            table=AUDIT_TABLE,
            row_id="/".join((series["document_type"], series["branch_scope"], series["fiscal_year"])),
            action="ALLOCATE",
            after={**series, "document_number": number},
            meta=_meta(request),
        )
        return Response({"documentNumber": number})
