from rest_framework import serializers, status
from rest_framework.exceptions import APIException

from .models import DocumentType, GLOBAL_BRANCH_SCOPE, NumberingConfig


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "An active numbering series already exists for this document type, branch and fiscal year"


SERIES_FIELDS = ("document_type", "per_branch", "branch_scope", "fiscal_year", "start_number")


class NumberingConfigSerializer(serializers.ModelSerializer):
    next_number_preview = serializers.SerializerMethodField()

    class Meta:
        model = NumberingConfig
        fields = (
            "id",
            "document_type",
            "per_branch",
            "branch_scope",
            "fiscal_year",
            "prefix",
            "suffix",
            "padding_length",
            "start_number",
            "current_number",
            "is_active",
            "next_number_preview",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("current_number", "created_at", "updated_at")
        # uniqueness of the active series is checked in validate() to answer 409
        validators = []

    def get_next_number_preview(self, obj) -> str:
        return obj.format_number(obj.current_number)

    def validate(self, attrs):
        if self.instance is not None:
            changed = [f for f in SERIES_FIELDS if f in attrs and attrs[f] != getattr(self.instance, f)]
            if changed:
                raise serializers.ValidationError({f: "Cannot be changed once the series exists." for f in changed})

        per_branch = attrs.get("per_branch", getattr(self.instance, "per_branch", False))
        branch_scope = (attrs.get("branch_scope", getattr(self.instance, "branch_scope", "")) or "").strip()
        if not per_branch:
            branch_scope = GLOBAL_BRANCH_SCOPE
        elif not branch_scope or branch_scope == GLOBAL_BRANCH_SCOPE:
            raise serializers.ValidationError({"branch_scope": "A specific branch is required for a per-branch series."})
        if self.instance is None:
            attrs["branch_scope"] = branch_scope

        is_active = attrs.get("is_active", getattr(self.instance, "is_active", True))
        if is_active:
            document_type = attrs.get("document_type", getattr(self.instance, "document_type", None))
            fiscal_year = attrs.get("fiscal_year", getattr(self.instance, "fiscal_year", None))
            qs = NumberingConfig.objects.active().for_series(document_type, branch_scope, fiscal_year)
            if self.instance is not None:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise Conflict()
        return attrs

    def create(self, validated_data):
        validated_data["current_number"] = validated_data.get("start_number", 1)
        return super().create(validated_data)


class AllocateNumberSerializer(serializers.Serializer):
    documentType = serializers.ChoiceField(choices=DocumentType.choices, source="document_type")
    branchScope = serializers.CharField(
        source="branch_scope", max_length=64, required=False, default=GLOBAL_BRANCH_SCOPE
    )
    fiscalYear = serializers.CharField(source="fiscal_year", max_length=16)
