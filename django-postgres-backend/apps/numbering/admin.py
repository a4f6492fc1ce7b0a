from django.contrib import admin
from .models import NumberingConfig


@admin.register(NumberingConfig)
class NumberingConfigAdmin(admin.ModelAdmin):
    list_display = ("document_type", "branch_scope", "fiscal_year", "prefix", "suffix", "padding_length", "current_number", "is_active")
    list_filter = ("document_type", "fiscal_year", "is_active", "per_branch")
    search_fields = ("branch_scope", "prefix", "suffix")
    readonly_fields = ("current_number", "created_at", "updated_at")

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ("created_at", "updated_at")
        return self.readonly_fields + ("document_type", "per_branch", "branch_scope", "fiscal_year", "start_number")

    def save_model(self, request, obj, form, change):
        if not change:
            obj.current_number = obj.start_number
        super().save_model(request, obj, form, change)
