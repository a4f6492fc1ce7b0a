from django.db import models


GLOBAL_BRANCH_SCOPE = "Global"


def format_document_number(number: int, *, prefix: str = "", suffix: str = "", padding_length: int = 0) -> str:
    """Render ``number`` between prefix and suffix, zero-padded to ``padding_length``.

    Padding never truncates: a number wider than the padding keeps all of its digits.
    """
    return f"{prefix or ''}{str(number).zfill(padding_length or 0)}{suffix or ''}"


class DocumentType(models.TextChoices):
    BILTI = "bilti", "Bilti"
    MANIFEST = "manifest", "Manifest"
    GOODS_RECEIPT = "goods_receipt", "Goods Receipt"
    GOODS_DELIVERY = "goods_delivery", "Goods Delivery"
    DAYBOOK = "daybook", "Daybook"
    INVOICE = "invoice", "Invoice"
    WAYBILL = "waybill", "Waybill"
    RECEIPT = "receipt", "Receipt"
    CREDIT_NOTE = "credit_note", "Credit Note"
    PURCHASE_ORDER = "purchase_order", "Purchase Order"


class NumberingConfigQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def for_series(self, document_type: str, branch_scope: str, fiscal_year: str):
        return self.filter(document_type=document_type, branch_scope=branch_scope, fiscal_year=fiscal_year)


class NumberingConfig(models.Model):
    document_type = models.CharField(max_length=32, choices=DocumentType.choices)
    per_branch = models.BooleanField(default=False)
    branch_scope = models.CharField(max_length=64, default=GLOBAL_BRANCH_SCOPE)
    fiscal_year = models.CharField(max_length=16)
    prefix = models.CharField(max_length=16, blank=True, default="")
    suffix = models.CharField(max_length=16, blank=True, default="")
    padding_length = models.PositiveSmallIntegerField(default=0)
    start_number = models.PositiveIntegerField(default=1)
    current_number = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = NumberingConfigQuerySet.as_manager()

    class Meta:
        ordering = ("document_type", "branch_scope", "fiscal_year")
        constraints = [
            models.UniqueConstraint(
                fields=["document_type", "branch_scope", "fiscal_year"],
                condition=models.Q(is_active=True),
                name="uniq_active_numbering_series",
            ),
        ]
        indexes = [
            models.Index(fields=["document_type", "branch_scope", "fiscal_year"], name="idx_numbering_series"),
        ]

    def __str__(self) -> str:
        return f"{self.document_type}/{self.branch_scope}/{self.fiscal_year}:{self.format_number(self.current_number)}"

    @property
    def has_issued_numbers(self) -> bool:
        return self.current_number > self.start_number

    def format_number(self, number: int) -> str:
        return format_document_number(
            number,
            prefix=self.prefix,
            suffix=self.suffix,
            padding_length=self.padding_length,
        )
