from django.core.management.base import BaseCommand, CommandError

from apps.numbering.models import DocumentType, GLOBAL_BRANCH_SCOPE, NumberingConfig


DEFAULT_PREFIXES = {
    DocumentType.BILTI: "BL-",
    DocumentType.MANIFEST: "MF-",
    DocumentType.GOODS_RECEIPT: "GR-",
    DocumentType.GOODS_DELIVERY: "GD-",
    DocumentType.DAYBOOK: "DB-",
    DocumentType.INVOICE: "INV-",
    DocumentType.WAYBILL: "WB-",
    DocumentType.RECEIPT: "RC-",
    DocumentType.CREDIT_NOTE: "CN-",
    DocumentType.PURCHASE_ORDER: "PO-",
}


class Command(BaseCommand):
    help = "Seed numbering series for every document type (global and per branch) for a fiscal year"

    def add_arguments(self, parser):
        parser.add_argument("--fiscal-year", required=True)
        parser.add_argument("--branch", action="append", default=[], dest="branches")
        parser.add_argument("--padding", type=int, default=4)
        parser.add_argument("--start", type=int, default=1)

    def handle(self, *args, **options):
        fiscal_year = options["fiscal_year"].strip()
        if not fiscal_year:
            raise CommandError("--fiscal-year may not be blank")
        if options["start"] < 0 or options["padding"] < 0:
            raise CommandError("--start and --padding must be >= 0")

        scopes = [(False, GLOBAL_BRANCH_SCOPE)] + [(True, b.strip()) for b in options["branches"] if b.strip()]
        created = 0
        for doc_type, prefix in DEFAULT_PREFIXES.items():
            for per_branch, scope in scopes:
                _, was_created = NumberingConfig.objects.active().get_or_create(
                    document_type=doc_type,
                    branch_scope=scope,
                    fiscal_year=fiscal_year,
                    defaults=dict(
                        per_branch=per_branch,
                        prefix=prefix,
                        padding_length=options["padding"],
                        start_number=options["start"],
                        current_number=options["start"],
                    ),
                )
                created += int(was_created)
        self.stdout.write(self.style.SUCCESS(f"Seeded numbering series: {created}"))
