"""Numbering demo. Run from django-postgres-backend/ with:

    python manage.py shell < ../run_demo.py
"""
from concurrent.futures import ThreadPoolExecutor

from django.db import connection
from rest_framework.test import APIRequestFactory, force_authenticate
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.numbering.models import NumberingConfig
from apps.numbering.services import allocate_document_number
from apps.numbering.views import AllocateNumberView

factory = APIRequestFactory()
User = get_user_model()
clerk, _ = User.objects.get_or_create(username="demo_clerk", defaults={"email": "demo_clerk@example.com"})

fiscal_year = f"DEMO-{timezone.now():%Y%m%d%H%M%S}"
bilti, _ = NumberingConfig.objects.get_or_create(
    document_type="bilti",
    branch_scope="KTM",
    fiscal_year=fiscal_year,
    defaults={"per_branch": True, "prefix": "BL-", "padding_length": 3},
)
print("Series:", bilti)

# Through the API view, like the front end would
view = AllocateNumberView.as_view()
for _ in range(2):
    req = factory.post(
        "/api/v1/numbering/allocate/",
        {"documentType": "bilti", "branchScope": "KTM", "fiscalYear": fiscal_year},
        format="json",
    )
    force_authenticate(req, user=clerk)
    resp = view(req)
    print("API:", resp.status_code, resp.data)

missing = factory.post(
    "/api/v1/numbering/allocate/",
    {"documentType": "manifest", "branchScope": "KTM", "fiscalYear": fiscal_year},
    format="json",
)
force_authenticate(missing, user=clerk)
print("API (no series):", view(missing).status_code)


def grab(_):
    try:
        return allocate_document_number("bilti", "KTM", fiscal_year)
    finally:
        connection.close()


# Concurrent callers; SQLite serializes writers, PostgreSQL queues them on the row lock
with ThreadPoolExecutor(max_workers=4) as pool:
    issued = list(pool.map(grab, range(12)))

print("Concurrent:", sorted(issued))
print("Distinct:", len(set(issued)) == len(issued))
bilti.refresh_from_db()
print("Stored current_number:", bilti.current_number)
