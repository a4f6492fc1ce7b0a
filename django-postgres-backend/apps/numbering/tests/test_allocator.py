from concurrent.futures import ThreadPoolExecutor
from unittest import mock, skipUnless

from django.db import DatabaseError, OperationalError, connection, transaction
from django.db.models import F
from django.test import TestCase, TransactionTestCase, override_settings
from django.test.utils import CaptureQueriesContext

from apps.numbering import services
from apps.numbering.models import NumberingConfig
from apps.numbering.services import AllocationFailed, ConfigNotFound, allocate_document_number


NO_BACKOFF = {"MAX_ATTEMPTS": 3, "BACKOFF_BASE_SECONDS": 0, "BACKOFF_MAX_SECONDS": 0}


class FakePgError(Exception):
    def __init__(self, pgcode):
        super().__init__(pgcode)
        self.pgcode = pgcode


def pg_operational_error(pgcode, message="could not serialize access"):
    err = OperationalError(message)
    err.__cause__ = FakePgError(pgcode)
    return err


@override_settings(DOCUMENT_NUMBERING=NO_BACKOFF)
class AllocateDocumentNumberTests(TestCase):
    def setUp(self):
        self.bilti = NumberingConfig.objects.create(
            document_type="bilti",
            per_branch=True,
            branch_scope="KTM",
            fiscal_year="2024/25",
            prefix="BL-",
            padding_length=3,
            start_number=1,
            current_number=1,
        )

    def test_first_and_second_allocation(self):
        self.assertEqual(allocate_document_number("bilti", "KTM", "2024/25"), "BL-001")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 2)

        self.assertEqual(allocate_document_number("bilti", "KTM", "2024/25"), "BL-002")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 3)

    def test_formats_from_current_number_and_advances_by_one(self):
        cfg = NumberingConfig.objects.create(
            document_type="invoice",
            fiscal_year="2024/25",
            prefix="INV-",
            suffix="/24",
            padding_length=4,
            start_number=1001,
            current_number=1001,
        )
        self.assertEqual(allocate_document_number("invoice", "Global", "2024/25"), "INV-1001/24")
        cfg.refresh_from_db()
        self.assertEqual(cfg.current_number, 1002)

    def test_only_current_number_changes(self):
        before = NumberingConfig.objects.values().get(pk=self.bilti.pk)
        allocate_document_number("bilti", "KTM", "2024/25")
        after = NumberingConfig.objects.values().get(pk=self.bilti.pk)
        changed = {k for k in before if before[k] != after[k]}
        self.assertEqual(changed, {"current_number"})

    def test_sequential_allocations_are_unique_and_contiguous(self):
        numbers = [allocate_document_number("bilti", "KTM", "2024/25") for _ in range(10)]
        self.assertEqual(len(set(numbers)), 10)
        self.assertEqual(numbers, [f"BL-{n:03d}" for n in range(1, 11)])

    def test_series_are_independent(self):
        NumberingConfig.objects.create(
            document_type="bilti", per_branch=True, branch_scope="PKR", fiscal_year="2024/25",
            prefix="PK-", padding_length=3,
        )
        self.assertEqual(allocate_document_number("bilti", "PKR", "2024/25"), "PK-001")
        self.assertEqual(allocate_document_number("bilti", "KTM", "2024/25"), "BL-001")
        self.assertEqual(allocate_document_number("bilti", "PKR", "2024/25"), "PK-002")

    def test_unknown_series_raises_and_writes_nothing(self):
        with self.assertRaises(ConfigNotFound) as ctx:
            allocate_document_number("bilti", "KTM", "2025/26")
        self.assertEqual(ctx.exception.fiscal_year, "2025/26")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 1)

    def test_inactive_config_never_issues(self):
        NumberingConfig.objects.filter(pk=self.bilti.pk).update(is_active=False)
        with self.assertRaises(ConfigNotFound):
            allocate_document_number("bilti", "KTM", "2024/25")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 1)

    def test_config_not_found_is_not_retried(self):
        with mock.patch.object(services, "_lookup_config", wraps=services._lookup_config) as lookup:
            with self.assertRaises(ConfigNotFound):
                allocate_document_number("manifest", "KTM", "2024/25")
        self.assertEqual(lookup.call_count, 1)

    def test_blank_inputs_are_rejected(self):
        for args in (("", "KTM", "2024/25"), ("bilti", " ", "2024/25"), ("bilti", "KTM", "")):
            with self.assertRaises(ValueError):
                allocate_document_number(*args)

    def test_stale_read_retries_with_fresh_value(self):
        stale = NumberingConfig.objects.get(pk=self.bilti.pk)
        # another allocator committed 1 after our read
        NumberingConfig.objects.filter(pk=self.bilti.pk).update(current_number=F("current_number") + 1)
        real_lookup = services._lookup_config
        observed = []

        def lookup(*args):
            config = stale if not observed else real_lookup(*args)
            observed.append(config.current_number)
            return config

        with mock.patch.object(services, "_lookup_config", side_effect=lookup):
            number = allocate_document_number("bilti", "KTM", "2024/25")

        self.assertEqual(observed, [1, 2])
        self.assertEqual(number, "BL-002")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 3)

    def test_exhausted_retries_raise_allocation_failed(self):
        with mock.patch.object(services, "_claim", return_value=False) as claim:
            with self.assertRaises(AllocationFailed) as ctx:
                allocate_document_number("bilti", "KTM", "2024/25")
        self.assertEqual(ctx.exception.reason, AllocationFailed.CONFLICT)
        self.assertEqual(claim.call_count, NO_BACKOFF["MAX_ATTEMPTS"])
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 1)

    def test_serialization_failure_is_retried(self):
        real_claim = services._claim
        calls = []

        def flaky_claim(config_id, observed):
            calls.append(observed)
            if len(calls) == 1:
                raise pg_operational_error("40001")
            return real_claim(config_id, observed)

        with mock.patch.object(services, "_claim", side_effect=flaky_claim):
            number = allocate_document_number("bilti", "KTM", "2024/25")

        self.assertEqual(calls, [1, 1])
        self.assertEqual(number, "BL-001")
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 2)

    def test_storage_error_is_not_retried(self):
        with mock.patch.object(services, "_claim", side_effect=DatabaseError("disk full")) as claim:
            with self.assertRaises(AllocationFailed) as ctx:
                allocate_document_number("bilti", "KTM", "2024/25")
        self.assertEqual(ctx.exception.reason, AllocationFailed.STORAGE)
        self.assertIsInstance(ctx.exception.__cause__, DatabaseError)
        self.assertEqual(claim.call_count, 1)
        self.bilti.refresh_from_db()
        self.assertEqual(self.bilti.current_number, 1)

    def test_connection_error_is_not_retried(self):
        with mock.patch.object(services, "_claim", side_effect=OperationalError("server closed the connection")) as claim:
            with self.assertRaises(AllocationFailed) as ctx:
                allocate_document_number("bilti", "KTM", "2024/25")
        self.assertEqual(ctx.exception.reason, AllocationFailed.STORAGE)
        self.assertEqual(claim.call_count, 1)


class WriteConflictDetectionTests(TestCase):
    def test_postgres_conflict_codes(self):
        for code in ("40001", "40P01", "55P03"):
            self.assertTrue(services.is_write_conflict(pg_operational_error(code)))

    def test_other_postgres_codes(self):
        self.assertFalse(services.is_write_conflict(pg_operational_error("08006", "connection failure")))

    def test_sqlite_lock(self):
        self.assertTrue(services.is_write_conflict(OperationalError("database is locked")))


@skipUnless(connection.vendor == "postgresql", "needs row-level locking of a real server")
@override_settings(DOCUMENT_NUMBERING=services.DEFAULT_RETRY_POLICY)
class ConcurrentAllocationTests(TransactionTestCase):
    def test_threads_never_share_a_number(self):
        cfg = NumberingConfig.objects.create(
            document_type="manifest", fiscal_year="2024/25", prefix="MF-", padding_length=4,
        )

        def worker(_):
            try:
                return [allocate_document_number("manifest", "Global", "2024/25") for _ in range(5)]
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            batches = list(pool.map(worker, range(8)))

        numbers = [n for batch in batches for n in batch]
        self.assertEqual(len(numbers), 40)
        self.assertEqual(sorted(numbers), [f"MF-{n:04d}" for n in range(1, 41)])
        cfg.refresh_from_db()
        self.assertEqual(cfg.current_number, 41)


@skipUnless(connection.features.has_select_for_update, "backend has no row locks")
class SeriesLockTests(TestCase):
    def test_lookup_locks_the_series_row(self):
        NumberingConfig.objects.create(document_type="receipt", fiscal_year="2024/25", prefix="RC-")
        with transaction.atomic(), CaptureQueriesContext(connection) as ctx:
            services._lookup_config("receipt", "Global", "2024/25")
        self.assertTrue(any("FOR UPDATE" in q["sql"] for q in ctx.captured_queries))
