from __future__ import annotations

import logging
import random
import time

from django.conf import settings
from django.db import DatabaseError, OperationalError, transaction
from django.db.models import F

from .models import NumberingConfig

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}

DEFAULT_RETRY_POLICY = {
    "MAX_ATTEMPTS": 5,
    "BACKOFF_BASE_SECONDS": 0.02,
    "BACKOFF_MAX_SECONDS": 0.5,
}


class NumberingError(Exception):
    pass


class ConfigNotFound(NumberingError):
    def __init__(self, document_type: str, branch_scope: str, fiscal_year: str):
        self.document_type = document_type
        self.branch_scope = branch_scope
        self.fiscal_year = fiscal_year
        super().__init__(
            f"No active numbering config for {document_type}/{branch_scope}/{fiscal_year}"
        )


class AllocationFailed(NumberingError):
    CONFLICT = "conflict"
    STORAGE = "storage"

    def __init__(self, message: str, reason: str = STORAGE):
        self.reason = reason
        super().__init__(message)


class WriteConflict(NumberingError):
    """Another allocator advanced the series between our read and our update."""


def _retry_policy() -> dict:
    policy = dict(DEFAULT_RETRY_POLICY)
    policy.update(getattr(settings, "DOCUMENT_NUMBERING", None) or {})
    return policy


def _backoff_delay(attempt: int, policy: dict) -> float:
    # full jitter
    ceiling = min(policy["BACKOFF_MAX_SECONDS"], policy["BACKOFF_BASE_SECONDS"] * (2 ** (attempt - 1)))
    return random.uniform(0, ceiling)


def is_write_conflict(exc: DatabaseError) -> bool:
    cause = exc.__cause__
    sqlstate = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if sqlstate in CONFLICT_SQLSTATES:
        return True
    return "database is locked" in str(exc).lower()


def _lookup_config(document_type: str, branch_scope: str, fiscal_year: str) -> NumberingConfig:
    config = (
        NumberingConfig.objects.select_for_update()
        .active()
        .for_series(document_type, branch_scope, fiscal_year)
        .first()
    )
    if config is None:
        raise ConfigNotFound(document_type, branch_scope, fiscal_year)
    return config


def _claim(config_id: int, observed: int) -> bool:
    """Compare-and-swap ``current_number`` from ``observed`` to ``observed + 1``.

    Returns False when the row no longer holds ``observed`` or was deactivated.
    """
    updated = (
        NumberingConfig.objects
        .filter(pk=config_id, is_active=True, current_number=observed)
        .update(current_number=F("current_number") + 1)
    )
    return updated == 1


def _allocate_once(document_type: str, branch_scope: str, fiscal_year: str) -> str:
    try:
        with transaction.atomic():
            config = _lookup_config(document_type, branch_scope, fiscal_year)
            observed = config.current_number
            if not _claim(config.pk, observed):
                raise WriteConflict(f"series {config.pk} moved past {observed}")
    except OperationalError as exc:
        if is_write_conflict(exc):
            raise WriteConflict(str(exc)) from exc
        raise AllocationFailed(f"Numbering store unavailable: {exc}") from exc
    except DatabaseError as exc:
        raise AllocationFailed(f"Numbering store error: {exc}") from exc
    return config.format_number(observed)


def allocate_document_number(document_type: str, branch_scope: str, fiscal_year: str) -> str:
    """Issue the next number of the (document_type, branch_scope, fiscal_year) series.

    The series row is locked for the length of the attempt and its
    ``current_number`` is advanced with a single conditional UPDATE, so
    concurrent callers (in this process or any other) wait their turn and never
    receive the same value. A lost race or a serialization failure
    restarts from the lookup; a value observed in a failed attempt is never
    returned.

    Raises ``ConfigNotFound`` (no retry) or ``AllocationFailed``.
    """
    for name, value in (("document_type", document_type), ("branch_scope", branch_scope), ("fiscal_year", fiscal_year)):
        if not value or not str(value).strip():
            raise ValueError(f"{name} is required")

    policy = _retry_policy()
    max_attempts = max(1, int(policy["MAX_ATTEMPTS"]))
    for attempt in range(1, max_attempts + 1):
        try:
            number = _allocate_once(document_type, branch_scope, fiscal_year)
        except WriteConflict as exc:
            logger.debug(
                "Numbering conflict on %s/%s/%s (attempt %s/%s): %s",
                document_type, branch_scope, fiscal_year, attempt, max_attempts, exc,
            )
            if attempt == max_attempts:
                logger.error(
                    "Gave up allocating %s/%s/%s after %s conflicting attempts",
                    document_type, branch_scope, fiscal_year, max_attempts,
                )
                raise AllocationFailed(
                    f"Could not allocate a number after {max_attempts} attempts",
                    reason=AllocationFailed.CONFLICT,
                ) from exc
            time.sleep(_backoff_delay(attempt, policy))
        except ConfigNotFound:
            logger.warning("No numbering config for %s/%s/%s", document_type, branch_scope, fiscal_year)
            raise
        except AllocationFailed:
            logger.exception("Allocation failed for %s/%s/%s", document_type, branch_scope, fiscal_year)
            raise
        else:
            logger.info("Allocated %s for %s/%s/%s", number, document_type, branch_scope, fiscal_year)
            return number
