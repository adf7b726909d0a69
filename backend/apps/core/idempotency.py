"""Idempotency-Key bookkeeping for write endpoints.

One ``IdempotencyRecord`` exists per ``(source, operation, key)``; the unique
constraint on those columns decides which of two concurrent requests gets to run.
"""

import hashlib
import json
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import APIException

from apps.core.models import IdempotencyRecord

logger = logging.getLogger(__name__)


class IdempotencyConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A request with this Idempotency-Key is still being processed."
    default_code = "idempotency_conflict"


def as_json(data):
    return json.loads(json.dumps(data, default=str))


def fingerprint(payload) -> str:
    canonical = json.dumps(payload, default=str, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def claim(source: str, operation: str, key: str, payload) -> tuple[IdempotencyRecord, bool]:
    """Reserve ``key`` for the current request.

    Returns ``(record, replay)``. ``replay`` is True when the key already
    completed with the same payload; the caller answers with ``record.result``.
    A failed key may be reused, with a corrected payload if needed. A key that
    is still running, or that completed with a different payload, raises
    ``IdempotencyConflict``.
    """
    digest = fingerprint(payload)
    lookup = {"source": source, "operation": operation, "idempotency_key": key}

    with transaction.atomic():
        try:
            with transaction.atomic():
                record = IdempotencyRecord.objects.create(
                    **lookup,
                    payload=as_json(payload),
                    payload_hash=digest,
                )
            return record, False
        except IntegrityError:
            record = IdempotencyRecord.objects.select_for_update().get(**lookup)

        if record.status == IdempotencyRecord.Status.STARTED:
            raise IdempotencyConflict()
        if record.status == IdempotencyRecord.Status.COMPLETED:
            if record.payload_hash != digest:
                raise IdempotencyConflict("Idempotency-Key was already used with a different payload.")
            logger.info("Replaying %s %s for key %s", source, operation, key)
            return record, True

        record.status = IdempotencyRecord.Status.STARTED
        record.payload = as_json(payload)
        record.payload_hash = digest
        record.result = {}
        record.started_at = timezone.now()
        record.finished_at = None
        record.save()
        logger.info("Retrying failed %s %s for key %s", source, operation, key)
        return record, False


def finish(record: IdempotencyRecord, status_code: int, data) -> None:
    record.status = IdempotencyRecord.Status.COMPLETED
    record.finished_at = timezone.now()
    record.result = {"status_code": status_code, "data": as_json(data)}
    record.save(update_fields=["status", "finished_at", "result", "updated_at"])


def fail(record: IdempotencyRecord, status_code: int, errors) -> None:
    record.status = IdempotencyRecord.Status.FAILED
    record.finished_at = timezone.now()
    record.result = {"status_code": status_code, "errors": as_json(errors)}
    record.save(update_fields=["status", "finished_at", "result", "updated_at"])
