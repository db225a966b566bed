"""Idempotency utilities for safely handling duplicate order requests.

This module stores and retrieves idempotency keys to de-duplicate client
requests. It supports creating an idempotent record, detecting conflicts
when the same key is used with a different payload, and finalizing a stored
response so subsequent retries can short-circuit.

Records are committed in their own transactions, separately from the order
workflow, so a failed checkout still leaves a replayable response behind.
"""

import hashlib
import json
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import IdempotencyKey


class IdempotencyConflict(ValueError):
    """The key was already used with a different payload."""


def canonical_hash(payload: dict) -> str:
    """Compute a deterministic SHA-256 hash of a request payload.

    The payload is serialized to JSON with sorted keys and compact
    separators to ensure a canonical representation across callers.

    Args:
        payload: JSON-serializable dict to hash.

    Returns:
        str: Hex-encoded SHA-256 digest of the canonical JSON body.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def get_or_create_idempotent(session: Session, key: str, payload: dict) -> tuple[bool, IdempotencyKey]:
    """Get-or-create an idempotency record for the given key and payload.

    Behavior:
        - New key: create and commit a record, return ``(False, rec)``.
        - Known key, same payload: return ``(True, rec)`` for replay.
        - Known key, different payload: raise ``IdempotencyConflict``.

    Args:
        session: Session used for the lookup and insert.
        key: Client-provided idempotency key.
        payload: Request payload used to compute the request hash.

    Returns:
        tuple[bool, IdempotencyKey]: ``(existing, rec)``.

    Raises:
        IdempotencyConflict: If the key exists but the payload hash differs.
    """
    h = canonical_hash(payload)
    try:
        rec = IdempotencyKey(key=key, request_hash=h, response_status=0, response_body={})
        session.add(rec)
        session.commit()
        return False, rec
    except IntegrityError:
        session.rollback()

    rec = session.execute(
        select(IdempotencyKey).where(IdempotencyKey.key == key).with_for_update()
    ).scalars().one()
    if rec.request_hash != h:
        raise IdempotencyConflict("IDEMPOTENCY_CONFLICT")
    return True, rec


def finalize(session: Session, rec: IdempotencyKey, status_code: int, body: dict, order_id: Optional[int] = None) -> None:
    """Persist the final response for an idempotent request.

    Args:
        session: Session the record belongs to (or can be merged into).
        rec: The idempotency record to update.
        status_code: HTTP status code to store for the response.
        body: JSON-serializable response body to persist.
        order_id: Optional order identifier to link to the record.
    """
    rec = session.merge(rec)
    rec.response_status = status_code
    rec.response_body = body
    if order_id is not None:
        rec.order_id = order_id
    session.commit()


def release(session: Session, rec: IdempotencyKey) -> None:
    """Drop an in-progress record so a retry with the same key runs again.

    Used when the request failed for a reason unrelated to its payload
    (database or upstream outage), where replaying the failure would lock
    the client out of the key.
    """
    session.delete(session.merge(rec))
    session.commit()
