"""
Need lifecycle engine.

A need moves REQUESTED -> PARTIALLY_PLEDGED -> FULLY_PLEDGED as pledges
accumulate, RECEIVED once its owner closes it, and back to REQUESTED when
reopened. Status is never stored: it is derived from ``pledged_amount``,
``quantity`` and ``closed`` (see ``models.derive_status``).

Every write runs through ``store.transactional_update`` so concurrent pledges
serialize on the need's version column instead of overwriting each other.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlmodel import Session, select

import store
from config import get_settings
from errors import AlreadyFulfilledError, InvalidInputError, ReopenTooEarlyError
from logging_config import get_logger
from models import Need, PledgeEntry, derive_status, utcnow
from services.pins import authorize_and_mutate, hash_pin, validate_pin, verify_pin
from services.registry import OWNER, PLEDGER, PostRegistry

logger = get_logger("needs")

COLLECTION = "needs"

__all__ = [
    "derive_status",
    "create_need",
    "pledge",
    "receive",
    "reopen",
    "set_closed",
    "active_pledges",
    "pledges_for_pin",
]


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInputError("Amount must be a positive whole number.", field="amount")
    return amount


def create_need(
    session: Session,
    need: Need,
    pin: str,
    registry: Optional[PostRegistry] = None,
) -> Need:
    """Store a new need in REQUESTED with nothing pledged."""
    if need.quantity is None or need.quantity < 0:
        raise InvalidInputError("Quantity cannot be negative.", field="quantity")

    need.secret_pin_hash = hash_pin(pin)
    need.pledged_amount = 0
    need.received_amount = 0
    need.closed = False
    need.donor_pin_hash = None
    need.pledged_at = None

    need = store.create_document(session, COLLECTION, need)
    if registry is not None:
        registry.record(store.post_key(COLLECTION, need.id), OWNER)
    return need


def pledge(
    session: Session,
    need_id: int,
    amount: int,
    pin: str,
    registry: Optional[PostRegistry] = None,
) -> Need:
    """
    Add ``amount`` to the need's pledged total.

    Fails with AlreadyFulfilledError when the need is closed or already at
    its target. The last pledge may overshoot the target; that is accepted.
    """
    _validate_amount(amount)
    validate_pin(pin)
    pin_hash = hash_pin(pin)

    def apply(need: Need) -> None:
        current = need.pledged_amount or 0
        target = need.quantity or 0
        if need.closed or current >= target:
            raise AlreadyFulfilledError(need.id)

        now = utcnow()
        need.pledged_amount = current + amount
        need.donor_pin_hash = pin_hash
        need.pledged_at = now
        session.add(PledgeEntry(need_id=need.id, amount=amount, pin_hash=pin_hash, created_at=now))

    try:
        need = store.transactional_update(session, COLLECTION, need_id, apply)
    except AlreadyFulfilledError:
        logger.info("Pledge refused, need %s already fulfilled", need_id)
        raise

    logger.info(
        "Pledged %d to need %s, now %d/%d (%s)",
        amount, need_id, need.pledged_amount, need.quantity, need.status.value,
    )
    if registry is not None:
        registry.record(store.post_key(COLLECTION, need_id), PLEDGER)
    return need


def receive(session: Session, need_id: int, amount: int, pin: Optional[str]) -> Need:
    """
    Owner confirms ``amount`` arrived and closes the need.

    RECEIVED does not imply the full quantity arrived.
    """
    _validate_amount(amount)

    def apply(need: Need) -> None:
        need.received_amount = (need.received_amount or 0) + amount
        need.closed = True

    need = authorize_and_mutate(session, COLLECTION, need_id, pin, apply)
    logger.info("Need %s received %d, total %d", need_id, amount, need.received_amount)
    return need


def reopen(session: Session, need_id: int, pin: Optional[str]) -> Need:
    """
    Put the need back to REQUESTED and drop its pledges.

    Refused while the most recent pledge is younger than the configured
    cool-off, so a donor has time to deliver before being displaced.
    """
    cooldown = timedelta(hours=get_settings().reopen_cooldown_hours)

    def apply(need: Need) -> None:
        now = utcnow()
        if need.pledged_at is not None:
            elapsed = now - _as_utc(need.pledged_at)
            if elapsed < cooldown:
                raise ReopenTooEarlyError(need.id, (cooldown - elapsed).total_seconds() / 3600)

        for entry in _active_entries(session, need.id):
            entry.voided_at = now
            session.add(entry)

        need.closed = False
        need.pledged_amount = 0
        need.donor_pin_hash = None
        need.pledged_at = None

    need = authorize_and_mutate(session, COLLECTION, need_id, pin, apply)
    logger.info("Need %s reopened", need_id)
    return need


def set_closed(session: Session, need_id: int, closed: bool) -> Need:
    """Administrative override of the closed flag, no PIN."""

    def apply(need: Need) -> None:
        need.closed = closed

    need = store.transactional_update(session, COLLECTION, need_id, apply)
    logger.info("Need %s closed=%s by administrator", need_id, closed)
    return need


def _active_entries(session: Session, need_id: int) -> List[PledgeEntry]:
    query = (
        select(PledgeEntry)
        .where(PledgeEntry.need_id == need_id, PledgeEntry.voided_at.is_(None))
        .order_by(PledgeEntry.created_at, PledgeEntry.id)
    )
    return list(session.exec(query).all())


def active_pledges(session: Session, need_id: int) -> List[PledgeEntry]:
    store.get_document(session, COLLECTION, need_id)
    return _active_entries(session, need_id)


def pledges_for_pin(session: Session, need_id: int, pin: str) -> List[PledgeEntry]:
    """Active pledges on the need made with ``pin``."""
    validate_pin(pin)
    return [e for e in active_pledges(session, need_id) if verify_pin(pin, e.pin_hash)]
