"""PIN authorization guard shared by needs, people, volunteers and service requests."""

import re
from typing import Any, Callable, Dict, Optional, get_args

from passlib.context import CryptContext
from sqlmodel import Session, SQLModel

import store
from errors import InvalidInputError, UnauthorizedError
from logging_config import get_logger
from models import utcnow
from services.registry import PostRegistry

logger = get_logger("pins")

PIN_PATTERN = re.compile(r"^[0-9]{4}$")

pin_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)

# Silently dropped from every patch, whatever the caller sends.
PROTECTED_FIELDS = {"id", "secret_pin", "secret_pin_hash", "created_at"}

# Owned by the need lifecycle engine or the store; patching them is an error.
READ_ONLY_FIELDS = {
    "version",
    "pledged_amount",
    "received_amount",
    "closed",
    "donor_pin_hash",
    "pledged_at",
}


def validate_pin(pin: Optional[str], field: str = "pin") -> str:
    if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
        raise InvalidInputError("PIN must be exactly 4 digits.", field=field)
    return pin


def hash_pin(pin: str) -> str:
    return pin_context.hash(validate_pin(pin))


def verify_pin(pin: Optional[str], pin_hash: Optional[str]) -> bool:
    if not pin or not pin_hash:
        return False
    return pin_context.verify(pin, pin_hash)


def authorize(document: SQLModel, provided_pin: Optional[str]) -> None:
    """
    Raise UnauthorizedError unless ``provided_pin`` opens ``document``.

    A record without a PIN can never be mutated through the guard, even
    with an empty PIN.
    """
    stored = getattr(document, "secret_pin_hash", None)
    if not stored:
        raise UnauthorizedError("This post does not have a PIN set.")
    if not verify_pin(provided_pin, stored):
        raise UnauthorizedError()


def authorize_and_mutate(
    session: Session,
    collection: str,
    doc_id: int,
    provided_pin: Optional[str],
    mutation: Callable[[SQLModel], Any],
) -> Any:
    """Check the PIN and apply ``mutation`` in the same store transaction."""

    def guarded(document: SQLModel) -> Any:
        try:
            authorize(document, provided_pin)
        except UnauthorizedError as exc:
            logger.warning("PIN rejected for %s/%s: %s", collection, doc_id, exc.message)
            raise
        return mutation(document)

    return store.transactional_update(session, collection, doc_id, guarded)


def clean_patch(collection: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    model = store.resolve_collection(collection)
    changes = {k: v for k, v in patch.items() if k not in PROTECTED_FIELDS}

    read_only = sorted(set(changes) & READ_ONLY_FIELDS)
    if read_only:
        raise InvalidInputError(
            f"Field '{read_only[0]}' cannot be edited directly.", field=read_only[0]
        )
    unknown = sorted(set(changes) - set(model.model_fields))
    if unknown:
        raise InvalidInputError(f"Unknown field '{unknown[0]}'.", field=unknown[0])

    cleared = sorted(
        k for k, v in changes.items()
        if v is None and type(None) not in get_args(model.model_fields[k].annotation)
    )
    if cleared:
        raise InvalidInputError(f"Field '{cleared[0]}' cannot be empty.", field=cleared[0])
    return changes


def authorized_update(
    session: Session,
    collection: str,
    doc_id: int,
    provided_pin: Optional[str],
    patch: Dict[str, Any],
) -> SQLModel:
    changes = clean_patch(collection, patch)

    def apply(document: SQLModel) -> None:
        for key, value in changes.items():
            setattr(document, key, value)
        if hasattr(document, "updated_at"):
            document.updated_at = utcnow()

    document = authorize_and_mutate(session, collection, doc_id, provided_pin, apply)
    logger.info("Updated %s/%s fields=%s", collection, doc_id, sorted(changes))
    return document


def authorized_delete(
    session: Session,
    collection: str,
    doc_id: int,
    provided_pin: Optional[str],
    registry: Optional[PostRegistry] = None,
) -> None:

    def remove(document: SQLModel) -> None:
        store.remove_document(session, collection, document)

    authorize_and_mutate(session, collection, doc_id, provided_pin, remove)
    if registry is not None:
        registry.forget(store.post_key(collection, doc_id))
    logger.info("Deleted %s/%s with PIN", collection, doc_id)
