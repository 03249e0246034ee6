"""
Document store adapter.

Every collection is a SQLModel table. Writes that must not lose updates go
through ``transactional_update``: read the row, apply a function, commit with
a version check, and re-run the whole body when another writer got there
first.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Type

from sqlalchemy import inspect
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session, SQLModel, select

from config import get_settings
from errors import ConflictError, InvalidInputError, NotFoundError
from logging_config import get_logger
from models import Need, Person, PledgeEntry, ServiceRequest, Volunteer

logger = get_logger("store")

COLLECTIONS: Dict[str, Type[SQLModel]] = {
    "needs": Need,
    "people": Person,
    "volunteers": Volunteer,
    "service_requests": ServiceRequest,
}

Listener = Callable[[List[SQLModel]], None]

_listeners: Dict[str, List[Listener]] = defaultdict(list)


def resolve_collection(collection: str) -> Type[SQLModel]:
    model = COLLECTIONS.get(collection)
    if model is None:
        raise InvalidInputError("Invalid collection name.", field="collection")
    return model


def get_document(session: Session, collection: str, doc_id: int) -> SQLModel:
    model = resolve_collection(collection)
    document = session.get(model, doc_id)
    if document is None:
        raise NotFoundError(collection, doc_id)
    return document


def list_documents(session: Session, collection: str, *where: Any) -> List[SQLModel]:
    """Newest first, optionally filtered by SQL expressions."""
    model = resolve_collection(collection)
    query = select(model)
    if where:
        query = query.where(*where)
    query = query.order_by(model.created_at.desc(), model.id.desc())
    return list(session.exec(query).all())


def create_document(session: Session, collection: str, document: SQLModel) -> SQLModel:
    model = resolve_collection(collection)
    if not isinstance(document, model):
        raise InvalidInputError(f"Expected a {model.__name__} for {collection}.")
    session.add(document)
    session.commit()
    session.refresh(document)
    logger.info("Created %s/%s", collection, document.id)
    _notify(session, collection)
    return document


def transactional_update(
    session: Session,
    collection: str,
    doc_id: int,
    fn: Callable[[SQLModel], Any],
    max_attempts: Optional[int] = None,
) -> Any:
    """
    Run ``fn(document)`` against the current row and commit atomically.

    ``fn`` mutates the document in place (or deletes it through the session)
    and may raise to abort; nothing is written in that case. A concurrent
    modification between the read and the commit rolls everything back and
    the body runs again on fresh data, up to ``max_attempts`` times.

    Returns whatever ``fn`` returns, or the refreshed document when it
    returns None.
    """
    model = resolve_collection(collection)
    attempts = max_attempts or get_settings().transaction_max_attempts

    for attempt in range(1, attempts + 1):
        document = session.get(model, doc_id, populate_existing=True)
        if document is None:
            session.rollback()
            raise NotFoundError(collection, doc_id)

        try:
            result = fn(document)
            session.commit()
        except StaleDataError:
            session.rollback()
            logger.warning(
                "Write conflict on %s/%s (attempt %d/%d)",
                collection, doc_id, attempt, attempts,
            )
            continue
        except Exception:
            session.rollback()
            raise

        if not inspect(document).was_deleted:
            session.refresh(document)
        _notify(session, collection)
        return document if result is None else result

    raise ConflictError(collection, doc_id, attempts)


def post_key(collection: str, doc_id: int) -> str:
    """Registry key; ids are only unique within a collection."""
    return f"{collection}/{doc_id}"


def remove_document(session: Session, collection: str, document: SQLModel) -> None:
    """Mark ``document`` and its dependent rows for deletion. Caller commits."""
    if collection == "needs":
        entries = session.exec(
            select(PledgeEntry).where(PledgeEntry.need_id == document.id)
        ).all()
        for entry in entries:
            session.delete(entry)
        # no relationship() between the two, so order the deletes by hand
        session.flush()
    session.delete(document)


def delete_document(session: Session, collection: str, doc_id: int) -> None:
    document = get_document(session, collection, doc_id)
    remove_document(session, collection, document)
    session.commit()
    logger.info("Deleted %s/%s", collection, doc_id)
    _notify(session, collection)


def subscribe(collection: str, listener: Listener) -> Callable[[], None]:
    """
    Call ``listener`` with the full, newest-first document list after every
    committed write to ``collection``. Returns the unsubscribe function.
    """
    resolve_collection(collection)
    _listeners[collection].append(listener)

    def unsubscribe() -> None:
        if listener in _listeners[collection]:
            _listeners[collection].remove(listener)

    return unsubscribe


def _notify(session: Session, collection: str) -> None:
    listeners = list(_listeners.get(collection, ()))
    if not listeners:
        return
    snapshot = list_documents(session, collection)
    for listener in listeners:
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Snapshot listener failed for %s", collection)
