from fastapi import APIRouter, Response

import store
from db import SessionDep
from logging_config import get_logger
from schemas import ClosedUpdate, NeedRead
from services import needs as engine
from .auth import AdminDep

router = APIRouter(tags=["admin"])
logger = get_logger("admin")


@router.patch("/needs/{need_id}/closed", response_model=NeedRead)
def set_need_closed(
    need_id: int,
    update: ClosedUpdate,
    session: SessionDep,
    admin: AdminDep,
):
    """
    Moderator override: close a need (shown as received) or open it again.
    Pledges are left untouched.
    """
    need = engine.set_closed(session, need_id, update.closed)
    return NeedRead.model_validate(need)


@router.post("/{collection}/{doc_id}/delete", status_code=204)
def moderate_delete(
    collection: str,
    doc_id: int,
    session: SessionDep,
    admin: AdminDep,
):
    """
    Remove any post without its PIN (spam, abuse, duplicates).
    """
    store.delete_document(session, collection, doc_id)
    logger.info("Administrator %s deleted %s/%s", admin.id, collection, doc_id)
    return Response(status_code=204)
