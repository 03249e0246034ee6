from fastapi import APIRouter

from schemas import RegistryRead
from services.registry import OWNER, PLEDGER, RegistryDep

router = APIRouter(tags=["registry"])


@router.get("/", response_model=RegistryRead)
def read_registry(registry: RegistryDep):
    """
    Posts created and needs pledged to from this browser, as "collection/id" keys.
    Only used to decide which buttons to show; edits still need the PIN.
    """
    return RegistryRead(owner=registry.ids(OWNER), pledger=registry.ids(PLEDGER))
