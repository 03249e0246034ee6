"""
Client-side "my posts" / "my pledges" registry.

Kept in a signed cookie so it survives across visits. It only decides which
actions the UI offers; the PIN guard never looks at it.
"""

from typing import Annotated, Dict, Iterable, List, Optional

from fastapi import Depends, Request, Response
from itsdangerous import BadSignature, URLSafeSerializer

from config import get_settings

OWNER = "owner"
PLEDGER = "pledger"
ROLES = (OWNER, PLEDGER)

COOKIE_MAX_AGE = 60 * 60 * 24 * 365


class PostRegistry:
    """Deduplicated, insertion-ordered ids per role."""

    def __init__(
        self,
        owner: Optional[Iterable[str]] = None,
        pledger: Optional[Iterable[str]] = None,
    ):
        self._ids: Dict[str, List[str]] = {OWNER: [], PLEDGER: []}
        self.changed = False
        for key in owner or ():
            self._add(key, OWNER)
        for key in pledger or ():
            self._add(key, PLEDGER)

    def _add(self, key: str, role: str) -> bool:
        if role not in ROLES:
            raise ValueError(f"Unknown registry role: {role}")
        ids = self._ids[role]
        if key in ids:
            return False
        ids.append(key)
        return True

    def record(self, key: str, role: str) -> None:
        if self._add(key, role):
            self.changed = True

    def forget(self, key: str) -> None:
        """Drop ``key`` from the owner list after the post is deleted."""
        if key in self._ids[OWNER]:
            self._ids[OWNER].remove(key)
            self.changed = True

    def contains(self, key: str, role: str) -> bool:
        return key in self._ids.get(role, ())

    def ids(self, role: str) -> List[str]:
        return list(self._ids[role])

    def to_dict(self) -> Dict[str, List[str]]:
        return {OWNER: self.ids(OWNER), PLEDGER: self.ids(PLEDGER)}


def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(get_settings().secret_key, salt="post-registry")


def dump_registry(registry: PostRegistry) -> str:
    return _serializer().dumps(registry.to_dict())


def load_registry(token: Optional[str]) -> PostRegistry:
    """
    Returns an empty registry for a missing, tampered or malformed cookie.
    """
    if not token:
        return PostRegistry()
    try:
        data = _serializer().loads(token)
    except BadSignature:
        return PostRegistry()
    if not isinstance(data, dict):
        return PostRegistry()

    def keys(role: str) -> List[str]:
        values = data.get(role)
        if not isinstance(values, list):
            return []
        return [v for v in values if isinstance(v, str)]

    return PostRegistry(owner=keys(OWNER), pledger=keys(PLEDGER))


def save_registry(response: Response, registry: PostRegistry) -> None:
    if not registry.changed:
        return
    response.set_cookie(
        key=get_settings().registry_cookie_name,
        value=dump_registry(registry),
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=COOKIE_MAX_AGE,
    )


def get_registry(request: Request) -> PostRegistry:
    return load_registry(request.cookies.get(get_settings().registry_cookie_name))


RegistryDep = Annotated[PostRegistry, Depends(get_registry)]
