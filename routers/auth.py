from typing import Annotated, Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from passlib.context import CryptContext
from sqlmodel import select

from config import get_settings
from db import SessionDep
from logging_config import get_logger
from models import User
from schemas import LoginData, UserCreate, UserRead

router = APIRouter(tags=["auth"])
logger = get_logger("auth")

SESSION_COOKIE = "session"


pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(get_settings().secret_key, salt="session")


def create_session_token(user_id: int) -> str:
    """
    Store the user id in the signed token.
    Example data:
        {"user_id": 3}
    """
    return _serializer().dumps({"user_id": user_id})


def verify_session_token(token: str, max_age_seconds: Optional[int] = None):
    """
    Returns {'user_id': ...} if valid,
    or None if token is invalid/expired.
    """
    max_age = max_age_seconds or get_settings().session_max_age
    try:
        return _serializer().loads(token, max_age=max_age)
    except (BadSignature, SignatureExpired):
        return None


def get_optional_user(
    session: SessionDep,
    session_token: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
) -> Optional[User]:
    """
    Reads the 'session' cookie and looks up the user.
    Returns None if not logged in / invalid.
    """
    if session_token is None:
        return None

    data = verify_session_token(session_token)
    if not data:
        return None

    return session.get(User, data["user_id"])


OptionalUserDep = Annotated[Optional[User], Depends(get_optional_user)]


def require_auth(user: OptionalUserDep) -> User:
    if user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return user


UserDep = Annotated[User, Depends(require_auth)]


def require_admin(user: UserDep) -> User:
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Administrator role required")
    return user


AdminDep = Annotated[User, Depends(require_admin)]


def _set_session_cookie(response: Response, user_id: int) -> None:
    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_session_token(user_id),
        httponly=True,
        secure=False,
        samesite="lax",
        max_age=get_settings().session_max_age,
    )


@router.post("/register", response_model=UserRead, status_code=201)
def register(user_in: UserCreate, session: SessionDep, response: Response):
    """
    Register a new user with a hashed password.
    New accounts get the 'user' role; administrators are promoted in the database.
    """
    existing = session.exec(
        select(User).where(User.email == user_in.email)
    ).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        email=user_in.email,
        name=user_in.name,
        password_hash=hash_password(user_in.password),
        role="user",
    )
    session.add(user)
    session.commit()
    session.refresh(user)

    if user.id is None:
        raise HTTPException(
            status_code=500, detail="User was not created successfully"
        )

    _set_session_cookie(response, user.id)
    logger.info("Registered user %s", user.id)
    return user


@router.post("/login")
def login(payload: LoginData, session: SessionDep, response: Response):
    """
    Log in with email + password and set a signed session cookie.
    """
    user = session.exec(
        select(User).where(User.email == payload.email)
    ).first()

    if user is None or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login attempt")
        raise HTTPException(
            status_code=400, detail="Invalid email or password"
        )

    _set_session_cookie(response, user.id)
    return {"message": "Login successful", "role": user.role}


@router.post("/logout")
def logout(response: Response):
    """
    Clear the session cookie.
    """
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserRead)
def read_me(user: UserDep):
    """
    Get info about the currently logged-in user.
    """
    return user
