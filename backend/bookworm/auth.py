# bookworm/auth.py
from datetime import datetime, timedelta
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from bookworm.models import User, Child
from bookworm.database import get_session
from bookworm.errors import AuthorizationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

import os

SECRET_KEY = os.getenv("SECRET_KEY", "super-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token")


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def authenticate_user(db: AsyncSession, email: str, password: str):
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_subject(token: str) -> str:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise _credentials_exception()
    sub = payload.get("sub")
    if not sub:
        raise _credentials_exception()
    return sub


async def get_child_by_id(db: AsyncSession, child_id: int):
    result = await db.execute(select(Child).where(Child.id == child_id))
    return result.scalars().first()


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Return the signed-in parent. Child tokens are rejected."""
    sub = _decode_subject(token)
    if sub.startswith("child:"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Parent account required",
        )
    user = await get_user_by_email(db, sub)
    if user is None:
        raise _credentials_exception()
    return user


async def get_current_identity(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_session),
) -> tuple[str, User | Child]:
    """Return ("user", User) or ("child", Child) based on token subject."""
    sub = _decode_subject(token)
    if sub.startswith("child:"):
        try:
            child_id = int(sub.split(":", 1)[1])
        except ValueError:
            raise _credentials_exception()
        child = await get_child_by_id(db, child_id)
        if child is None:
            raise _credentials_exception()
        return "child", child
    user = await get_user_by_email(db, sub)
    if user is None:
        raise _credentials_exception()
    return "user", user


async def get_current_child(
    identity: tuple[str, User | Child] = Depends(get_current_identity),
) -> Child:
    kind, obj = identity
    if kind != "child":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a child token",
        )
    return obj


async def get_owned_child(db: AsyncSession, child_id: int, user: User) -> Child:
    """Load a child and check that ``user`` is its parent."""
    child = await get_child_by_id(db, child_id)
    if child is None:
        raise HTTPException(status_code=404, detail="Child not found")
    if child.parent_id != user.id:
        raise AuthorizationError("You do not have access to this child")
    return child


async def get_visible_child(
    db: AsyncSession, child_id: int, identity: tuple[str, User | Child]
) -> Child:
    """Allow a parent to see their children and a child to see themselves."""
    kind, obj = identity
    if kind == "child":
        if obj.id != child_id:
            raise AuthorizationError("Not authorized")
        return obj
    return await get_owned_child(db, child_id, obj)
