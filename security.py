import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.errors import DuplicateKeyError

from config import Settings
from database import Store
from errors import (
    Forbidden,
    InvalidCredentials,
    MalformedIdentifier,
    TokenMintFailure,
    Unauthenticated,
    UnknownIdentity,
)
from schemas import User as UserSchema, sanitize

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/1.0/auth/signin", auto_error=False)

# Helpers

async def hash_password(password: Optional[str]) -> Optional[str]:
    if not password:
        return None
    return await run_in_threadpool(pwd_context.hash, password)


async def verify_password(password: Optional[str], hashed: Optional[str]) -> bool:
    if not password or not hashed:
        return False
    try:
        return await run_in_threadpool(pwd_context.verify, password, hashed)
    except ValueError:
        # stored value is not a hash passlib recognises
        logger.warning("Unrecognised password hash format")
        return False


async def create_access_token(user_id, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    if not user_id:
        raise TokenMintFailure("Invalid ID provided")
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    token = jwt.encode({"sub": str(user_id), "exp": expire}, settings.secret_key, algorithm=settings.jwt_algorithm)
    if not token:
        raise TokenMintFailure("Error generating JWT")
    return token


async def decode_access_token(token: str, settings: Settings) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    return payload.get("sub")


async def resolve_user(request: Request, token: Optional[str], settings: Settings, users: Store) -> Dict:
    """Turn the request's session user or bearer token into a user (without its password hash)."""
    session_user = getattr(request.state, "user", None)
    if session_user:
        return session_user
    if not token:
        raise Unauthenticated()

    user_id = await decode_access_token(token, settings)
    if user_id is None:
        raise Unauthenticated()
    try:
        user = await users.find_by_key(user_id)
    except MalformedIdentifier:
        raise Unauthenticated()
    if not user:
        raise UnknownIdentity()
    return sanitize(user)


async def get_current_user(request: Request, token: Optional[str] = Depends(oauth2_scheme)):
    state = request.app.state
    user = await resolve_user(request, token, state.settings, state.db.users)
    request.state.user = user
    return user


def require_role(*roles: str):
    async def role_dep(current_user=Depends(get_current_user)):
        if current_user.get("role") not in roles:
            raise Forbidden()
        return current_user
    return role_dep


def ensure_author(user: Dict, review: Dict) -> None:
    # editing is author-only, admins included
    if str(review.get("userId")) != user.get("id"):
        raise Forbidden()


def ensure_author_or_admin(user: Dict, review: Dict) -> None:
    if user.get("role") != "admin" and str(review.get("userId")) != user.get("id"):
        raise Forbidden()


# Credential verifiers

class CredentialVerifier:
    """Checks one kind of credentials and returns the stored user document."""

    async def verify(self, credentials: Dict) -> Dict:
        raise NotImplementedError


class LocalPasswordVerifier(CredentialVerifier):
    def __init__(self, users: Store):
        self.users = users

    async def verify(self, credentials: Dict) -> Dict:
        user = await self.users.find_one({"email": credentials["email"]})
        if not user:
            raise InvalidCredentials()
        if not await verify_password(credentials["password"], user.get("password_hash")):
            raise InvalidCredentials()
        return user


IdentityProvider = Callable[[str], Awaitable[Optional[Dict]]]


class FederatedTokenVerifier(CredentialVerifier):
    """
    Signs in with a token issued by an external identity provider.

    The provider turns the token into a profile with "sub" and "email", or None
    when it rejects the token. The account is found by its federated key, then
    by email (and linked), and created on first sign in otherwise.
    """

    def __init__(self, users: Store, identity_provider: IdentityProvider):
        self.users = users
        self.identity_provider = identity_provider

    async def verify(self, credentials: Dict) -> Dict:
        profile = await self.identity_provider(credentials["token"])
        if not profile or not profile.get("sub") or not profile.get("email"):
            raise InvalidCredentials()
        google_id = str(profile["sub"])
        email = str(profile["email"]).strip()

        user = await self.users.find_one({"googleId": google_id})
        if user:
            return user
        user = await self.users.find_one({"email": email})
        if user:
            return await self.users.update_by_key(user["_id"], {"googleId": google_id})

        user_doc = UserSchema(email=email, googleId=google_id).model_dump()
        try:
            user = await self.users.create(user_doc)
        except DuplicateKeyError:
            # a concurrent sign in created the account first
            user = await self.users.find_one({"email": email})
            if not user:
                raise
            return await self.users.update_by_key(user["_id"], {"googleId": google_id})
        logger.info("Created federated user %s", user["_id"])
        return user
