import logging
from typing import Dict, Optional, Tuple

from pymongo.errors import DuplicateKeyError

from config import Settings
from database import Store
from errors import UserAlreadyExists
from schemas import User as UserSchema, sanitize
from security import (
    CredentialVerifier,
    FederatedTokenVerifier,
    IdentityProvider,
    LocalPasswordVerifier,
    create_access_token,
    hash_password,
)
from validation import CREDENTIAL_RULES, FEDERATED_RULES, validate

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, users: Store, settings: Settings, identity_provider: Optional[IdentityProvider] = None):
        self.users = users
        self.settings = settings
        self.local = LocalPasswordVerifier(users)
        self.federated = FederatedTokenVerifier(users, identity_provider) if identity_provider else None

    async def signup(self, payload: Optional[Dict]) -> Dict:
        data = validate(payload, CREDENTIAL_RULES)
        if await self.users.find_one({"email": data["email"]}):
            raise UserAlreadyExists()

        # role and active always take their defaults, whatever the body says
        user_doc = UserSchema(
            email=data["email"],
            password_hash=await hash_password(data["password"]),
        ).model_dump()
        try:
            user = await self.users.create(user_doc)
        except DuplicateKeyError:
            raise UserAlreadyExists()
        logger.info("Signed up user %s", user["_id"])
        return sanitize(user)

    async def signin(self, payload: Optional[Dict]) -> Tuple[Dict, str]:
        data = validate(payload, CREDENTIAL_RULES)
        return await self._issue(self.local, data)

    async def federated_signin(self, payload: Optional[Dict]) -> Tuple[Dict, str]:
        data = validate(payload, FEDERATED_RULES)
        return await self._issue(self.federated, data)

    async def _issue(self, verifier: CredentialVerifier, credentials: Dict) -> Tuple[Dict, str]:
        user = await verifier.verify(credentials)
        token = await create_access_token(user["_id"], self.settings)
        return sanitize(user), token
