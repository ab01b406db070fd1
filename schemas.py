"""
Database Schemas for the Funko Pop catalog

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- funkopop: catalog listings, each keeping the ids of its reviews
- review: user reviews of a funko pop
- user: accounts (local password or federated)
"""

from typing import Any, Dict, List, Literal, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "moderator", "admin"]


class FunkoPop(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str = Field(..., min_length=10, max_length=50)
    price: Union[int, float] = Field(...)
    description: str = Field(..., min_length=10, max_length=250)
    quantity: Union[int, float] = Field(...)
    instock: bool = Field(True, description="Whether the funko pop is in stock")
    reviews: List[ObjectId] = Field(default_factory=list, description="Review ids, oldest first")


class Review(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    productId: ObjectId = Field(..., description="Reference to funkopop _id")
    userId: ObjectId = Field(..., description="Reference to user _id (author)")
    message: str = Field(..., min_length=4, max_length=500)
    timestamp: int = Field(..., description="Epoch millis of the last write")


class User(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: Optional[str] = Field(None, max_length=50, description="Display name (trimmed)")
    email: str = Field(..., description="Email (unique, trimmed)")
    password_hash: Optional[str] = Field(None, description="BCrypt hash, null for federated accounts")
    googleId: Optional[str] = Field(None, description="Federated identity key")
    role: Role = Field("user")
    active: bool = Field(False)


PRIVATE_FIELDS = ("password_hash",)


def sanitize(doc: Optional[Dict]) -> Optional[Dict]:
    """Shape a stored document for a response: _id -> id, ObjectIds -> str, no secrets."""
    if not doc:
        return doc
    d = {}
    if "_id" in doc:
        d["id"] = str(doc["_id"])
    for key, value in doc.items():
        if key == "_id" or key in PRIVATE_FIELDS:
            continue
        d[key] = _plain(value)
    return d


def _plain(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value
