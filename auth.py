"""
Session tokens and the bearer-token dependency for protected routes.

A user's active sessions are the ``tokens`` list on their document. A token
authenticates only while it is still in that list, so logout is a removal
and logout-all empties the list.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pymongo.database import Database

from database import USERS, get_db, to_object_id
from errors import AuthenticationError
from security import create_access_token, decode_access_token

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Session:
    user: Dict[str, Any]
    token: str

    @property
    def user_id(self) -> ObjectId:
        return self.user["_id"]


def open_session(db: Database, user_id: ObjectId) -> str:
    token = create_access_token(str(user_id))
    add_session(db, user_id, token)
    return token


def add_session(db: Database, user_id: ObjectId, token: str) -> None:
    db[USERS].update_one({"_id": user_id}, {"$push": {"tokens": token}})


def revoke_session(db: Database, user_id: ObjectId, token: str) -> None:
    db[USERS].update_one({"_id": user_id}, {"$pull": {"tokens": token}})


def revoke_all_sessions(db: Database, user_id: ObjectId) -> None:
    db[USERS].update_one({"_id": user_id}, {"$set": {"tokens": []}})


def resolve_session(db: Database, token: str) -> Session:
    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.debug("Token rejected", extra={"reason": str(e)})
        raise AuthenticationError()

    user_id = to_object_id(payload.get("userId"))
    if user_id is None:
        logger.debug("Token subject is not a user id")
        raise AuthenticationError()

    user = db[USERS].find_one({"_id": user_id})
    if not user:
        logger.debug("Token subject not found", extra={"user_id": str(user_id)})
        raise AuthenticationError()
    if token not in user.get("tokens", []):
        logger.debug("Token no longer active", extra={"user_id": str(user_id)})
        raise AuthenticationError()
    return Session(user=user, token=token)


def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Database = Depends(get_db),
) -> Session:
    """Resolve the bearer token to an active session or answer 401."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()
    return resolve_session(db, credentials.credentials)
