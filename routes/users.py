import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import Session, get_current_session, open_session, revoke_all_sessions, revoke_session
from database import GOALS, LIBRARIES, USERS, create_document, get_db, serialize_doc, to_object_id
from errors import BadRequestError, InvalidCredentialsError, NotFoundError
from schemas import LoginRequest, RegisterRequest, User, UserUpdate, require_valid
from security import hash_password, verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

PRIVATE_FIELDS = ("password", "tokens")


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(req: RegisterRequest, db: Database = Depends(get_db)):
    if db[USERS].find_one({"email": req.email}):
        raise BadRequestError("User already exists")

    user = User(
        username=req.username,
        email=req.email,
        fullname=req.fullname,
        password=hash_password(req.password),
    )
    # A duplicate username surfaces as DuplicateKeyError from the unique index.
    doc = create_document(db, USERS, user.model_dump())
    logger.info("User registered", extra={"user_id": str(doc["_id"])})
    return {"message": "User registered successfully", "userId": str(doc["_id"])}


@router.post("/login")
def login(req: LoginRequest, db: Database = Depends(get_db)):
    user = db[USERS].find_one({"email": req.email})
    if not user or not verify_password(req.password, user["password"]):
        logger.warning("Failed login attempt")
        raise InvalidCredentialsError()

    token = open_session(db, user["_id"])
    logger.info("User logged in", extra={"user_id": str(user["_id"])})
    return {"message": "Logged in successfully", "token": token}


@router.put("/update/{user_id}")
def update_user(user_id: str, updates: UserUpdate, db: Database = Depends(get_db)):
    oid = to_object_id(user_id)
    current = db[USERS].find_one({"_id": oid}) if oid else None
    if not current:
        raise NotFoundError("User not found")

    changes = updates.model_dump(exclude_unset=True)
    # A null password is left for the merged validation below to reject.
    if changes.get("password") is not None:
        changes["password"] = hash_password(changes["password"])

    merged = {k: v for k, v in current.items() if k in User.model_fields}
    merged.update(changes)
    require_valid(User, merged)

    if not changes:
        return {"message": "User updated successfully", "user": serialize_doc(current, PRIVATE_FIELDS)}

    user = db[USERS].find_one_and_update(
        {"_id": oid},
        {"$set": {**changes, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not user:
        raise NotFoundError("User not found")
    return {"message": "User updated successfully", "user": serialize_doc(user, PRIVATE_FIELDS)}


@router.delete("/delete/{user_id}")
def delete_user(user_id: str, db: Database = Depends(get_db)):
    oid = to_object_id(user_id)
    user = db[USERS].find_one_and_delete({"_id": oid}) if oid else None
    if not user:
        raise NotFoundError("User not found")

    goal_ids = [g["_id"] for g in db[GOALS].find({"user_id": oid}, {"_id": 1})]
    if goal_ids:
        db[LIBRARIES].delete_many({"goal_id": {"$in": goal_ids}})
        db[GOALS].delete_many({"_id": {"$in": goal_ids}})
    logger.info("User deleted", extra={"user_id": user_id, "goals_removed": len(goal_ids)})
    return {"message": "User deleted successfully"}


@router.post("/logout")
def logout(session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    revoke_session(db, session.user_id, session.token)
    logger.info("User logged out", extra={"user_id": str(session.user_id)})
    return {"message": "Logged out successfully"}


@router.post("/logoutAll")
def logout_all(session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    revoke_all_sessions(db, session.user_id)
    logger.info("User logged out of all sessions", extra={"user_id": str(session.user_id)})
    return {"message": "Logged out from all sessions successfully"}
