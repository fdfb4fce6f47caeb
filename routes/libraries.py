"""
Learning resources attached to a goal.

A goal has at most one library document, created on the first resource add.
Every route resolves the parent goal for the caller first, so libraries of
other users' goals answer 404 exactly like missing goals.
"""
import logging
from datetime import datetime

from bson import ObjectId
from fastapi import APIRouter, Depends, status
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import Session, get_current_session
from database import LIBRARIES, get_db, serialize_doc, to_object_id
from errors import NotFoundError
from routes.goals import find_owned_goal
from schemas import Resource, ResourceUpdate, require_valid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/libraries", tags=["libraries"])


def _find_library(db: Database, goal_id: str, session: Session, missing: str) -> dict:
    goal = find_owned_goal(db, goal_id, session.user_id)
    library = db[LIBRARIES].find_one({"goal_id": goal["_id"]})
    if not library:
        raise NotFoundError(missing)
    return library


def _resource_index(library: dict, resource_id: str) -> int:
    rid = to_object_id(resource_id)
    for index, resource in enumerate(library.get("resources", [])):
        if rid is not None and resource.get("_id") == rid:
            return index
    raise NotFoundError("Resource not found")


def _save_resources(db: Database, library: dict, resources: list) -> None:
    # Read-modify-write with no version check: concurrent edits are last-write-wins.
    db[LIBRARIES].update_one(
        {"_id": library["_id"]},
        {"$set": {"resources": resources, "updated_at": datetime.utcnow()}},
    )


@router.post("/{goal_id}/resources", status_code=status.HTTP_201_CREATED)
def add_resource(
    goal_id: str,
    resource: Resource,
    session: Session = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    goal = find_owned_goal(db, goal_id, session.user_id)
    entry = {"_id": ObjectId(), **resource.model_dump(exclude_none=True)}
    now = datetime.utcnow()
    library = db[LIBRARIES].find_one_and_update(
        {"goal_id": goal["_id"]},
        {
            "$push": {"resources": entry},
            "$set": {"updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info("Resource added", extra={"goal_id": goal_id, "resource_id": str(entry["_id"])})
    return serialize_doc(library)


@router.get("/{goal_id}/resources")
def list_resources(goal_id: str, session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    library = _find_library(db, goal_id, session, "No resources found for this goal")
    return [serialize_doc(r) for r in library.get("resources", [])]


@router.get("/{goal_id}/resources/{resource_id}")
def get_resource(
    goal_id: str,
    resource_id: str,
    session: Session = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    library = _find_library(db, goal_id, session, "Library for goal not found")
    index = _resource_index(library, resource_id)
    return serialize_doc(library["resources"][index])


@router.put("/{goal_id}/resources/{resource_id}")
def update_resource(
    goal_id: str,
    resource_id: str,
    updates: ResourceUpdate,
    session: Session = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    library = _find_library(db, goal_id, session, "Library not found for this goal")
    resources = library["resources"]
    index = _resource_index(library, resource_id)

    merged = {k: v for k, v in resources[index].items() if k != "_id"}
    merged.update(updates.model_dump(exclude_unset=True))
    validated = require_valid(Resource, merged)
    resources[index] = {"_id": resources[index]["_id"], **validated.model_dump(exclude_none=True)}

    _save_resources(db, library, resources)
    return serialize_doc(resources[index])


@router.delete("/{goal_id}/resources/{resource_id}")
def delete_resource(
    goal_id: str,
    resource_id: str,
    session: Session = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    library = _find_library(db, goal_id, session, "Library not found for this goal")
    resources = library["resources"]
    del resources[_resource_index(library, resource_id)]

    # An emptied library is kept.
    _save_resources(db, library, resources)
    logger.info("Resource deleted", extra={"goal_id": goal_id, "resource_id": resource_id})
    return {"message": "Resource deleted successfully"}
