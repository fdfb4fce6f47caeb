import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pymongo import ReturnDocument
from pymongo.database import Database

from auth import Session, get_current_session
from database import GOALS, LIBRARIES, create_document, get_db, get_documents, serialize_doc, to_object_id
from errors import NotFoundError
from metrics import filter_metrics
from schemas import Goal, GoalCreate, GoalUpdate, require_valid

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/goals", tags=["goals"])


def find_owned_goal(db: Database, goal_id: str, owner_id) -> dict:
    oid = to_object_id(goal_id)
    goal = db[GOALS].find_one({"_id": oid, "user_id": owner_id}) if oid else None
    if not goal:
        raise NotFoundError("Goal not found")
    return goal


@router.post("", status_code=status.HTTP_201_CREATED)
def create_goal(g: GoalCreate, session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    data = g.model_dump(exclude_none=True)
    data["metrics"] = filter_metrics(g.category, data.get("metrics", []))
    data["user_id"] = session.user_id
    goal = Goal.model_validate(data)
    doc = create_document(db, GOALS, goal.model_dump(exclude_none=True))
    return serialize_doc(doc)


@router.get("")
def list_goals(session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    docs = get_documents(db, GOALS, {"user_id": session.user_id})
    return [serialize_doc(d) for d in docs]


@router.get("/{goal_id}")
def get_goal(goal_id: str, session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    return serialize_doc(find_owned_goal(db, goal_id, session.user_id))


@router.put("/{goal_id}")
def update_goal(
    goal_id: str,
    g: GoalUpdate,
    session: Session = Depends(get_current_session),
    db: Database = Depends(get_db),
):
    goal = find_owned_goal(db, goal_id, session.user_id)
    updates = g.model_dump(exclude_unset=True)

    if g.category is not None or g.metrics is not None:
        category = g.category or goal["category"]
        metrics = updates["metrics"] if g.metrics is not None else goal.get("metrics", [])
        updates["category"] = category
        updates["metrics"] = filter_metrics(category, metrics)

    merged = {k: v for k, v in goal.items() if k in Goal.model_fields}
    merged.update(updates)
    validated = require_valid(Goal, merged)
    dumped = validated.model_dump()
    dumped["metrics"] = [m.model_dump(exclude_none=True) for m in validated.metrics]
    changes = {k: v for k, v in dumped.items() if k in updates}
    changes["updated_at"] = datetime.utcnow()

    res = db[GOALS].find_one_and_update(
        {"_id": goal["_id"], "user_id": session.user_id},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not res:
        raise NotFoundError("Goal not found")
    return serialize_doc(res)


@router.delete("/{goal_id}")
def delete_goal(goal_id: str, session: Session = Depends(get_current_session), db: Database = Depends(get_db)):
    oid = to_object_id(goal_id)
    goal = db[GOALS].find_one_and_delete({"_id": oid, "user_id": session.user_id}) if oid else None
    if not goal:
        raise NotFoundError("Goal not found")
    db[LIBRARIES].delete_one({"goal_id": goal["_id"]})
    logger.info("Goal deleted", extra={"goal_id": goal_id, "user_id": str(session.user_id)})
    return {"message": "Goal deleted successfully"}
