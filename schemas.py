"""
Database Schemas for devHabit

Each collection model below describes the documents stored in one MongoDB
collection (User -> "users", Goal -> "goals"). A "libraries" document is
{goal_id, resources: [Resource + _id]}, one per goal.
Request models describe what the API accepts; update models are explicit
allow-lists and reject unknown keys.
"""
import re
from datetime import datetime
from typing import Any, Generic, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from errors import FieldError, ValidationFailed

EMAIL_PATTERN = re.compile(r"^\w+(?:[.-]\w+)*@\w+(?:[.-]\w+)*(?:\.\w{2,3})+$")
URL_PATTERN = re.compile(r'^(http|https)://[^ "]+$')

Category = Literal["Learning Language", "Project Development", "Algorithm Mastery"]
Priority = Literal["High", "Medium", "Low"]


class CamelModel(BaseModel):
    """Accepts both snake_case and camelCase keys on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError(f"{value} is not a valid email address!")
    return value


def _check_url(value: str) -> str:
    value = value.strip()
    if not URL_PATTERN.match(value):
        raise ValueError(f"{value} is not a valid URL!")
    return value


# ===== Validation results =====
M = TypeVar("M", bound=BaseModel)


class ValidationResult(BaseModel, Generic[M]):
    value: Optional[M] = None
    errors: List[FieldError] = []

    @property
    def ok(self) -> bool:
        return not self.errors


def validate(model: Type[M], data: Mapping[str, Any]) -> ValidationResult[M]:
    """Validate ``data`` against ``model`` without raising."""
    try:
        return ValidationResult[model](value=model.model_validate(data))
    except ValidationError as e:
        errors = [
            FieldError(field=".".join(str(p) for p in err["loc"]), message=err["msg"])
            for err in e.errors()
        ]
        return ValidationResult[model](errors=errors)


def require_valid(model: Type[M], data: Mapping[str, Any]) -> M:
    result = validate(model, data)
    if not result.ok:
        raise ValidationFailed(result.errors)
    return result.value


# ===== Users =====
class User(BaseModel):
    username: str = Field(..., min_length=3, description="Unique login name")
    email: str = Field(..., description="Unique, lowercase email address")
    fullname: Optional[str] = Field(None, description="Full name")
    password: str = Field(..., description="bcrypt hash, never plaintext")
    tokens: List[str] = Field(default_factory=list, description="Active session tokens")

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalize_email(v)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3)
    email: str
    fullname: Optional[str] = None
    password: str = Field(..., min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return _normalize_email(v)


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: Optional[str] = Field(None, min_length=3)
    email: Optional[str] = None
    fullname: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_email(v) if v is not None else v


# ===== Goals =====
class Metric(CamelModel):
    """A progress measurement embedded in a goal. Has no id of its own."""

    type: str
    progress: float = 0
    target_hours: Optional[float] = None
    concepts_to_complete: Optional[List[str]] = None
    milestones: Optional[List[str]] = None
    weekly_commit_goal: Optional[int] = None
    solved_problems_count: Optional[int] = None
    core_algorithms: Optional[List[str]] = None


class Goal(CamelModel):
    user_id: Any = Field(..., description="Owner user id")
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Category
    start_date: datetime = Field(default_factory=datetime.utcnow)
    completion_date: Optional[datetime] = None
    priority: Priority = "Medium"
    is_completed: bool = False
    metrics: List[Metric] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class GoalCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Category
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    priority: Priority = "Medium"
    is_completed: bool = False
    metrics: List[Metric] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class GoalUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    category: Optional[Category] = None
    start_date: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    priority: Optional[Priority] = None
    is_completed: Optional[bool] = None
    metrics: Optional[List[Metric]] = None


# ===== Libraries =====
class Resource(BaseModel):
    type: str = Field(..., description="e.g. Video, Article, Book, Documentation")
    title: str = Field(..., min_length=1)
    url: str
    description: Optional[str] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        return _check_url(v)


class ResourceUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = None
    description: Optional[str] = None
