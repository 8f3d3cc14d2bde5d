from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional, Dict
from datetime import datetime, timezone
from enum import Enum
from .utils import clean_text


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """Base for stored records: camelCase keys in Mongo, snake_case in Python"""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")

    def to_mongo(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"})


class PromptView(str, Enum):
    FEED = "feed"
    REPORTED = "reported"
    ARCHIVED = "archived"
    FLAGGED = "flagged"
    MINE = "mine"


# ==================== Stored records ====================

class User(Document):
    clerk_id: str = Field(..., alias="clerkId")
    email: str
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    position: str = ""
    year: Optional[int] = None
    account_created: bool = Field(False, alias="accountCreated")
    is_mod: bool = Field(False, alias="isMod")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")


class Prompt(Document):
    prompt_question: str = Field(..., alias="promptQuestion")
    resp1: Optional[str] = None
    resp2: Optional[str] = None
    resp3: Optional[str] = None
    resp4: Optional[str] = None
    created_by: str = Field(..., alias="createdBy")
    is_reported: bool = Field(False, alias="isReported")
    is_archived: bool = Field(False, alias="isArchived")
    is_auto_flagged: bool = Field(False, alias="isAutoFlagged")
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @property
    def options(self) -> List[str]:
        return [r for r in (self.resp1, self.resp2, self.resp3, self.resp4) if r]


class UserResponse(Document):
    user_id: str = Field(..., alias="userId")
    prompt_id: str = Field(..., alias="promptId")
    selected_response: str = Field(..., alias="selectedResponse")
    response_date: datetime = Field(default_factory=utcnow, alias="responseDate")


# ==================== Request bodies ====================

class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def _required_text(value: str, label: str) -> str:
    value = clean_text(value)
    if not value:
        raise ValueError(f"{label} cannot be blank")
    return value


def _optional_text(value: Optional[str]) -> Optional[str]:
    return clean_text(value) or None


class UserCreate(RequestModel):
    clerk_id: str = Field(..., alias="clerkId")
    email: str
    first_name: str = ""
    last_name: str = ""
    gender: str = ""
    position: str = ""
    year: Optional[int] = None

    @field_validator("clerk_id")
    @classmethod
    def _clerk_id(cls, v):
        return _required_text(v, "clerkId")

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        v = _required_text(v, "email").lower()
        if "@" not in v:
            raise ValueError("email must be a valid address")
        return v


class ProfileForm(UserCreate):
    """Profile completion form posted once the user finishes sign-up"""


class UserUpdate(RequestModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    gender: Optional[str] = None
    position: Optional[str] = None
    year: Optional[int] = None
    account_created: Optional[bool] = Field(None, alias="accountCreated")

    def changes(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)


class PromptCreate(RequestModel):
    prompt_question: str = Field(..., alias="promptQuestion")
    resp1: Optional[str] = None
    resp2: Optional[str] = None
    resp3: Optional[str] = None
    resp4: Optional[str] = None
    created_by: Optional[str] = Field(None, alias="createdBy")

    @field_validator("prompt_question")
    @classmethod
    def _question(cls, v):
        return _required_text(v, "promptQuestion")

    @field_validator("resp1", "resp2", "resp3", "resp4")
    @classmethod
    def _option(cls, v):
        return _optional_text(v)

    @model_validator(mode="after")
    def _has_option(self):
        if not self.options:
            raise ValueError("At least one response option is required")
        return self

    @property
    def options(self) -> List[str]:
        return [r for r in (self.resp1, self.resp2, self.resp3, self.resp4) if r]


class PromptUpdate(RequestModel):
    id: str
    prompt_question: Optional[str] = Field(None, alias="promptQuestion")
    resp1: Optional[str] = None
    resp2: Optional[str] = None
    resp3: Optional[str] = None
    resp4: Optional[str] = None

    @field_validator("prompt_question")
    @classmethod
    def _question(cls, v):
        # only runs when the field is sent, so an explicit null is rejected
        return _required_text(v, "promptQuestion")

    @field_validator("resp1", "resp2", "resp3", "resp4")
    @classmethod
    def _option(cls, v):
        return _optional_text(v)

    def changes(self) -> dict:
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_unset=True)


class UserResponseCreate(RequestModel):
    user_id: Optional[str] = Field(None, alias="userId")
    prompt_id: str = Field(..., alias="promptId")
    selected_response: str = Field(..., alias="selectedResponse")

    @field_validator("prompt_id")
    @classmethod
    def _prompt_id(cls, v):
        return _required_text(v, "promptId")

    @field_validator("selected_response")
    @classmethod
    def _selected(cls, v):
        return _required_text(v, "selectedResponse")


# ==================== Aggregates ====================

class DemographicData(BaseModel):
    gender: Dict[str, int] = {}
    position: Dict[str, int] = {}
    year: Dict[str, int] = {}


class AnswerStat(BaseModel):
    count: int
    demographics: DemographicData


class PromptStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response_count: int = Field(0, alias="responseCount")
    has_enough_data: bool = Field(False, alias="hasEnoughData")
    answer_stats: Dict[str, AnswerStat] = Field(default_factory=dict, alias="answerStats")
