from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, constr

from wii.models.orm import MAX_ID

EntityId = conint(ge=1, le=MAX_ID)


class ContentIn(BaseModel):
    content_type: constr(min_length=1, max_length=50) = "text"
    value: str


class ContentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content_type: str
    value: str


class TagIn(BaseModel):
    key: constr(min_length=1, max_length=100)
    value: constr(min_length=1, max_length=255)


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_id: int
    key: str
    value: str


class SubjectIn(BaseModel):
    id: Optional[EntityId] = None
    name: constr(min_length=1, max_length=255)
    description: Optional[str] = None


class SubjectPatch(BaseModel):
    id: Optional[EntityId] = None
    name: Optional[constr(min_length=1, max_length=255)] = None
    description: Optional[str] = None


class SubjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None


class QuestionIn(BaseModel):
    id: Optional[EntityId] = None
    subject_id: EntityId
    title: constr(min_length=1, max_length=512)
    description: Optional[str] = None
    contents: List[ContentIn] = Field(default_factory=list)
    tags: List[TagIn] = Field(default_factory=list)


class QuestionPatch(BaseModel):
    """Only the fields present in the request body are applied."""

    id: Optional[EntityId] = None
    subject_id: Optional[EntityId] = None
    title: Optional[constr(min_length=1, max_length=512)] = None
    description: Optional[str] = None
    contents: Optional[List[ContentIn]] = None
    tags: Optional[List[TagIn]] = None


class QuestionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    subject_id: int
    title: str
    description: Optional[str] = None
    contents: List[ContentOut] = Field(default_factory=list)
    tags: List[TagOut] = Field(default_factory=list)


class QuestionFilter(BaseModel):
    tags: Dict[str, List[str]] = Field(default_factory=dict)
    title: Optional[str] = None


class QuestionPage(BaseModel):
    items: List[QuestionOut]
    total: int
    page: int
    size: int
    total_pages: int
