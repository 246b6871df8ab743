"""
Question persistence and the two subject-scoped lookups.

``find_by_subject`` filters on title only; ``get_question_by_subject`` also
takes a tag filter. Both go through ``QuestionQueryEngine``.
"""
import logging
from typing import Iterable, List, Mapping, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from wii.core.errors import BadRequestAlert, InvalidArgument, NotFound
from wii.models.orm import Content, Question, TagMetaData
from wii.repositories.sql import SqlQuestionStore, SqlSubjectStore
from wii.schemas import ContentIn, QuestionIn, QuestionPatch, TagIn
from wii.services import subject_service
from wii.services.question_query import Page, QuestionQueryEngine

logger = logging.getLogger(__name__)

ENTITY_NAME = "question"
REQUIRED_FIELDS = ("subject_id", "title")


def _check_subject(db: Session, subject_id: int) -> None:
    if not subject_service.exists(db, subject_id):
        raise BadRequestAlert("Subject not found", ENTITY_NAME, "subjectnotfound")


def _set_contents(question: Question, contents: Optional[List[ContentIn]]) -> None:
    question.contents = [Content(content_type=c.content_type, value=c.value) for c in contents or []]


def _set_tags(question: Question, tags: Optional[List[TagIn]]) -> None:
    question.tags = [TagMetaData(key=t.key, value=t.value) for t in tags or []]


def query_engine(db: Session) -> QuestionQueryEngine:
    return QuestionQueryEngine(SqlSubjectStore(db), SqlQuestionStore(db))


def save(db: Session, payload: QuestionIn) -> Question:
    """Create a question, or fully replace the one with ``payload.id``."""
    logger.debug("Request to save Question : %s", payload)
    _check_subject(db, payload.subject_id)
    question = db.get(Question, payload.id) if payload.id is not None else None
    if question is None:
        question = Question()
        db.add(question)
    question.update_from_dict(payload.model_dump(exclude={"contents", "tags"}), exclude={"id"})
    _set_contents(question, payload.contents)
    _set_tags(question, payload.tags)
    db.commit()
    db.refresh(question)
    return question


def partial_update(db: Session, question_id: int, payload: QuestionPatch) -> Optional[Question]:
    """Apply only the fields the client sent. An explicit ``null`` clears an
    optional field (or a collection); it is rejected for required ones."""
    logger.debug("Request to partially update Question : %s", payload)
    question = db.get(Question, question_id)
    if question is None:
        return None
    sent = payload.model_fields_set - {"id"}
    for name in REQUIRED_FIELDS:
        if name in sent and getattr(payload, name) is None:
            raise InvalidArgument(f"Question {name} cannot be null")
    if "subject_id" in sent:
        _check_subject(db, payload.subject_id)

    question.update_from_dict({name: getattr(payload, name) for name in sent}, exclude={"contents", "tags"})
    if "contents" in sent:
        _set_contents(question, payload.contents)
    if "tags" in sent:
        _set_tags(question, payload.tags)
    db.commit()
    db.refresh(question)
    return question


def find_all(db: Session) -> List[Question]:
    stmt = select(Question).options(selectinload(Question.contents), selectinload(Question.tags)).order_by(Question.id)
    return list(db.scalars(stmt).all())


def find_one(db: Session, question_id: int) -> Optional[Question]:
    return db.get(Question, question_id)


def find_by_subject(db: Session, subject_id: int, page: int, size: int, title: Optional[str] = None) -> Page:
    return query_engine(db).query(subject_id, None, title, page, size)


def get_question_by_subject(
    db: Session,
    subject_id: int,
    tags: Optional[Mapping[str, Union[str, Iterable[str]]]],
    title: Optional[str],
    page: int,
    size: int,
) -> Page:
    return query_engine(db).query(subject_id, tags, title, page, size)


def delete(db: Session, question_id: int) -> None:
    logger.debug("Request to delete Question : %s", question_id)
    question = db.get(Question, question_id)
    if question is None:
        raise NotFound(f"Question {question_id} not found")
    db.delete(question)
    db.commit()
