import logging
from typing import Dict, List, Optional, Set

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from wii.api.params import PathId
from wii.core.config import settings
from wii.core.database import get_db
from wii.core.errors import BadRequestAlert, InvalidArgument, NotFound
from wii.core.headers import entity_creation_alert, entity_deletion_alert, entity_update_alert
from wii.schemas import QuestionFilter, QuestionIn, QuestionOut, QuestionPage, QuestionPatch
from wii.services import question_service
from wii.services.question_query import Page

router = APIRouter()
logger = logging.getLogger(__name__)

ENTITY_NAME = question_service.ENTITY_NAME


def _to_page(result: Page) -> QuestionPage:
    return QuestionPage(
        items=[QuestionOut.model_validate(q) for q in result.items],
        total=result.total, page=result.page, size=result.size, total_pages=result.total_pages,
    )


def _check_ids(question_id: int, body_id: Optional[int], db: Session) -> None:
    if body_id is None:
        raise BadRequestAlert("Invalid id", ENTITY_NAME, "idnull")
    if body_id != question_id:
        raise BadRequestAlert("Invalid ID", ENTITY_NAME, "idinvalid")
    if question_service.find_one(db, question_id) is None:
        raise BadRequestAlert("Entity not found", ENTITY_NAME, "idnotfound")


def parse_tag_params(raw: List[str]) -> Dict[str, Set[str]]:
    """``["difficulty:easy", "difficulty:hard", "lang:en"]`` -> ``{"difficulty": {"easy", "hard"}, "lang": {"en"}}``"""
    tags: Dict[str, Set[str]] = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep or not key or not value:
            raise InvalidArgument(f"Malformed tag filter {item!r}, expected key:value")
        tags.setdefault(key, set()).add(value)
    return tags


@router.post("/questions", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
def create_question(payload: QuestionIn, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to save Question : %s", payload)
    if payload.id is not None:
        raise BadRequestAlert("A new question cannot already have an ID", ENTITY_NAME, "idexists")
    q = question_service.save(db, payload)
    response.headers["Location"] = f"{settings.API_PREFIX}/questions/{q.id}"
    response.headers.update(entity_creation_alert(ENTITY_NAME, q.id))
    return QuestionOut.model_validate(q)


@router.put("/questions/{question_id}", response_model=QuestionOut)
def update_question(question_id: PathId, payload: QuestionIn, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to update Question : %s, %s", question_id, payload)
    _check_ids(question_id, payload.id, db)
    q = question_service.save(db, payload)
    response.headers.update(entity_update_alert(ENTITY_NAME, q.id))
    return QuestionOut.model_validate(q)


@router.patch("/questions/{question_id}", response_model=QuestionOut)
def partial_update_question(question_id: PathId, payload: QuestionPatch, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to partial update Question partially : %s, %s", question_id, payload)
    _check_ids(question_id, payload.id, db)
    q = question_service.partial_update(db, question_id, payload)
    if q is None:
        raise NotFound(f"Question {question_id} not found")
    response.headers.update(entity_update_alert(ENTITY_NAME, q.id))
    return QuestionOut.model_validate(q)


@router.get("/questions", response_model=List[QuestionOut])
def get_all_questions(db: Session = Depends(get_db)):
    logger.debug("REST request to get all Questions")
    return [QuestionOut.model_validate(q) for q in question_service.find_all(db)]


@router.get("/questions/{question_id}", response_model=QuestionOut)
def get_question(question_id: PathId, db: Session = Depends(get_db)):
    logger.debug("REST request to get Question : %s", question_id)
    q = question_service.find_one(db, question_id)
    if q is None:
        raise NotFound(f"Question {question_id} not found")
    return QuestionOut.model_validate(q)


@router.delete("/questions/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_question(question_id: PathId, db: Session = Depends(get_db)):
    logger.debug("REST request to delete Question : %s", question_id)
    question_service.delete(db, question_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=entity_deletion_alert(ENTITY_NAME, question_id))


@router.get("/subject/{subject_id}/questions", response_model=QuestionPage)
def get_questions_by_subject(
    subject_id: PathId,
    page: int = 0,
    size: int = settings.DEFAULT_PAGE_SIZE,
    title: Optional[str] = None,
    tag: Optional[List[str]] = Query(None),
    db: Session = Depends(get_db),
):
    logger.debug("REST request to get Questions by Subject : %s", subject_id)
    if tag:
        result = question_service.get_question_by_subject(db, subject_id, parse_tag_params(tag), title, page, size)
    else:
        result = question_service.find_by_subject(db, subject_id, page, size, title)
    return _to_page(result)


@router.post("/subject/{subject_id}/questions/search", response_model=QuestionPage)
def search_questions_by_subject(
    subject_id: PathId,
    criteria: QuestionFilter,
    page: int = 0,
    size: int = settings.DEFAULT_PAGE_SIZE,
    db: Session = Depends(get_db),
):
    logger.debug("REST request to filter Questions by Subject : %s, %s", subject_id, criteria)
    result = question_service.get_question_by_subject(db, subject_id, criteria.tags, criteria.title, page, size)
    return _to_page(result)
