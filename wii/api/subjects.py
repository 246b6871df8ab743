import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from wii.api.params import PathId
from wii.core.config import settings
from wii.core.database import get_db
from wii.core.errors import BadRequestAlert, NotFound
from wii.core.headers import entity_creation_alert, entity_deletion_alert, entity_update_alert
from wii.schemas import SubjectIn, SubjectOut, SubjectPatch
from wii.services import subject_service

router = APIRouter()
logger = logging.getLogger(__name__)

ENTITY_NAME = "subject"


def _check_ids(subject_id: int, body_id, db: Session) -> None:
    if body_id is None:
        raise BadRequestAlert("Invalid id", ENTITY_NAME, "idnull")
    if body_id != subject_id:
        raise BadRequestAlert("Invalid ID", ENTITY_NAME, "idinvalid")
    if not subject_service.exists(db, subject_id):
        raise BadRequestAlert("Entity not found", ENTITY_NAME, "idnotfound")


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectIn, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to save Subject : %s", payload)
    if payload.id is not None:
        raise BadRequestAlert("A new subject cannot already have an ID", ENTITY_NAME, "idexists")
    s = subject_service.save(db, payload)
    response.headers["Location"] = f"{settings.API_PREFIX}/subjects/{s.id}"
    response.headers.update(entity_creation_alert(ENTITY_NAME, s.id))
    return SubjectOut.model_validate(s)


@router.put("/subjects/{subject_id}", response_model=SubjectOut)
def update_subject(subject_id: PathId, payload: SubjectIn, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to update Subject : %s, %s", subject_id, payload)
    _check_ids(subject_id, payload.id, db)
    s = subject_service.save(db, payload)
    response.headers.update(entity_update_alert(ENTITY_NAME, s.id))
    return SubjectOut.model_validate(s)


@router.patch("/subjects/{subject_id}", response_model=SubjectOut)
def partial_update_subject(subject_id: PathId, payload: SubjectPatch, response: Response, db: Session = Depends(get_db)):
    logger.debug("REST request to partial update Subject partially : %s, %s", subject_id, payload)
    _check_ids(subject_id, payload.id, db)
    s = subject_service.partial_update(db, subject_id, payload)
    if s is None:
        raise NotFound(f"Subject {subject_id} not found")
    response.headers.update(entity_update_alert(ENTITY_NAME, s.id))
    return SubjectOut.model_validate(s)


@router.get("/subjects", response_model=List[SubjectOut])
def get_all_subjects(db: Session = Depends(get_db)):
    logger.debug("REST request to get all Subjects")
    return [SubjectOut.model_validate(s) for s in subject_service.find_all(db)]


@router.get("/subjects/{subject_id}", response_model=SubjectOut)
def get_subject(subject_id: PathId, db: Session = Depends(get_db)):
    logger.debug("REST request to get Subject : %s", subject_id)
    s = subject_service.find_one(db, subject_id)
    if s is None:
        raise NotFound(f"Subject {subject_id} not found")
    return SubjectOut.model_validate(s)


@router.delete("/subjects/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subject(subject_id: PathId, db: Session = Depends(get_db)):
    logger.debug("REST request to delete Subject : %s", subject_id)
    subject_service.delete(db, subject_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=entity_deletion_alert(ENTITY_NAME, subject_id))
