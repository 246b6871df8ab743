import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from wii.core.errors import InvalidArgument, NotFound
from wii.models.orm import Subject
from wii.schemas import SubjectIn, SubjectPatch

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name",)


def exists(db: Session, subject_id: int) -> bool:
    return db.scalar(select(Subject.id).where(Subject.id == subject_id)) is not None


def save(db: Session, payload: SubjectIn) -> Subject:
    logger.debug("Request to save Subject : %s", payload)
    subject = db.get(Subject, payload.id) if payload.id is not None else None
    if subject is None:
        subject = Subject()
        db.add(subject)
    subject.update_from_dict(payload.model_dump(), exclude={"id"})
    db.commit()
    db.refresh(subject)
    return subject


def partial_update(db: Session, subject_id: int, payload: SubjectPatch) -> Optional[Subject]:
    logger.debug("Request to partially update Subject : %s", payload)
    subject = db.get(Subject, subject_id)
    if subject is None:
        return None
    fields = payload.model_dump(exclude_unset=True, exclude={"id"})
    for name in REQUIRED_FIELDS:
        if name in fields and fields[name] is None:
            raise InvalidArgument(f"Subject {name} cannot be null")
    subject.update_from_dict(fields)
    db.commit()
    db.refresh(subject)
    return subject


def find_all(db: Session) -> List[Subject]:
    return list(db.scalars(select(Subject).order_by(Subject.id)).all())


def find_one(db: Session, subject_id: int) -> Optional[Subject]:
    return db.get(Subject, subject_id)


def delete(db: Session, subject_id: int) -> None:
    logger.debug("Request to delete Subject : %s", subject_id)
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise NotFound(f"Subject {subject_id} not found")
    db.delete(subject)
    db.commit()
