import logging
from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wii.api.params import PathId
from wii.core.database import get_db
from wii.repositories.sql import SqlTagStore
from wii.schemas import TagOut

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/question/{question_id}/tag-meta-data", response_model=List[TagOut])
def get_tags_by_question(question_id: PathId, db: Session = Depends(get_db)):
    logger.debug("REST request to get TagMetaData : %s", question_id)
    return [TagOut.model_validate(t) for t in SqlTagStore(db).find_by_question(question_id)]


@router.get("/tag-meta-data/allUnique", response_model=Dict[str, List[str]])
def get_tags_for_filters(db: Session = Depends(get_db)):
    logger.debug("REST request to get TagMetaData for Filter")
    return SqlTagStore(db).unique_tags()
