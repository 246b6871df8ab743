from collections import defaultdict
from typing import Dict, List, Sequence, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, selectinload

from wii.core.errors import InvalidArgument, StorageUnavailable
from wii.models.orm import MAX_ID, Question, Subject, TagMetaData
from wii.repositories.base import QuestionStore, SubjectStore, TagStore
from wii.services.question_query import AllOf, HasTagIn, SubjectIs, TitleContains

ORDER_COLUMNS = {"id": Question.id}


def compile_predicate(node):
    if isinstance(node, AllOf):
        return and_(*[compile_predicate(c) for c in node.clauses])
    if isinstance(node, SubjectIs):
        return Question.subject_id == node.subject_id
    if isinstance(node, TitleContains):
        return Question.title.icontains(node.fragment, autoescape=True)
    if isinstance(node, HasTagIn):
        return Question.tags.any(
            and_(TagMetaData.key == node.key, TagMetaData.value.in_(sorted(node.values)))
        )
    raise TypeError(f"Unsupported predicate node: {node!r}")


class SqlSubjectStore(SubjectStore):
    def __init__(self, db: Session):
        self.db = db

    def exists(self, subject_id: int) -> bool:
        if not 1 <= subject_id <= MAX_ID:
            return False
        try:
            return self.db.scalar(select(Subject.id).where(Subject.id == subject_id)) is not None
        except OperationalError as e:
            raise StorageUnavailable("Subject storage is unavailable") from e


class SqlQuestionStore(QuestionStore):
    def __init__(self, db: Session):
        self.db = db

    def find_by_subject_filtered(self, predicate, order_key: str, offset: int, limit: int) -> Tuple[Sequence[Question], int]:
        column = ORDER_COLUMNS.get(order_key)
        if column is None:
            raise InvalidArgument(f"Cannot order questions by {order_key!r}")
        criterion = compile_predicate(predicate)
        stmt = (
            select(Question)
            .where(criterion)
            .options(selectinload(Question.contents), selectinload(Question.tags))
            .order_by(column.asc())
            .offset(offset)
            .limit(limit)
        )
        try:
            total = self.db.scalar(select(func.count(Question.id)).where(criterion)) or 0
            items = self.db.scalars(stmt).all()
        except OperationalError as e:
            raise StorageUnavailable("Question storage is unavailable") from e
        return items, total


class SqlTagStore(TagStore):
    def __init__(self, db: Session):
        self.db = db

    def find_by_question(self, question_id: int) -> List[TagMetaData]:
        stmt = select(TagMetaData).where(TagMetaData.question_id == question_id).order_by(TagMetaData.id)
        return list(self.db.scalars(stmt).all())

    def unique_tags(self) -> Dict[str, List[str]]:
        rows = self.db.execute(
            select(TagMetaData.key, TagMetaData.value).distinct().order_by(TagMetaData.key, TagMetaData.value)
        ).all()
        grouped: Dict[str, List[str]] = defaultdict(list)
        for key, value in rows:
            grouped[key].append(value)
        return dict(grouped)
