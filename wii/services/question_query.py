"""
Tag-filtered, paginated question lookup.

A filter (subject, optional title fragment, tag key -> accepted values) is
turned into a small predicate tree. The tree is plain data: it can be
evaluated against a loaded question, or compiled by a ``QuestionStore`` into a
database query. Results are always ordered by question id so that repeating a
query over unchanged data returns the same pages.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from wii.core.errors import InvalidArgument, NotFound
from wii.repositories.base import QuestionStore, SubjectStore

logger = logging.getLogger(__name__)

ORDER_KEY = "id"
# OFFSET and LIMIT are bound as signed 64-bit integers
MAX_OFFSET = 2**63 - 1


@dataclass(frozen=True)
class SubjectIs:
    subject_id: int

    def evaluate(self, question) -> bool:
        return question.subject_id == self.subject_id


@dataclass(frozen=True)
class TitleContains:
    """Case-insensitive substring match on the title.

    ``evaluate`` folds Unicode case. Compiled to SQL the match goes through
    ``lower()``, which PostgreSQL folds per its collation but SQLite folds for
    ASCII only, so on SQLite "Ärzte" is not found by "ärzte".
    """

    fragment: str

    def evaluate(self, question) -> bool:
        return self.fragment.lower() in (question.title or "").lower()


@dataclass(frozen=True)
class HasTagIn:
    """At least one tag under ``key`` carries one of ``values``."""

    key: str
    values: FrozenSet[str]

    def evaluate(self, question) -> bool:
        return any(t.key == self.key and t.value in self.values for t in question.tags)


@dataclass(frozen=True)
class AllOf:
    clauses: Tuple["Predicate", ...]

    def evaluate(self, question) -> bool:
        return all(c.evaluate(question) for c in self.clauses)


Predicate = Union[SubjectIs, TitleContains, HasTagIn, AllOf]


def normalize_tag_filter(tags: Optional[Mapping[str, Union[str, Iterable[str]]]]) -> Dict[str, FrozenSet[str]]:
    """Validate a tag filter and freeze its value sets.

    ``None`` or an empty mapping means no tag constraint. A single string value
    is accepted as a one-element set. A key with no accepted values is rejected
    rather than silently matching nothing.
    """
    if not tags:
        return {}
    normalized: Dict[str, FrozenSet[str]] = {}
    for key, values in tags.items():
        if not isinstance(key, str) or not key.strip():
            raise InvalidArgument("Tag keys must be non-empty strings")
        if isinstance(values, str):
            values = (values,)
        try:
            accepted = frozenset(values)
        except TypeError:
            raise InvalidArgument(f"Tag '{key}' must map to a list of values")
        if not accepted:
            raise InvalidArgument(f"Tag '{key}' has no accepted values")
        if not all(isinstance(v, str) for v in accepted):
            raise InvalidArgument(f"Tag '{key}' values must be strings")
        normalized[key] = accepted
    return normalized


def build_predicate(subject_id: int, tags: Mapping[str, FrozenSet[str]], title: Optional[str] = None) -> AllOf:
    clauses: List[Predicate] = [SubjectIs(subject_id)]
    if title:
        clauses.append(TitleContains(title))
    for key in sorted(tags):
        clauses.append(HasTagIn(key, tags[key]))
    return AllOf(tuple(clauses))


@dataclass
class Page:
    items: List = field(default_factory=list)
    total: int = 0
    page: int = 0
    size: int = 1

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size)


def _check_pagination(page, size) -> None:
    # bool is an int subclass; True/False are not page numbers
    if not isinstance(page, int) or isinstance(page, bool) or page < 0:
        raise InvalidArgument("page must be an integer >= 0")
    if not isinstance(size, int) or isinstance(size, bool) or size <= 0:
        raise InvalidArgument("size must be an integer > 0")
    if page * size + size > MAX_OFFSET:
        raise InvalidArgument("page and size are out of range")


class QuestionQueryEngine:
    """Filters the questions of one subject and returns a page of them.

    Holds no state besides its stores, so one instance per request is fine and
    concurrent calls do not interact.
    """

    def __init__(self, subjects: SubjectStore, questions: QuestionStore):
        self.subjects = subjects
        self.questions = questions

    def query(
        self,
        subject_id: int,
        tag_filter: Optional[Mapping[str, Union[str, Iterable[str]]]] = None,
        title_pattern: Optional[str] = None,
        page: int = 0,
        size: int = 20,
    ) -> Page:
        _check_pagination(page, size)
        tags = normalize_tag_filter(tag_filter)
        if not self.subjects.exists(subject_id):
            raise NotFound(f"Subject {subject_id} not found")

        predicate = build_predicate(subject_id, tags, title_pattern)
        items, total = self.questions.find_by_subject_filtered(
            predicate, ORDER_KEY, page * size, size
        )
        logger.debug("Question query subject=%s tags=%s title=%r page=%s size=%s -> %s/%s",
                     subject_id, sorted(tags), title_pattern, page, size, len(items), total)
        return Page(items=list(items), total=total, page=page, size=size)
