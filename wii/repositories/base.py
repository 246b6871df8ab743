"""
Store interfaces the services depend on.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence, Tuple


class SubjectStore(ABC):
    @abstractmethod
    def exists(self, subject_id: int) -> bool:
        pass


class QuestionStore(ABC):
    @abstractmethod
    def find_by_subject_filtered(self, predicate, order_key: str, offset: int, limit: int) -> Tuple[Sequence, int]:
        """Return one slice of the questions matching ``predicate`` ordered
        ascending by ``order_key``, plus the total number of matches."""
        pass


class TagStore(ABC):
    @abstractmethod
    def find_by_question(self, question_id: int) -> List:
        pass

    @abstractmethod
    def unique_tags(self) -> Dict[str, List[str]]:
        """Distinct values per tag key, both sorted."""
        pass
