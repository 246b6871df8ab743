import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from conftest import add_question
from wii.core.errors import InvalidArgument, NotFound, StorageUnavailable
from wii.models.orm import Question, Subject
from wii.repositories.sql import SqlQuestionStore, SqlSubjectStore, compile_predicate
from wii.services.question_query import (
    AllOf, HasTagIn, QuestionQueryEngine, SubjectIs, TitleContains, build_predicate, normalize_tag_filter,
)


@pytest.fixture
def engine(db):
    return QuestionQueryEngine(SqlSubjectStore(db), SqlQuestionStore(db))


def ids(page):
    return [q.id for q in page.items]


def test_tag_and_title_filter(engine, sample):
    page = engine.query(sample.subject_id, {"difficulty": {"easy"}}, "Intro", 0, 10)
    assert ids(page) == [sample.q1, sample.q3]
    assert page.total == 2
    assert page.total_pages == 1


def test_pages_without_filters(engine, sample):
    first = engine.query(sample.subject_id, {}, None, 0, 2)
    assert ids(first) == [sample.q1, sample.q2]
    assert first.total == 3
    assert first.total_pages == 2

    second = engine.query(sample.subject_id, {}, None, 1, 2)
    assert ids(second) == [sample.q3]
    assert second.total == 3


def test_page_past_the_end_is_empty(engine, sample):
    page = engine.query(sample.subject_id, None, None, 5, 2)
    assert page.items == []
    assert page.total == 3


def test_title_match_ignores_case(engine, sample):
    assert ids(engine.query(sample.subject_id, None, "intro", 0, 10)) == [sample.q1, sample.q3]
    assert ids(engine.query(sample.subject_id, None, "ii", 0, 10)) == [sample.q3]


def test_empty_title_is_no_constraint(engine, sample):
    assert ids(engine.query(sample.subject_id, None, "", 0, 10)) == [sample.q1, sample.q2, sample.q3]


def test_title_wildcards_are_literal(engine, db, sample):
    hit = add_question(db, sample.subject_id, "Scored 100% of_points")
    add_question(db, sample.subject_id, "Scored 1000 offpoints")
    db.commit()
    assert ids(engine.query(sample.subject_id, None, "100%", 0, 10)) == [hit.id]
    assert ids(engine.query(sample.subject_id, None, "of_p", 0, 10)) == [hit.id]


def test_other_subjects_are_excluded(engine, sample):
    page = engine.query(sample.other_subject_id, {"difficulty": ["easy"]}, "intro", 0, 10)
    assert ids(page) == [sample.stray]


def test_values_within_a_key_are_alternatives(engine, sample):
    page = engine.query(sample.subject_id, {"difficulty": ["easy", "hard"]}, None, 0, 10)
    assert ids(page) == [sample.q1, sample.q2, sample.q3]


def test_keys_must_all_match(engine, db, sample):
    both = add_question(db, sample.subject_id, "Recursion", [("difficulty", "easy"), ("lang", "en")])
    add_question(db, sample.subject_id, "Rekursion", [("difficulty", "hard"), ("lang", "de")])
    db.commit()
    page = engine.query(sample.subject_id, {"difficulty": ["easy"], "lang": ["en", "fr"]}, None, 0, 10)
    assert ids(page) == [both.id]


def test_any_tag_under_a_key_can_match(engine, db, sample):
    multi = add_question(db, sample.subject_id, "Mixed", [("difficulty", "easy"), ("difficulty", "hard")])
    db.commit()
    page = engine.query(sample.subject_id, {"difficulty": ["hard"]}, None, 0, 10)
    assert ids(page) == [sample.q2, multi.id]
    assert page.total == 2


def test_single_string_value_is_accepted(engine, sample):
    assert ids(engine.query(sample.subject_id, {"difficulty": "hard"}, None, 0, 10)) == [sample.q2]


def test_unknown_tag_value_matches_nothing(engine, sample):
    page = engine.query(sample.subject_id, {"difficulty": ["impossible"]}, None, 0, 10)
    assert page.items == []
    assert page.total == 0
    assert page.total_pages == 0


def test_empty_tag_filter_equals_no_tag_filter(engine, sample):
    with_empty = engine.query(sample.subject_id, {}, "intro", 0, 10)
    without = engine.query(sample.subject_id, None, "intro", 0, 10)
    assert ids(with_empty) == ids(without)
    assert with_empty.total == without.total


@pytest.mark.parametrize("tags", [{"difficulty": []}, {"difficulty": set()}, {"difficulty": ["easy"], "lang": ()}])
def test_key_without_values_is_rejected(engine, sample, tags):
    for page in (0, 1):
        with pytest.raises(InvalidArgument):
            engine.query(sample.subject_id, tags, None, page, 2)


def test_key_without_values_is_rejected_even_for_unknown_subject(engine, sample):
    with pytest.raises(InvalidArgument):
        engine.query(99999, {"difficulty": []}, None, 0, 10)


def test_unknown_subject_is_not_found(engine, sample):
    with pytest.raises(NotFound):
        engine.query(99999, None, None, 0, 10)


@pytest.mark.parametrize("page,size", [(-1, 10), (0, 0), (0, -5), (True, 10), (0, 2.5), ("0", 10)])
def test_invalid_pagination(engine, sample, page, size):
    with pytest.raises(InvalidArgument):
        engine.query(sample.subject_id, None, None, page, size)


@pytest.mark.parametrize("page,size", [(10**19, 10), (0, 2**63), (2**62, 4)])
def test_pagination_past_64_bit_offsets_is_rejected(engine, sample, page, size):
    with pytest.raises(InvalidArgument):
        engine.query(sample.subject_id, None, None, page, size)


def test_subject_id_past_64_bits_is_not_found(engine, db, sample):
    with pytest.raises(NotFound):
        engine.query(10**20, None, None, 0, 10)
    assert not SqlSubjectStore(db).exists(0)


@pytest.mark.parametrize("tags", [{"": ["x"]}, {"  ": ["x"]}, {"difficulty": [1]}, {"difficulty": 3}, {7: ["x"]}])
def test_malformed_tag_filter(engine, sample, tags):
    with pytest.raises(InvalidArgument):
        engine.query(sample.subject_id, tags, None, 0, 10)


@pytest.fixture
def bank(db):
    subject = Subject(name="Algorithms")
    db.add(subject)
    db.flush()
    difficulties = ["easy", "medium", "hard"]
    topics = ["arrays", "graphs", "trees", "dp"]
    for i in range(23):
        tags = [("difficulty", difficulties[i % 3]), ("topic", topics[i % 4])]
        if i % 5 == 0:
            tags.append(("topic", "graphs"))
        title = f"Question {i:02d}" if i % 6 else f"Warmup {i:02d}"
        add_question(db, subject.id, title, tags)
    db.commit()
    return subject.id


FILTERS = [
    ({}, None),
    ({"difficulty": ["easy", "hard"]}, None),
    ({"difficulty": ["easy", "hard"], "topic": ["graphs", "trees"]}, "question"),
    ({"topic": ["dp", "graphs"]}, "WARMUP"),
    ({"topic": ["dp"]}, "WARMUP"),
]


@pytest.mark.parametrize("tags,title", FILTERS)
@pytest.mark.parametrize("size", [1, 4, 7, 23, 50])
def test_pages_cover_the_filtered_set_exactly_once(engine, db, bank, tags, title, size):
    predicate = build_predicate(bank, normalize_tag_filter(tags), title)
    everything = db.scalars(select(Question).order_by(Question.id)).all()
    expected = [q.id for q in everything if predicate.evaluate(q)]

    first = engine.query(bank, tags, title, 0, size)
    seen = []
    for n in range(first.total_pages):
        page = engine.query(bank, tags, title, n, size)
        assert page.total == len(expected)
        assert len(page.items) <= size
        assert all(predicate.evaluate(q) for q in page.items)
        seen.extend(ids(page))

    assert first.total == len(expected)
    assert seen == expected
    assert len(set(seen)) == len(seen)


@pytest.mark.parametrize("tags,title", FILTERS)
def test_repeated_queries_return_identical_pages(engine, bank, tags, title):
    a = engine.query(bank, tags, title, 1, 3)
    b = engine.query(bank, tags, title, 1, 3)
    assert ids(a) == ids(b)
    assert ids(a) == sorted(ids(a))
    assert a.total == b.total


def test_predicate_tree_shape():
    predicate = build_predicate(4, {"topic": frozenset({"dp"}), "difficulty": frozenset({"easy"})}, "intro")
    assert predicate == AllOf((
        SubjectIs(4),
        TitleContains("intro"),
        HasTagIn("difficulty", frozenset({"easy"})),
        HasTagIn("topic", frozenset({"dp"})),
    ))
    assert build_predicate(4, {}, None) == AllOf((SubjectIs(4),))


def test_compile_rejects_unknown_nodes():
    with pytest.raises(TypeError):
        compile_predicate(object())


def test_unknown_order_key_is_rejected(db, sample):
    with pytest.raises(InvalidArgument):
        SqlQuestionStore(db).find_by_subject_filtered(build_predicate(sample.subject_id, {}), "title", 0, 10)


class BrokenSession:
    def scalar(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def scalars(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


def test_storage_failures_are_reported():
    with pytest.raises(StorageUnavailable):
        QuestionQueryEngine(SqlSubjectStore(BrokenSession()), SqlQuestionStore(BrokenSession())).query(1)
    with pytest.raises(StorageUnavailable):
        SqlQuestionStore(BrokenSession()).find_by_subject_filtered(build_predicate(1, {}), "id", 0, 10)


def test_title_match_folds_unicode_case_in_memory():
    question = Question(title="Ärzte im Einsatz")
    assert TitleContains("ärzte").evaluate(question)
    assert TitleContains("ÄRZTE").evaluate(question)


def test_title_match_compiles_to_case_folding_sql_on_postgresql():
    sql = str(compile_predicate(TitleContains("ärzte")).compile(dialect=postgresql.dialect()))
    assert "lower(questions.title)" in sql or "ILIKE" in sql
    assert "ESCAPE" in sql
