from unittest.mock import Mock

from sqlalchemy.exc import OperationalError

from quizbot.services.question_bank import (
    first_question,
    get_question,
    list_questions,
    question_after,
    question_progress,
)


class TestQuestionAfter:
    def test_first_question_is_minimum_key(self, db, add_question):
        add_question(3, "Third")
        add_question(0, "First")
        add_question(2, "Second")

        assert first_question(db).require().text == "First"

    def test_skips_gaps(self, db, add_question):
        add_question(0, "Q0")
        add_question(5, "Q5")

        assert question_after(db, 0).require().text == "Q5"

    def test_end_of_bank_is_not_found(self, db, add_question):
        add_question(0, "Q0")

        lookup = question_after(db, 0)
        assert lookup.is_not_found
        assert not lookup.is_failure

    def test_duplicate_keys_ordered_by_creation(self, db, add_question):
        add_question(0, "Q0")
        add_question(2, "Q2a")
        add_question(2, "Q2b")
        add_question(3, "Q3")

        assert question_after(db, 0).require().text == "Q2a"
        assert question_after(db, 2).require().text == "Q3"

    def test_inactive_questions_ignored(self, db, add_question):
        add_question(0, "Q0")
        add_question(1, "Hidden", is_active=False)
        add_question(2, "Q2")

        assert question_after(db, 0).require().text == "Q2"
        assert [q.text for q in list_questions(db).require()] == ["Q0", "Q2"]

    def test_question_added_mid_session_is_reachable(self, db, add_question):
        add_question(0, "Q0")
        add_question(10, "Q10")
        add_question(5, "Q5 late")

        assert question_after(db, 0).require().text == "Q5 late"

    def test_empty_bank(self, db):
        assert first_question(db).is_not_found
        assert list_questions(db).require() == []

    def test_storage_error_is_failure_not_not_found(self):
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        lookup = question_after(db, 0)
        assert lookup.is_failure
        assert lookup.error_code == "storage_unavailable"

    def test_storage_timeout_code(self):
        db = Mock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("canceling statement due to statement timeout"))

        assert question_after(db, 0).error_code == "timeout"


class TestGetQuestion:
    def test_none_id_is_not_found(self, db):
        assert get_question(db, None).is_not_found

    def test_inactive_is_not_found(self, db, add_question):
        question = add_question(0, is_active=False)
        assert get_question(db, question.id).is_not_found


class TestQuestionProgress:
    def test_counts_distinct_keys(self, db, add_question):
        add_question(0)
        second = add_question(2)
        add_question(2)
        add_question(3)

        assert question_progress(db, second).require() == (2, 3)
