"""Tests for quiz management and quiz attempts against the in-memory database."""

import datetime as dt

import pytest
from bson import ObjectId

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.models.quiz import QuizCreate, QuizUpdate
from app.models.quiz_attempt import QuizSubmission
from app.services.quizzes.quiz_attempt_service import QuizAttemptService
from app.services.quizzes.quiz_service import QuizService

UTC = dt.timezone.utc


def quiz_payload(**overrides):
    data = {
        "title": "Carbon basics",
        "description": "A short quiz about carbon footprints.",
        "category": "Carbon Footprint",
        "questions": [
            {
                "question": f"Which option is right for question {i}?",
                "options": ["first", "second", "third"],
                "correct_answer": 1,
                "explanation": "The second option is right.",
            }
            for i in range(3)
        ],
    }
    data.update(overrides)
    return QuizCreate(**data)


def answers(quiz, correct=3):
    return QuizSubmission(
        answers=[
            {"question_id": q.id, "selected_answer": 1 if i < correct else 0}
            for i, q in enumerate(quiz.questions)
        ],
        time_spent=90,
    )


class TestQuizService:
    @pytest.mark.asyncio
    async def test_create_assigns_question_ids_and_totals(self, db, admin_doc):
        service = QuizService(db)
        quiz = await service.create_quiz(quiz_payload(), admin_doc["_id"])

        assert quiz.id is not None
        assert quiz.total_questions == 3
        assert quiz.total_points == 30
        assert len({q.id for q in quiz.questions}) == 3
        stored = await service.get_quiz(quiz.id)
        assert [q.id for q in stored.questions] == [q.id for q in quiz.questions]

    @pytest.mark.asyncio
    async def test_update_recomputes_totals(self, db, admin_doc):
        service = QuizService(db)
        quiz = await service.create_quiz(quiz_payload(), admin_doc["_id"])
        update = QuizUpdate(
            questions=[
                {"question": "Is this the only question left?", "options": ["yes", "no"], "correct_answer": 0, "points": 25}
            ]
        )
        updated = await service.update_quiz(quiz.id, update)
        assert updated.total_questions == 1
        assert updated.total_points == 25
        assert (await service.get_quiz(quiz.id)).total_points == 25

    @pytest.mark.asyncio
    async def test_delete_cascades_attempts(self, db, admin_doc, user_doc):
        service = QuizService(db)
        quiz = await service.create_quiz(quiz_payload(), admin_doc["_id"])
        await QuizAttemptService(db).start_attempt(quiz.id, user_doc["_id"])

        removed = await service.delete_quiz(quiz.id)
        assert removed == 1
        assert await db.quiz_attempts.count_documents({"quiz_id": quiz.id}) == 0
        with pytest.raises(NotFoundError):
            await service.get_quiz(quiz.id)

    @pytest.mark.asyncio
    async def test_quiz_for_taking_hides_answers(self, db, admin_doc, user_doc):
        service = QuizService(db)
        quiz = await service.create_quiz(quiz_payload(), admin_doc["_id"])
        view = await service.get_quiz_for_taking(quiz.id, user_doc["_id"])

        dumped = view["quiz"].model_dump()
        assert view["has_attempted"] is False
        assert all("correct_answer" not in q and "explanation" not in q for q in dumped["questions"])

    @pytest.mark.asyncio
    async def test_inactive_quiz_not_available(self, db, admin_doc, user_doc):
        service = QuizService(db)
        quiz = await service.create_quiz(quiz_payload(is_active=False), admin_doc["_id"])
        with pytest.raises(NotFoundError):
            await service.get_quiz_for_taking(quiz.id, user_doc["_id"])

    @pytest.mark.asyncio
    async def test_available_quizzes_respect_cooldown(self, db, admin_doc, user_doc):
        service = QuizService(db)
        now = dt.datetime(2025, 6, 15, tzinfo=UTC)
        recent = await service.create_quiz(quiz_payload(title="Recent quiz"), admin_doc["_id"])
        old = await service.create_quiz(quiz_payload(title="Old quiz"), admin_doc["_id"])
        fresh = await service.create_quiz(quiz_payload(title="Fresh quiz"), admin_doc["_id"])
        await service.create_quiz(quiz_payload(title="Hidden quiz", is_active=False), admin_doc["_id"])

        db.quiz_attempts.seed(
            {"user_id": user_doc["_id"], "quiz_id": recent.id, "status": "completed",
             "completed_at": now - dt.timedelta(days=5)},
            {"user_id": user_doc["_id"], "quiz_id": old.id, "status": "completed",
             "completed_at": now - dt.timedelta(days=45)},
        )

        result = await service.list_available_quizzes(user_doc["_id"], now=now)
        ids = {q.id for q in result["quizzes"]}
        assert ids == {old.id, fresh.id}
        info = result["cooldown_info"]
        assert info["recently_completed"] == 1
        assert info["cooldown_days"] == 30
        assert info["next_available_date"] == now + dt.timedelta(days=25)


class TestQuizAttemptService:
    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)

        first = await service.start_attempt(quiz.id, user_doc["_id"])
        second = await service.start_attempt(quiz.id, user_doc["_id"])
        assert first.id == second.id
        assert first.total_points == 30
        assert await db.quiz_attempts.count_documents({}) == 1
        stored = await db.quiz_attempts.find_one({"_id": first.id})
        assert (stored["grade"], stored["percentage"], stored["score"], stored["is_passed"]) == ("F", 0, 0, False)
        assert stored["total_points"] == 30

    @pytest.mark.asyncio
    async def test_submit_scores_and_persists(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)
        await service.start_attempt(quiz.id, user_doc["_id"])

        finalized = await service.submit_quiz(quiz.id, user_doc["_id"], answers(quiz, correct=2))
        assert (finalized.score, finalized.percentage, finalized.grade, finalized.is_passed) == (20, 67, "D", False)

        stored = await db.quiz_attempts.find_one({"_id": finalized.id})
        assert stored["status"] == "completed"
        assert stored["score"] == 20
        assert stored["completed_at"] is not None

    @pytest.mark.asyncio
    async def test_no_double_scoring(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)
        await service.start_attempt(quiz.id, user_doc["_id"])
        await service.submit_quiz(quiz.id, user_doc["_id"], answers(quiz, correct=1))

        with pytest.raises(ConflictError):
            await service.submit_quiz(quiz.id, user_doc["_id"], answers(quiz, correct=3))
        with pytest.raises(ConflictError):
            await service.start_attempt(quiz.id, user_doc["_id"])

        stored = await db.quiz_attempts.find_one({"user_id": user_doc["_id"]})
        assert stored["score"] == 10

    @pytest.mark.asyncio
    async def test_concurrent_completion_is_rejected(self, db, admin_doc, user_doc):
        """A submission racing a completed write does not overwrite it."""
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)
        attempt = await service.start_attempt(quiz.id, user_doc["_id"])
        # Another request finalized the attempt after this one read it
        await db.quiz_attempts.update_one({"_id": attempt.id}, {"$set": {"status": "completed", "score": 30}})

        finalized = service.score_quiz_submission(attempt, quiz, answers(quiz, correct=0))
        assert finalized.score == 0
        with pytest.raises(ConflictError):
            await service.submit_quiz(quiz.id, user_doc["_id"], answers(quiz, correct=0))
        assert (await db.quiz_attempts.find_one({"_id": attempt.id}))["score"] == 30

    @pytest.mark.asyncio
    async def test_submit_without_attempt(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        with pytest.raises(InvalidInputError):
            await QuizAttemptService(db).submit_quiz(quiz.id, user_doc["_id"], answers(quiz))

    @pytest.mark.asyncio
    async def test_unknown_question_writes_nothing(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)
        attempt = await service.start_attempt(quiz.id, user_doc["_id"])
        submission = QuizSubmission(answers=[{"question_id": ObjectId(), "selected_answer": 1}])

        with pytest.raises(InvalidInputError):
            await service.submit_quiz(quiz.id, user_doc["_id"], submission)
        stored = await db.quiz_attempts.find_one({"_id": attempt.id})
        assert stored["status"] == "in_progress"
        assert stored.get("answers") == []

    @pytest.mark.asyncio
    async def test_results_and_stats(self, db, admin_doc, user_doc):
        quiz = await QuizService(db).create_quiz(quiz_payload(), admin_doc["_id"])
        service = QuizAttemptService(db)
        await service.start_attempt(quiz.id, user_doc["_id"])
        finalized = await service.submit_quiz(quiz.id, user_doc["_id"], answers(quiz, correct=3))

        results = await service.get_results(quiz.id, finalized.id, user_doc["_id"])
        assert results["results"].grade == "A"
        assert len(results["answers"]) == 3
        assert results["answers"][0].correct_answer_text == "second"

        stats = await service.get_user_stats(user_doc["_id"])
        assert stats["statistics"]["total_attempts"] == 1
        assert stats["statistics"]["passed_count"] == 1
        assert stats["statistics"]["highest_score"] == 30
        assert stats["recent_attempts"][0]["quiz_id"] == str(quiz.id)

        quiz_stats = await service.get_quiz_stats(quiz.id)
        assert quiz_stats["statistics"]["total_attempts"] == 1
        assert quiz_stats["statistics"]["average_percentage"] == 100
