# backend/app/services/quizzes/quiz_scorer.py
# Notation pure d'une tentative : correction des réponses, agrégats, note A–F et réussite.

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from app.core.errors import ConflictError, InvalidInputError
from app.core.utils import round_half_up
from app.models.quiz import Quiz
from app.models.quiz_attempt import AttemptAnswer, QuizAttempt, SubmittedAnswer

PASSING_PERCENTAGE = 70

# (seuil minimal, note) du plus haut au plus bas
GRADE_THRESHOLDS: tuple[tuple[int, str], ...] = ((90, "A"), (80, "B"), (70, "C"), (60, "D"))


@dataclass(frozen=True)
class ScoreSummary:
    """Agrégats d'une liste de réponses notées."""

    score: int
    correct_answers: int
    total_questions: int
    percentage: int
    grade: str
    is_passed: bool


class QuizScorer:
    """Service de notation des quiz.

    Description:
        Sans I/O : prend le quiz et les réponses brutes, retourne les réponses notées
        et les agrégats. La persistance est assurée par `QuizAttemptService`.
    """

    @staticmethod
    def grade_for(percentage: float) -> str:
        """Note A–F d'un pourcentage (A ≥ 90, B ≥ 80, C ≥ 70, D ≥ 60, sinon F)."""
        for threshold, grade in GRADE_THRESHOLDS:
            if percentage >= threshold:
                return grade
        return "F"

    @staticmethod
    def grade_answers(quiz: Quiz, submitted: list[SubmittedAnswer]) -> list[AttemptAnswer]:
        """Corrige chaque réponse contre la banque de questions du quiz.

        Raises:
            InvalidInputError: Dès qu'une réponse vise une question absente du quiz
                ou une question déjà répondue dans la même soumission.
        """
        questions = quiz.question_map()
        graded: list[AttemptAnswer] = []
        seen: set[str] = set()
        for answer in submitted:
            question = questions.get(str(answer.question_id))
            if question is None:
                raise InvalidInputError(f"Question {answer.question_id} not found")
            if str(answer.question_id) in seen:
                raise InvalidInputError(f"Question {answer.question_id} answered more than once")
            seen.add(str(answer.question_id))
            is_correct = question.correct_answer == answer.selected_answer
            graded.append(
                AttemptAnswer(
                    question_id=answer.question_id,
                    selected_answer=answer.selected_answer,
                    is_correct=is_correct,
                    points_earned=question.points if is_correct else 0,
                    time_spent=answer.time_spent,
                )
            )
        return graded

    @classmethod
    def aggregate(cls, answers: list[AttemptAnswer]) -> ScoreSummary:
        """Score, bonnes réponses, pourcentage arrondi, note et réussite."""
        total = len(answers)
        correct = sum(1 for a in answers if a.is_correct)
        percentage = round_half_up(correct / total * 100) if total else 0
        return ScoreSummary(
            score=sum(a.points_earned for a in answers),
            correct_answers=correct,
            total_questions=total,
            percentage=percentage,
            grade=cls.grade_for(percentage),
            is_passed=percentage >= PASSING_PERCENTAGE,
        )

    @classmethod
    def apply(cls, attempt: QuizAttempt, quiz: Quiz) -> QuizAttempt:
        """Recalcule les agrégats persistés d'une tentative (avant chaque écriture)."""
        summary = cls.aggregate(attempt.answers)
        attempt.score = summary.score
        attempt.correct_answers = summary.correct_answers
        attempt.total_questions = summary.total_questions
        attempt.percentage = summary.percentage
        attempt.grade = summary.grade
        attempt.is_passed = summary.is_passed
        attempt.total_points = quiz.total_points
        return attempt

    @classmethod
    def score_submission(
        cls,
        attempt: QuizAttempt,
        quiz: Quiz,
        submitted: list[SubmittedAnswer],
        time_spent: int = 0,
        completed_at: dt.datetime | None = None,
    ) -> QuizAttempt:
        """Finalise une tentative en mémoire (tout ou rien).

        Args:
            attempt: Tentative courante.
            quiz: Quiz de référence.
            submitted: Réponses brutes.
            time_spent: Temps total (secondes).
            completed_at: Horodatage de fin.

        Returns:
            QuizAttempt: Nouvelle instance finalisée ; `attempt` n'est pas modifiée.

        Raises:
            ConflictError: Tentative déjà finalisée.
            InvalidInputError: Question inconnue (aucune modification appliquée).
        """
        if attempt.status == "completed":
            raise ConflictError("Quiz already completed")

        graded = cls.grade_answers(quiz, submitted)
        finalized = attempt.model_copy(deep=True)
        finalized.answers = graded
        finalized.time_spent = time_spent or 0
        finalized.status = "completed"
        finalized.completed_at = completed_at
        return cls.apply(finalized, quiz)
