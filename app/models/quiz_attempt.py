# backend/app/models/quiz_attempt.py
# Tentative de quiz : réponses notées, agrégats (score, pourcentage, note) et état in_progress/completed.

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from app.core.bson_utils import MongoBaseModel, PyObjectId
from app.core.utils import utcnow

AttemptStatus = Literal["in_progress", "completed", "abandoned"]
Grade = Literal["A", "B", "C", "D", "F"]


class AttemptAnswer(BaseModel):
    """Réponse notée.

    Attributes:
        question_id (PyObjectId): Question visée.
        selected_answer (int): Index choisi.
        is_correct (bool): Réponse juste.
        points_earned (int): Points obtenus (0 si faux).
        time_spent (int): Secondes passées sur la question.
    """

    question_id: PyObjectId
    selected_answer: int = Field(ge=0)
    is_correct: bool
    points_earned: int = Field(ge=0)
    time_spent: int = Field(default=0, ge=0)


class QuizAttempt(MongoBaseModel):
    """Document Mongo « QuizAttempt » (unique par (user_id, quiz_id)).

    Description:
        Créée au démarrage (`in_progress`), finalisée une seule fois (`completed`).
        Les agrégats sont recalculés par `QuizScorer.aggregate` avant chaque écriture.
    """

    user_id: PyObjectId
    quiz_id: PyObjectId
    answers: list[AttemptAnswer] = Field(default_factory=list)
    score: int = 0
    total_points: int = 0
    percentage: int = Field(default=0, ge=0, le=100)
    correct_answers: int = 0
    total_questions: int = 0
    time_spent: int = Field(default=0, ge=0)
    status: AttemptStatus = "in_progress"
    started_at: dt.datetime = Field(default_factory=lambda: utcnow())
    completed_at: dt.datetime | None = None
    grade: Grade | None = None
    is_passed: bool = False
    feedback: str | None = None

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None


# Input/Output DTOs


class SubmittedAnswer(BaseModel):
    """Réponse brute envoyée par le client."""

    question_id: PyObjectId
    selected_answer: int = Field(ge=0, le=5)
    time_spent: int = Field(default=0, ge=0, le=3600)


class QuizSubmission(BaseModel):
    """Soumission d'un quiz."""

    answers: list[SubmittedAnswer] = Field(min_length=1, max_length=50)
    time_spent: int = Field(default=0, ge=0, le=7200)


class AttemptStarted(BaseModel):
    """Tentative démarrée ou reprise."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    status: AttemptStatus
    started_at: dt.datetime
    answers: int


class QuizResult(BaseModel):
    """Résultat agrégé d'une tentative finalisée."""

    attempt_id: PyObjectId
    score: int
    total_points: int
    percentage: int
    correct_answers: int
    total_questions: int
    grade: Grade | None
    time_spent: int
    is_passed: bool
    completed_at: dt.datetime | None = None


class AnswerDetail(BaseModel):
    """Correction détaillée d'une réponse."""

    question: str
    selected_answer: int
    correct_answer: int | None
    selected_answer_text: str
    correct_answer_text: str
    is_correct: bool
    points_earned: int
    points_possible: int
    explanation: str | None = None
    time_spent: int
