# backend/app/models/quiz.py
# Quiz éducatif : banque de questions embarquées, totaux recalculés, payloads admin et vue « à passer ».

from __future__ import annotations

import datetime as dt
from typing import Literal

from bson import ObjectId
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from app.core.bson_utils import MongoBaseModel, PyObjectId
from app.core.utils import utcnow

QuizCategory = Literal["Carbon Footprint", "Transportation", "Food", "Energy", "Shopping", "General"]
QuizDifficulty = Literal["Easy", "Medium", "Hard"]


class QuestionBase(BaseModel):
    """Champs d'une question.

    Attributes:
        question (str): Énoncé (10–500).
        options (list[str]): 2 à 6 propositions.
        correct_answer (int): Index de la bonne réponse (0–5, < nb d'options).
        explanation (str | None): Explication affichée après correction.
        points (int): Points de la question (1–50, défaut 10).
        category (QuizCategory): Thème de la question.
    """

    question: str = Field(min_length=10, max_length=500)
    options: list[str] = Field(min_length=2, max_length=6)
    correct_answer: int = Field(ge=0, le=5)
    explanation: str | None = Field(default=None, max_length=1000)
    points: int = Field(default=10, ge=1, le=50)
    category: QuizCategory = "General"

    @model_validator(mode="after")
    def _check_answer_index(self) -> "QuestionBase":
        if self.correct_answer >= len(self.options):
            raise ValueError("Correct answer index must be less than the number of options")
        if any(not option.strip() for option in self.options):
            raise ValueError("Options cannot be empty")
        return self


class Question(QuestionBase):
    """Question embarquée avec son propre identifiant."""

    id: PyObjectId = Field(default_factory=ObjectId, alias="_id")

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)


class Quiz(MongoBaseModel):
    """Document Mongo « Quiz ».

    Description:
        `total_questions` et `total_points` sont toujours recalculés depuis la liste
        des questions (à la validation, donc avant chaque sauvegarde).

    Attributes:
        title (str): Titre.
        description (str): Description.
        category (QuizCategory): Thème.
        difficulty (QuizDifficulty): Difficulté.
        questions (list[Question]): 1 à 50 questions.
        total_questions (int): Nombre de questions.
        total_points (int): Somme des points de toutes les questions.
        estimated_time (int): Durée estimée (minutes).
        is_active (bool): Quiz proposé aux utilisateurs.
        tags (list[str]): Mots-clés.
        created_by (PyObjectId): Auteur (admin).
    """

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    category: QuizCategory
    difficulty: QuizDifficulty = "Medium"
    questions: list[Question] = Field(min_length=1, max_length=50)
    total_questions: int = 0
    total_points: int = 0
    estimated_time: int = Field(default=5, ge=1, le=120)
    is_active: bool = True
    tags: list[str] = Field(default_factory=list)
    created_by: PyObjectId

    created_at: dt.datetime = Field(default_factory=lambda: utcnow())
    updated_at: dt.datetime | None = None

    @model_validator(mode="after")
    def _recompute_totals(self) -> "Quiz":
        self.total_questions = len(self.questions)
        self.total_points = sum(q.points for q in self.questions)
        return self

    def question_map(self) -> dict[str, Question]:
        """Index des questions par identifiant (str)."""
        return {str(q.id): q for q in self.questions}


# Input/Output DTOs


class QuizCreate(BaseModel):
    """Payload de création (admin)."""

    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=500)
    category: QuizCategory
    difficulty: QuizDifficulty = "Medium"
    questions: list[QuestionBase] = Field(min_length=1, max_length=50)
    estimated_time: int = Field(default=5, ge=1, le=120)
    is_active: bool = True
    tags: list[str] = Field(default_factory=list, max_length=10)


class QuizUpdate(BaseModel):
    """Payload de mise à jour partielle (admin)."""

    title: str | None = Field(default=None, min_length=3, max_length=100)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    category: QuizCategory | None = None
    difficulty: QuizDifficulty | None = None
    questions: list[QuestionBase] | None = Field(default=None, min_length=1, max_length=50)
    estimated_time: int | None = Field(default=None, ge=1, le=120)
    is_active: bool | None = None
    tags: list[str] | None = Field(default=None, max_length=10)


class QuestionForTaking(BaseModel):
    """Question sans la bonne réponse ni l'explication."""

    id: PyObjectId
    question: str
    options: list[str]
    points: int
    category: QuizCategory


class QuizSummary(BaseModel):
    """Quiz sans ses questions (listes)."""

    id: PyObjectId = Field(validation_alias=AliasChoices("_id", "id"))
    title: str
    description: str
    category: QuizCategory
    difficulty: QuizDifficulty
    total_questions: int
    total_points: int
    estimated_time: int
    is_active: bool
    tags: list[str] = Field(default_factory=list)


class QuizForTaking(QuizSummary):
    """Quiz prêt à être passé (réponses masquées)."""

    questions: list[QuestionForTaking]


class QuizOut(QuizSummary):
    """Quiz complet (admin), réponses incluses."""

    questions: list[Question]
    created_by: PyObjectId
