# backend/app/api/dto/quizzes.py
# DTOs des routes quiz (listing avec délai de réessai, passage, résultats, statistiques).

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel

from app.models.quiz import QuizForTaking, QuizSummary
from app.models.quiz_attempt import AnswerDetail, QuizResult


class CooldownInfo(BaseModel):
    recently_completed: int
    next_available_date: dt.datetime | None = None
    cooldown_days: int


class AvailableQuizzesOut(BaseModel):
    quizzes: list[QuizSummary]
    cooldown_info: CooldownInfo | None = None


class PreviousAttempt(BaseModel):
    score: int
    percentage: int
    grade: str | None = None
    completed_at: dt.datetime | None = None


class QuizTakingOut(BaseModel):
    quiz: QuizForTaking
    has_attempted: bool
    previous_attempt: PreviousAttempt | None = None


class QuizHeader(BaseModel):
    title: str
    description: str
    category: str
    difficulty: str


class QuizResultsOut(BaseModel):
    quiz: QuizHeader
    results: QuizResult
    answers: list[AnswerDetail]


class UserQuizStatistics(BaseModel):
    total_attempts: int = 0
    average_score: float = 0
    average_percentage: float = 0
    highest_score: int = 0
    total_time_spent: int = 0
    passed_count: int = 0


class RecentAttempt(BaseModel):
    attempt_id: str
    quiz_id: str
    score: int
    percentage: int
    grade: str | None = None
    correct_answers: int
    total_questions: int
    completed_at: dt.datetime | None = None


class UserQuizStatsOut(BaseModel):
    statistics: UserQuizStatistics
    recent_attempts: list[RecentAttempt]
