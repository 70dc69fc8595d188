# backend/app/api/deps.py
# Dépendances FastAPI : services construits sur la base injectée (`get_db`).

from typing import Annotated

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.db.mongodb import get_db
from app.services.activities import ActivityService
from app.services.challenges.challenge_progress_service import ChallengeProgressService
from app.services.challenges.challenge_service import ChallengeService
from app.services.challenges.leaderboard import LeaderboardService
from app.services.dashboard import DashboardService
from app.services.emissions.emission_calculator import EmissionCalculator, get_emission_calculator
from app.services.onboarding import OnboardingService
from app.services.quizzes.quiz_attempt_service import QuizAttemptService
from app.services.quizzes.quiz_service import QuizService
from app.services.trees import TreeRewardService

Db = Annotated[AsyncIOMotorDatabase, Depends(get_db)]
Calculator = Annotated[EmissionCalculator, Depends(get_emission_calculator)]


def get_activity_service(db: Db, calculator: Calculator) -> ActivityService:
    return ActivityService(db, calculator)


def get_dashboard_service(db: Db, calculator: Calculator) -> DashboardService:
    return DashboardService(db, ActivityService(db, calculator))


def get_tree_service(db: Db) -> TreeRewardService:
    return TreeRewardService(db)


def get_challenge_service(db: Db) -> ChallengeService:
    return ChallengeService(db)


def get_progress_service(db: Db) -> ChallengeProgressService:
    return ChallengeProgressService(db)


def get_leaderboard_service(db: Db) -> LeaderboardService:
    return LeaderboardService(db)


def get_quiz_service(db: Db) -> QuizService:
    return QuizService(db)


def get_attempt_service(db: Db) -> QuizAttemptService:
    return QuizAttemptService(db)


def get_onboarding_service(db: Db) -> OnboardingService:
    return OnboardingService(db)


# Type aliases pour faciliter l'usage
Activities = Annotated[ActivityService, Depends(get_activity_service)]
Dashboard = Annotated[DashboardService, Depends(get_dashboard_service)]
Trees = Annotated[TreeRewardService, Depends(get_tree_service)]
Challenges = Annotated[ChallengeService, Depends(get_challenge_service)]
Progress = Annotated[ChallengeProgressService, Depends(get_progress_service)]
Leaderboard = Annotated[LeaderboardService, Depends(get_leaderboard_service)]
Quizzes = Annotated[QuizService, Depends(get_quiz_service)]
Attempts = Annotated[QuizAttemptService, Depends(get_attempt_service)]
Onboarding = Annotated[OnboardingService, Depends(get_onboarding_service)]
