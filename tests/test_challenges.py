"""Tests for challenge lifecycle, participation, progress batches and leaderboard."""

import datetime as dt

import pytest
from bson import ObjectId

from app.core.errors import ConflictError, InvalidInputError, NotFoundError
from app.models.challenge import Challenge, ChallengeCreate, ChallengeUpdate, derive_challenge_status
from app.services.challenges.challenge_progress_service import ChallengeProgressService
from app.services.challenges.challenge_service import ChallengeService
from app.services.challenges.leaderboard import LeaderboardService, rank_participants

UTC = dt.timezone.utc


def challenge_payload(now, **overrides):
    data = {
        "title": "  Car-free week  ",
        "description": "Leave the car at home for a whole week.",
        "category": "Transportation",
        "start_date": now - dt.timedelta(days=2),
        "end_date": now + dt.timedelta(days=5),
        "target_emission": 70,
        "difficulty": "Hard",
    }
    data.update(overrides)
    return ChallengeCreate(**data)


def seed_challenge(db, now, **overrides):
    doc = {
        "_id": ObjectId(),
        "title": "Meat-free month",
        "description": "No meat for the whole challenge window.",
        "category": "Food",
        "start_date": now - dt.timedelta(days=3),
        "end_date": now + dt.timedelta(days=4),
        "target_emission": 70.0,
        "difficulty": "Medium",
        "status": "active",
        "created_by": ObjectId(),
        "total_participants": 0,
        "total_emission_saved": 0.0,
    }
    doc.update(overrides)
    db.challenges.seed(doc)
    return doc


class TestChallengeStatus:
    def test_status_follows_clock(self, now):
        start, end = now - dt.timedelta(days=1), now + dt.timedelta(days=1)
        assert derive_challenge_status(start, end, "upcoming", now) == "active"
        assert derive_challenge_status(start, end, "active", start - dt.timedelta(seconds=1)) == "upcoming"
        assert derive_challenge_status(start, end, "active", end) == "active"
        assert derive_challenge_status(start, end, "active", end + dt.timedelta(seconds=1)) == "completed"
        assert derive_challenge_status(start, end, "cancelled", now) == "cancelled"

    def test_end_must_follow_start(self, now):
        with pytest.raises(ValueError):
            Challenge(
                title="Bad dates",
                description="End date before the start date.",
                category="General",
                start_date=now,
                end_date=now,
                target_emission=10,
                created_by=ObjectId(),
            )

    def test_derived_fields(self, now):
        challenge = Challenge(
            title="Short one",
            description="A challenge lasting two and a half days.",
            category="Energy",
            start_date=now - dt.timedelta(days=1),
            end_date=now + dt.timedelta(days=1, hours=12),
            target_emission=50,
            total_emission_saved=20,
            created_by=ObjectId(),
        ).refresh_status(now)
        assert challenge.status == "active"
        assert challenge.duration == 3
        assert challenge.days_remaining(now) == 2
        assert challenge.progress_percentage == 40

    def test_progress_percentage_capped_and_target_required(self, now):
        base = {
            "title": "Tiny goal",
            "description": "A challenge whose goal is quickly exceeded.",
            "category": "Food",
            "start_date": now - dt.timedelta(days=1),
            "end_date": now + dt.timedelta(days=1),
            "created_by": ObjectId(),
        }
        assert Challenge(**base, target_emission=5, total_emission_saved=50).progress_percentage == 100
        with pytest.raises(ValueError):
            Challenge(**base, target_emission=0)


class TestChallengeService:
    @pytest.mark.asyncio
    async def test_create_defaults(self, db, admin_doc, now):
        challenge = await ChallengeService(db).create_challenge(challenge_payload(now), admin_doc["_id"], now=now)
        assert challenge.title == "Car-free week"
        assert challenge.status == "active"
        assert challenge.rewards.trees == 5
        stored = await db.challenges.find_one({"_id": challenge.id})
        assert stored["status"] == "active"

    @pytest.mark.asyncio
    async def test_duplicate_title_rejected(self, db, admin_doc, now):
        service = ChallengeService(db)
        await service.create_challenge(challenge_payload(now), admin_doc["_id"], now=now)
        with pytest.raises(ConflictError):
            await service.create_challenge(challenge_payload(now, title="Car-free week"), admin_doc["_id"], now=now)

    @pytest.mark.asyncio
    async def test_title_reusable_once_finished(self, db, admin_doc, now):
        seed_challenge(
            db, now, title="Car-free week", status="completed",
            start_date=now - dt.timedelta(days=20), end_date=now - dt.timedelta(days=10),
        )
        challenge = await ChallengeService(db).create_challenge(challenge_payload(now), admin_doc["_id"], now=now)
        assert challenge.id is not None

    @pytest.mark.asyncio
    async def test_update_and_cancel(self, db, admin_doc, now):
        service = ChallengeService(db)
        challenge = await service.create_challenge(challenge_payload(now), admin_doc["_id"], now=now)

        updated = await service.update_challenge(challenge.id, ChallengeUpdate(target_emission=120), now=now)
        assert updated.target_emission == 120
        assert updated.status == "active"

        cancelled = await service.update_challenge(challenge.id, ChallengeUpdate(status="cancelled"), now=now)
        assert cancelled.status == "cancelled"
        assert (await service.get_challenge(challenge.id, now)).status == "cancelled"

    @pytest.mark.asyncio
    async def test_update_with_bad_dates(self, db, admin_doc, now):
        service = ChallengeService(db)
        challenge = await service.create_challenge(challenge_payload(now), admin_doc["_id"], now=now)
        with pytest.raises(InvalidInputError):
            await service.update_challenge(
                challenge.id, ChallengeUpdate(end_date=now - dt.timedelta(days=10)), now=now
            )

    @pytest.mark.asyncio
    async def test_join_rules(self, db, user_factory, now):
        challenge = seed_challenge(db, now, max_participants=1)
        service = ChallengeService(db)
        alice, bob = user_factory(), user_factory(name="Bob")

        participant = await service.join_challenge(challenge["_id"], alice["_id"], now=now)
        assert participant.status == "active"
        assert participant.baseline_emission is None
        assert (await db.challenges.find_one({"_id": challenge["_id"]}))["total_participants"] == 1

        with pytest.raises(ConflictError):
            await service.join_challenge(challenge["_id"], alice["_id"], now=now)
        with pytest.raises(ConflictError, match="full"):
            await service.join_challenge(challenge["_id"], bob["_id"], now=now)

    @pytest.mark.asyncio
    async def test_cannot_join_finished(self, db, user_doc, now):
        challenge = seed_challenge(
            db, now, start_date=now - dt.timedelta(days=9), end_date=now - dt.timedelta(days=1)
        )
        with pytest.raises(ConflictError, match="completed or cancelled"):
            await ChallengeService(db).join_challenge(challenge["_id"], user_doc["_id"], now=now)

    @pytest.mark.asyncio
    async def test_delete_cascades(self, db, user_doc, now):
        challenge = seed_challenge(db, now)
        service = ChallengeService(db)
        await service.join_challenge(challenge["_id"], user_doc["_id"], now=now)

        assert await service.delete_challenge(challenge["_id"]) == 1
        assert await db.challenge_participants.count_documents({}) == 0
        with pytest.raises(NotFoundError):
            await service.delete_challenge(challenge["_id"])

    @pytest.mark.asyncio
    async def test_lists(self, db, now):
        active = seed_challenge(db, now)
        seed_challenge(db, now, title="Later", start_date=now + dt.timedelta(days=3), end_date=now + dt.timedelta(days=9))
        seed_challenge(db, now, title="Called off", status="cancelled")
        service = ChallengeService(db)

        assert [c.id for c in await service.list_active(now)] == [active["_id"]]
        assert [c.title for c in await service.list_upcoming(5, now)] == ["Later"]


class TestChallengeProgress:
    @pytest.mark.asyncio
    async def test_recompute_participant(self, db, user_doc, now):
        challenge_doc = seed_challenge(db, now)
        joined = now - dt.timedelta(days=1, hours=12)
        participant_id = db.challenge_participants.seed(
            {"user_id": user_doc["_id"], "challenge_id": challenge_doc["_id"], "joined_at": joined,
             "status": "active", "streak_days": 0}
        )
        # History before joining: 10 kg per activity on average
        for day in range(5, 10):
            db.activities.seed(
                {"user_id": user_doc["_id"], "date": now - dt.timedelta(days=day), "emission": 10.0, "category": "Food"}
            )
        # During the challenge window
        db.activities.seed(
            {"user_id": user_doc["_id"], "date": now - dt.timedelta(days=1), "emission": 20.0, "category": "Food"}
        )

        report = await ChallengeProgressService(db).update_challenge_progress(challenge_doc["_id"], now=now)
        assert report.updated == 1
        assert report.failed == 0

        stored = await db.challenge_participants.find_one({"_id": participant_id})
        # baseline = 10 kg average * 7 days; only the 20 kg activity falls inside the window
        assert stored["baseline_emission"] == pytest.approx(70.0)
        assert stored["emission_saved"] >= 0
        assert stored["points"] == int(stored["emission_saved"] // 10)
        assert stored["streak_days"] == 1
        assert report.total_emission_saved == pytest.approx(stored["emission_saved"])

    @pytest.mark.asyncio
    async def test_baseline_computed_once(self, db, user_doc, now):
        challenge_doc = seed_challenge(db, now)
        participant_id = db.challenge_participants.seed(
            {"user_id": user_doc["_id"], "challenge_id": challenge_doc["_id"],
             "joined_at": now - dt.timedelta(days=1), "status": "active", "baseline_emission": 0.0}
        )
        db.activities.seed(
            {"user_id": user_doc["_id"], "date": now - dt.timedelta(days=20), "emission": 50.0, "category": "Food"}
        )
        await ChallengeProgressService(db).update_challenge_progress(challenge_doc["_id"], now=now)
        stored = await db.challenge_participants.find_one({"_id": participant_id})
        assert stored["baseline_emission"] == 0.0
        assert stored["emission_saved"] == 0.0
        assert stored["progress"] == 0.0

    @pytest.mark.asyncio
    async def test_failure_isolated(self, db, user_factory, now):
        challenge_doc = seed_challenge(db, now)
        good, bad = user_factory(), user_factory()
        db.challenge_participants.seed(
            {"user_id": good["_id"], "challenge_id": challenge_doc["_id"], "joined_at": now - dt.timedelta(days=1),
             "status": "active"},
            # Corrupt document: negative counter fails validation
            {"user_id": bad["_id"], "challenge_id": challenge_doc["_id"], "joined_at": now - dt.timedelta(days=1),
             "status": "active", "points": -5},
        )
        report = await ChallengeProgressService(db).update_challenge_progress(challenge_doc["_id"], now=now)
        assert report.total_participants == 2
        assert report.updated == 1
        assert report.failed == 1
        failed = next(r for r in report.results if not r.ok)
        assert failed.user_id == bad["_id"]
        assert failed.error

    @pytest.mark.asyncio
    async def test_participant_without_user_id_is_reported(self, db, user_factory, now):
        challenge_doc = seed_challenge(db, now)
        good = user_factory()
        db.challenge_participants.seed(
            {"user_id": good["_id"], "challenge_id": challenge_doc["_id"], "joined_at": now - dt.timedelta(days=1),
             "status": "active"},
            {"challenge_id": challenge_doc["_id"], "joined_at": now - dt.timedelta(days=1), "status": "active"},
        )
        report = await ChallengeProgressService(db).update_challenge_progress(challenge_doc["_id"], now=now)
        assert (report.updated, report.failed) == (1, 1)
        failed = next(r for r in report.results if not r.ok)
        assert failed.user_id is None
        assert failed.participant_id is not None

    @pytest.mark.asyncio
    async def test_inactive_challenge_rejected(self, db, now):
        challenge_doc = seed_challenge(
            db, now, start_date=now + dt.timedelta(days=1), end_date=now + dt.timedelta(days=8)
        )
        with pytest.raises(ConflictError):
            await ChallengeProgressService(db).update_challenge_progress(challenge_doc["_id"], now=now)
        with pytest.raises(NotFoundError):
            await ChallengeProgressService(db).update_challenge_progress(ObjectId(), now=now)


class TestLeaderboard:
    def test_rank_order(self):
        ranked = rank_participants(
            [
                {"user_id": "a", "emission_saved": 10, "points": 1},
                {"user_id": "b", "emission_saved": 30, "points": 3},
                {"user_id": "c", "emission_saved": 30, "points": 5},
            ]
        )
        assert [(p["user_id"], p["rank"]) for p in ranked] == [("c", 1), ("b", 2), ("a", 3)]

    def test_ties_share_rank(self):
        ranked = rank_participants(
            [
                {"user_id": "a", "emission_saved": 20, "points": 2},
                {"user_id": "b", "emission_saved": 20, "points": 2},
                {"user_id": "c", "emission_saved": 5, "points": 0},
            ]
        )
        assert [p["rank"] for p in ranked] == [1, 1, 3]

    @pytest.mark.asyncio
    async def test_leaderboard_and_user_rank(self, db, user_factory, now):
        challenge_doc = seed_challenge(db, now)
        users = [user_factory(name=name) for name in ("Ann", "Ben", "Cat")]
        for user, saved, points in zip(users, (15.0, 42.0, 42.0), (1, 4, 2)):
            db.challenge_participants.seed(
                {"user_id": user["_id"], "challenge_id": challenge_doc["_id"], "status": "active",
                 "emission_saved": saved, "points": points, "streak_days": 1, "progress": 10.0}
            )

        service = LeaderboardService(db)
        board = await service.get_challenge_leaderboard(challenge_doc["_id"], users[2]["_id"], limit=10)
        assert [(e.name, e.rank) for e in board["leaderboard"]] == [("Ben", 1), ("Cat", 2), ("Ann", 3)]
        assert board["user_rank"].rank == 2
        assert board["challenge"]["title"] == "Meat-free month"
        assert await service.get_user_rank(challenge_doc["_id"], ObjectId()) is None
