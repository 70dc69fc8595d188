# backend/app/db/seed_indexes.py
"""
Idempotent index seeding for CarbonTrack.

- Uses get_collection() (no direct client here).
- Matching by KEYS: if an index with same keys exists, keep it when options match.
- If options differ (unique), drop & recreate.
- Uniques back the "one participation per (user, challenge)" and
  "one attempt per (user, quiz)" rules under concurrent requests.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.operations import IndexModel

from app.core.logging_config import get_loggers
from app.db.mongodb import get_collection

KeySpec = List[Tuple[str, int]]


def _normalize_key_from_mongo(key_doc: Dict[str, Any]) -> KeySpec:
    """Mongo returns an OrderedDict-like mapping; convert to list of (field, direction)."""
    return [(k, int(v)) for k, v in key_doc.items()]


async def _find_existing_by_keys(coll, keys: KeySpec) -> Optional[Dict[str, Any]]:
    async for ix in coll.list_indexes():
        if "key" in ix and _normalize_key_from_mongo(ix["key"]) == keys:
            return ix
    return None


async def ensure_index(coll_name: str, keys: KeySpec, *, name: Optional[str] = None,
                       unique: Optional[bool] = None) -> None:
    coll = await get_collection(coll_name)
    existing = await _find_existing_by_keys(coll, keys)
    if existing and bool(existing.get("unique", False)) == bool(unique):
        return
    if existing:
        await coll.drop_index(existing["name"])
    opts: Dict[str, Any] = {}
    if name:
        opts["name"] = name
    if unique is not None:
        opts["unique"] = unique
    await coll.create_indexes([IndexModel(keys, **opts)])


async def ensure_indexes() -> None:
    # ---------- users ----------
    await ensure_index("users", [("email", ASCENDING)], name="uniq_email", unique=True)

    # ---------- activities ----------
    await ensure_index("activities", [("user_id", ASCENDING), ("date", DESCENDING)], name="ix_activities__user_date")
    await ensure_index("activities", [("user_id", ASCENDING), ("category", ASCENDING)])

    # ---------- challenges ----------
    await ensure_index("challenges", [("status", ASCENDING), ("start_date", ASCENDING)])
    await ensure_index("challenges", [("title", ASCENDING), ("status", ASCENDING), ("end_date", ASCENDING)],
                       name="ix_challenges__title_status_end")

    # ---------- challenge_participants ----------
    await ensure_index("challenge_participants", [("user_id", ASCENDING), ("challenge_id", ASCENDING)],
                       name="uniq_user_challenge_pair", unique=True)
    # Classement : économies puis points
    await ensure_index("challenge_participants",
                       [("challenge_id", ASCENDING), ("emission_saved", DESCENDING), ("points", DESCENDING)],
                       name="ix_participants__leaderboard")

    # ---------- quizzes ----------
    await ensure_index("quizzes", [("is_active", ASCENDING), ("created_at", DESCENDING)])

    # ---------- quiz_attempts ----------
    await ensure_index("quiz_attempts", [("user_id", ASCENDING), ("quiz_id", ASCENDING)],
                       name="uniq_user_quiz_attempt", unique=True)
    await ensure_index("quiz_attempts", [("user_id", ASCENDING), ("status", ASCENDING), ("completed_at", DESCENDING)])
    await ensure_index("quiz_attempts", [("quiz_id", ASCENDING), ("status", ASCENDING)])

    logger, _, _ = get_loggers()
    logger.info("MongoDB indexes ensured")
