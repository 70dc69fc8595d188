"""Shared fixtures: an in-memory stand-in for the Motor database used by the services."""

import copy
import datetime as dt
import os
import tempfile
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

# Settings are cached on first import: point logs to a temp dir and skip index seeding.
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="carbontrack-logs-"))
os.environ.setdefault("SEED_INDEXES_ON_STARTUP", "false")

_MISSING = object()


def _get(doc, path):
    current = doc
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _set(doc, path, value):
    parts = path.split(".")
    current = doc
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _equals(value, expected):
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(value, op, arg):
    if value is _MISSING or value is None:
        return False
    if op == "$gt":
        return value > arg
    if op == "$gte":
        return value >= arg
    if op == "$lt":
        return value < arg
    return value <= arg


def _apply_op(value, op, arg):
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op == "$in":
        return any(_equals(value, item) for item in arg)
    if op == "$nin":
        return not any(_equals(value, item) for item in arg)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(value, op, arg)
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    raise NotImplementedError(f"Unsupported query operator {op}")


def matches(doc, query):
    """Evaluate a (small) MongoDB filter against a document."""
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
            continue
        if key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
            continue
        value = _get(doc, key)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_apply_op(value, op, arg) for op, arg in condition.items()):
                return False
        elif not _equals(value, condition):
            return False
    return True


def _project(doc, projection):
    if not projection:
        return copy.deepcopy(doc)
    out = {"_id": doc["_id"]} if projection.get("_id", 1) and "_id" in doc else {}
    for key, include in projection.items():
        if key != "_id" and include and key in doc:
            out[key] = copy.deepcopy(doc[key])
    return out


def _sort_docs(docs, keys):
    # Stable multi-key sort: apply the least significant key first.
    for field, direction in reversed(keys):
        present = [d for d in docs if _get(d, field) not in (_MISSING, None)]
        absent = [d for d in docs if _get(d, field) in (_MISSING, None)]
        present.sort(key=lambda d: _get(d, field), reverse=direction == -1)
        docs[:] = present + absent if direction == -1 else absent + present
    return docs


class FakeCursor:
    def __init__(self, docs, projection=None):
        self._docs = list(docs)
        self._projection = projection
        self._limit = 0

    def sort(self, key, direction=None):
        keys = key if isinstance(key, list) else [(key, 1 if direction is None else direction)]
        _sort_docs(self._docs, keys)
        return self

    def limit(self, n):
        self._limit = n
        return self

    async def to_list(self, length=None):
        docs = self._docs[: self._limit] if self._limit else self._docs
        if length is not None:
            docs = docs[:length]
        return [_project(d, self._projection) for d in docs]

    def __aiter__(self):
        self._iter = iter(self._docs[: self._limit] if self._limit else self._docs)
        return self

    async def __anext__(self):
        try:
            return _project(next(self._iter), self._projection)
        except StopIteration:
            raise StopAsyncIteration


def _eval(expr, doc):
    if isinstance(expr, str) and expr.startswith("$"):
        value = _get(doc, expr[1:])
        return None if value is _MISSING else value
    return expr


def _group(docs, grouping):
    buckets = {}
    order = []
    for doc in docs:
        key = _eval(grouping["_id"], doc)
        hashable = str(key)
        if hashable not in buckets:
            buckets[hashable] = (key, [])
            order.append(hashable)
        buckets[hashable][1].append(doc)

    rows = []
    for hashable in order:
        key, members = buckets[hashable]
        row = {"_id": key}
        for field, accumulator in grouping.items():
            if field == "_id":
                continue
            (op, expr), = accumulator.items()
            values = [v for v in (_eval(expr, d) for d in members) if v is not None]
            if op == "$sum":
                row[field] = sum(values)
            elif op == "$avg":
                row[field] = sum(values) / len(values) if values else None
            elif op == "$max":
                row[field] = max(values) if values else None
            elif op == "$min":
                row[field] = min(values) if values else None
            else:
                raise NotImplementedError(f"Unsupported accumulator {op}")
        rows.append(row)
    return rows


class FakeCollection:
    """Async in-memory collection mirroring the Motor calls used by the services."""

    def __init__(self, name, unique_keys=()):
        self.name = name
        self.docs = []
        self.unique_keys = list(unique_keys)

    def seed(self, *docs):
        """Insert documents synchronously (test setup); returns their ids."""
        ids = []
        for doc in docs:
            stored = copy.deepcopy(doc)
            stored.setdefault("_id", ObjectId())
            self.docs.append(stored)
            ids.append(stored["_id"])
        return ids[0] if len(ids) == 1 else ids

    def _check_unique(self, doc):
        for fields in self.unique_keys:
            for existing in self.docs:
                if all(_get(existing, f) == _get(doc, f) for f in fields):
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}")

    async def insert_one(self, doc):
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_unique(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"], acknowledged=True)

    async def find_one(self, query=None, projection=None):
        for doc in self.docs:
            if matches(doc, query):
                return _project(doc, projection)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor((d for d in self.docs if matches(d, query)), projection)

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if matches(doc, query):
                before = copy.deepcopy(doc)
                self._apply_update(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=int(before != doc), upserted_id=None)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def delete_one(self, query):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        kept = [d for d in self.docs if not matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    async def count_documents(self, query):
        return sum(1 for d in self.docs if matches(d, query))

    async def distinct(self, key, query=None):
        values = []
        for doc in self.docs:
            value = _get(doc, key)
            if matches(doc, query) and value is not _MISSING and value not in values:
                values.append(value)
        return values

    def aggregate(self, pipeline):
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            (op, arg), = stage.items()
            if op == "$match":
                docs = [d for d in docs if matches(d, arg)]
            elif op == "$group":
                docs = _group(docs, arg)
            elif op == "$sort":
                docs = _sort_docs(docs, list(arg.items()))
            elif op == "$limit":
                docs = docs[:arg]
            else:
                raise NotImplementedError(f"Unsupported stage {op}")
        return FakeCursor(docs)

    @staticmethod
    def _apply_update(doc, update):
        for op, fields in update.items():
            for path, value in fields.items():
                if op == "$set":
                    _set(doc, path, copy.deepcopy(value))
                elif op == "$inc":
                    current = _get(doc, path)
                    _set(doc, path, (0 if current is _MISSING else current) + value)
                elif op == "$addToSet":
                    items = doc.setdefault(path, [])
                    if value not in items:
                        items.append(copy.deepcopy(value))
                elif op == "$push":
                    doc.setdefault(path, []).append(copy.deepcopy(value))
                elif op == "$unset":
                    doc.pop(path, None)
                else:
                    raise NotImplementedError(f"Unsupported update operator {op}")


class FakeDB:
    """Attribute/item access to lazily created collections, with the app's unique indexes."""

    UNIQUE_KEYS = {
        "challenge_participants": [("user_id", "challenge_id")],
        "quiz_attempts": [("user_id", "quiz_id")],
        "users": [("email",)],
    }

    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(name, self.UNIQUE_KEYS.get(name, ()))
        return self._collections[name]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]


@pytest.fixture
def db():
    return FakeDB()


@pytest.fixture
def now():
    """Fixed reference instant (UTC)."""
    return dt.datetime(2025, 6, 15, 12, 0, tzinfo=dt.timezone.utc)


def make_user_doc(**overrides):
    doc = {
        "_id": ObjectId(),
        "name": "Alice",
        "email": f"user-{ObjectId()}@example.com",
        "role": "user",
        "target_emission": 100.0,
        "total_emission": 0.0,
        "total_trees": 0,
        "awarded_tree_periods": [],
        "onboarding_completed": False,
        "onboarding_steps": [],
        "created_at": dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc),
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def user_doc(db):
    doc = make_user_doc()
    db.users.seed(doc)
    return doc


@pytest.fixture
def admin_doc(db):
    doc = make_user_doc(name="Admin", role="admin")
    db.users.seed(doc)
    return doc


@pytest.fixture
def user_factory(db):
    """Seed users with overridable fields."""

    def _make(**overrides):
        doc = make_user_doc(**overrides)
        db.users.seed(doc)
        return doc

    return _make
