import asyncio
import logging
import uuid
import weakref
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from . import config
from .defaults import blank_state
from .models import UPDATABLE_FIELDS
from .reset import now_utc, reconcile, resolve_day_key

logger = logging.getLogger(__name__)

# Written once per insert, never by $set
INSERT_ONLY_FIELDS = ("_id", "createdAt")

LEGACY_DAY_KEY = "istDayKey"

# -----------------------------
# Connection
# -----------------------------

_client: Optional[AsyncIOMotorClient] = None
_collection = None
# asyncio locks belong to one event loop; serverless invocations and test
# clients may each run their own.
_init_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = weakref.WeakKeyDictionary()


def _init_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _init_locks.get(loop)
    if lock is None:
        lock = _init_locks[loop] = asyncio.Lock()
    return lock


async def get_collection():
    """Return the state collection, connecting on first use.

    The client is created once per process and reused by every request.
    Raises ``ConfigurationError`` if no connection string is configured.
    """
    global _client, _collection
    if _collection is not None:
        return _collection

    async with _init_lock():
        if _collection is None:
            client = AsyncIOMotorClient(config.mongo_uri())
            db_name = config.mongo_db_name()
            db = client[db_name] if db_name else client.get_default_database(default=config.DEFAULT_DB_NAME)
            collection = db[config.STATE_COLLECTION]
            try:
                await StateStore(collection).ensure_indexes()
            except PyMongoError:
                client.close()
                raise
            _client, _collection = client, collection
            logger.info("MongoDB connected (db=%s)", db.name)
    return _collection


def close_client() -> None:
    global _client, _collection
    if _client is not None:
        _client.close()
    _client = None
    _collection = None


def new_id() -> str:
    return str(uuid.uuid4())


# -----------------------------
# Gateway
# -----------------------------

class StateStore:
    """Per-user state records with the daily reset applied on every access."""

    def __init__(self, collection, clock: Optional[Callable[[], datetime]] = None):
        self._collection = collection
        self._clock = clock or now_utc

    def today_key(self) -> str:
        return resolve_day_key(self._clock())

    async def ensure_indexes(self) -> None:
        await self._collection.create_index("userId", unique=True)

    async def _find(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._collection.find_one({"userId": user_id}, {"_id": 0})

    async def get_or_create(self, user_id: str) -> Dict[str, Any]:
        doc = await self._find(user_id)
        if doc is None:
            ts = self._clock().isoformat()
            seeded = reconcile(blank_state(user_id), self.today_key())
            await self._collection.update_one(
                {"userId": user_id},
                {"$setOnInsert": {**seeded, "_id": new_id(), "createdAt": ts, "updatedAt": ts}},
                upsert=True,
            )
            doc = await self._find(user_id)
            logger.info("Created state for user=%s day=%s", user_id, seeded["dayKey"])
        return normalize(doc, user_id)

    async def fetch(self, user_id: str) -> Dict[str, Any]:
        state = await self.get_or_create(user_id)
        day_key = self.today_key()
        reset = reconcile(state, day_key)
        if reset is state:
            return state
        logger.info("Daily reset: user=%s %s -> %s", user_id, state.get("dayKey") or "-", day_key)
        return await self._save(reset)

    async def upsert(self, user_id: str, fields: Mapping[str, Any]) -> None:
        doc = await self._find(user_id)
        state = normalize(doc, user_id) if doc is not None else blank_state(user_id)

        # reset first so the watermark stays consistent with what is written
        state = reconcile(state, self.today_key())
        state.update({k: v for k, v in fields.items() if k in UPDATABLE_FIELDS})
        await self._save(state)

    async def _save(self, state: Dict[str, Any]) -> Dict[str, Any]:
        ts = self._clock().isoformat()
        to_set = {k: v for k, v in state.items() if k not in INSERT_ONLY_FIELDS}
        to_set["updatedAt"] = ts
        await self._collection.update_one(
            {"userId": state["userId"]},
            {"$set": to_set, "$setOnInsert": {"_id": new_id(), "createdAt": ts}},
            upsert=True,
        )
        return {**state, "updatedAt": ts, "createdAt": state.get("createdAt") or ts}


def normalize(doc: Mapping[str, Any], user_id: str) -> Dict[str, Any]:
    """Fill fields missing from a stored document with their schema defaults."""
    state = blank_state(user_id)
    state.update({k: v for k, v in doc.items() if v is not None})
    state.pop("_id", None)
    state.pop("__v", None)

    # Documents written by the old service: Date timestamps, istDayKey watermark
    for key in ("createdAt", "updatedAt"):
        if isinstance(state.get(key), datetime):
            state[key] = state[key].isoformat()
    legacy = state.pop(LEGACY_DAY_KEY, None)
    if not state.get("dayKey") and legacy:
        state["dayKey"] = legacy
    return state
