import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .defaults import BODY_TASKS, MIND_SUBJECTS, SKIN_TASKS, defaults_for

# India Standard Time, no DST
DAY_TZ = timezone(timedelta(hours=5, minutes=30), "IST")

DAY_KEY_RE = re.compile(r"\d{4}-\d{2}-\d{2}$")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def resolve_day_key(instant: datetime) -> str:
    # Naive datetimes are UTC, never the host's local time
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(DAY_TZ).date().isoformat()


def today_key(clock: Optional[Callable[[], datetime]] = None) -> str:
    return resolve_day_key((clock or now_utc)())


def _unchecked(item: Any) -> Any:
    if not isinstance(item, dict):
        return item
    return {**item, "completed": False}


def _collection(items: Any, category: str) -> List[Any]:
    # anything that is not a non-empty list is reseeded
    if isinstance(items, list) and items:
        return items
    return defaults_for(category)


def _reset_checklist(items: Any, category: str) -> List[Any]:
    source = _collection(items, category)
    return [_unchecked(t) for t in source]


def _reset_subject(subject: Any) -> Any:
    if not isinstance(subject, dict):
        return subject
    units = subject.get("units")
    if not isinstance(units, list):
        units = []
    return {**subject, "units": [_unchecked(u) for u in units]}


def reconcile(state: Dict[str, Any], day_key: str) -> Dict[str, Any]:
    """Apply the daily reset to ``state`` if its watermark is older than ``day_key``.

    Returns ``state`` itself when it was already reset today (or its watermark
    is ahead of ``day_key``). Otherwise returns a new record with every
    checklist ``completed`` flag cleared, empty checklists seeded from the
    templates, and ``dayKey`` advanced. ``state`` is never mutated.
    """
    stored = state.get("dayKey") or ""
    if stored == day_key:
        return state
    # YYYY-MM-DD sorts chronologically; a watermark ahead of today stays put
    if isinstance(stored, str) and DAY_KEY_RE.match(stored) and stored > day_key:
        return state

    subjects = _collection(state.get(MIND_SUBJECTS), MIND_SUBJECTS)
    return {
        **state,
        BODY_TASKS: _reset_checklist(state.get(BODY_TASKS), BODY_TASKS),
        SKIN_TASKS: _reset_checklist(state.get(SKIN_TASKS), SKIN_TASKS),
        MIND_SUBJECTS: [_reset_subject(s) for s in subjects],
        "dayKey": day_key,
    }
