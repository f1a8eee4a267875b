"""Seed checklists and schema defaults for a user's state record."""

import copy
from typing import Any, Dict, List, Literal

Category = Literal["bodyTasks", "skinTasks", "mindSubjects"]

BODY_TASKS = "bodyTasks"
SKIN_TASKS = "skinTasks"
MIND_SUBJECTS = "mindSubjects"


def _items(*labels: str) -> List[Dict[str, Any]]:
    return [{"id": i, "label": label, "completed": False} for i, label in enumerate(labels, start=1)]


_TEMPLATES: Dict[str, List[Dict[str, Any]]] = {
    BODY_TASKS: _items(
        "Push ups",
        "Pull ups",
        "Crunches",
        "Crucifix",
        "Russian Twists",
        "Biceps",
        "Shoulders",
        "Triceps",
        "Forearms",
        "Calisthenics",
    ),
    SKIN_TASKS: _items(
        "Body Wash",
        "Face Wash",
        "Clean",
        "Face Serum",
        "Eye Blow Cleaning",
    ),
    MIND_SUBJECTS: [
        {
            "id": "dsa",
            "label": "DSA",
            "units": [{"id": f"dsa-u{n}", "label": f"U{n}", "completed": False} for n in range(1, 5)],
            "links": [],
        }
    ],
}


def defaults_for(category: Category) -> List[Dict[str, Any]]:
    # Callers own the result; the templates themselves are never handed out.
    return copy.deepcopy(_TEMPLATES[category])


def default_reminder_settings() -> Dict[str, Any]:
    return {"enabled": True, "skinTime": "21:00", "bodyTime": "19:00"}


def blank_state(user_id: str) -> Dict[str, Any]:
    """Schema defaults for every persisted field.

    Checklists start empty and ``dayKey`` unset, so the first reconciliation
    seeds them from the templates.
    """
    return {
        "userId": user_id,
        "plannerTasks": [],
        BODY_TASKS: [],
        SKIN_TASKS: [],
        "skinSessions": 0,
        MIND_SUBJECTS: [],
        "reminderSettings": default_reminder_settings(),
        "mindReminderTimes": {},
        "mindReminderEnabled": {},
        "mindLastReminderDay": {},
        "weightInput": "",
        "muscleProgress": {},
        "dayKey": "",
    }
