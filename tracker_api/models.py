from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .defaults import default_reminder_settings


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserState(CamelModel):
    user_id: str

    # Everything below except the watermark is stored and returned as the
    # client sent it; only the reset looks inside the checklists.
    planner_tasks: Any = []

    body_tasks: Any = []
    skin_tasks: Any = []
    skin_sessions: Any = 0
    mind_subjects: Any = []

    reminder_settings: Any = Field(default_factory=default_reminder_settings)
    mind_reminder_times: Any = {}
    mind_reminder_enabled: Any = {}
    mind_last_reminder_day: Any = {}

    weight_input: Any = ""
    muscle_progress: Any = {}

    day_key: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StateUpdate(CamelModel):
    # userId, dayKey and the timestamps are server-owned
    planner_tasks: Optional[Any] = None
    body_tasks: Optional[Any] = None
    skin_tasks: Optional[Any] = None
    skin_sessions: Optional[Union[int, float]] = None
    mind_subjects: Optional[Any] = None

    reminder_settings: Optional[Any] = None
    mind_reminder_times: Optional[Any] = None
    mind_reminder_enabled: Optional[Any] = None
    mind_last_reminder_day: Optional[Any] = None

    weight_input: Optional[Any] = None
    muscle_progress: Optional[Any] = None

    def provided_fields(self) -> Dict[str, Any]:
        # null is treated the same as an omitted field
        return self.model_dump(by_alias=True, exclude_none=True)


UPDATABLE_FIELDS = frozenset(to_camel(name) for name in StateUpdate.model_fields)
