from __future__ import annotations

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from enums.activity_type import ActivityType


class ActivityLogEntry(BaseModel):
    id: Optional[int] = None
    session_id: int
    activity_type: ActivityType
    details: Dict[str, Any] = Field(default_factory=dict)
    confidence: Optional[float] = None
    is_manual_intervention: bool = False
    created_at: int = Field(default_factory=lambda: int(time.time()))
