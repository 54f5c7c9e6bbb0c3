# services/activity_log_service.py
from __future__ import annotations
import time
from typing import Any, Optional

from enums.activity_type import ActivityType
from models.activity_log import ActivityLogEntry
from repositories.activity_log_repository import ActivityLogRepository
from utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

_ERROR_TYPES = {
    ActivityType.TRADE_EXECUTION_FAILED,
    ActivityType.TRADING_ERROR,
    ActivityType.TRADING_CYCLE_ERROR,
    ActivityType.JOB_ERROR,
}


class ActivityLogger:
    """
    Audit trail writer. Every meaningful event of an iteration goes through
    here; the write is synchronous and storage errors propagate so that a
    lost audit entry never goes unnoticed.
    """

    def __init__(self, repo: ActivityLogRepository) -> None:
        self.repo = repo

    def log(
        self,
        session_id: int,
        activity_type: ActivityType,
        details: Optional[dict[str, Any]] = None,
        confidence: Optional[float] = None,
        manual: bool = False,
    ) -> ActivityLogEntry:
        payload = dict(details or {})
        payload.setdefault("timestamp", int(time.time()))
        entry = ActivityLogEntry(
            session_id=session_id,
            activity_type=ActivityType(activity_type),
            details=payload,
            confidence=confidence,
            is_manual_intervention=manual,
        )
        saved = self.repo.append(entry)

        msg = f"[session {session_id}] {entry.activity_type.value} {payload}"
        if entry.activity_type in _ERROR_TYPES:
            logger.error(msg)
        else:
            logger.info(msg)
        return saved
