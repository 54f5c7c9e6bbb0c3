# orchestrators/trading_scheduler.py
from __future__ import annotations
import os, threading
from typing import Dict, Optional

from enums.activity_type import ActivityType
from orchestrators.trading_orchestrator import TradingOrchestrator
from repositories.session_repository import SessionRepository
from services.activity_log_service import ActivityLogger
from utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

TRADING_INTERVAL_SEC = float(os.getenv("TRADING_INTERVAL_SEC", "300"))


class TradingScheduler:
    """
    Periodic trading jobs, one daemon thread per active session.

    Each job runs an iteration right away and then every ``interval``
    seconds. A job ends on its own once its session is gone or no longer
    active; ``stop()`` ends all of them.
    """

    def __init__(self, orchestrator: TradingOrchestrator, sessions: SessionRepository,
                 activity: ActivityLogger, interval: float = TRADING_INTERVAL_SEC) -> None:
        self.orchestrator = orchestrator
        self.sessions = sessions
        self.activity = activity
        self.interval = float(interval)

        self._stop_evt = threading.Event()
        self._jobs: Dict[int, threading.Thread] = {}
        self._jobs_lock = threading.Lock()

    # ---------- control ----------
    def start(self, session_id: int) -> bool:
        """Start the job of one session; False if it is already running."""
        with self._jobs_lock:
            job = self._jobs.get(session_id)
            if job and job.is_alive():
                return False
            self._stop_evt.clear()
            job = threading.Thread(target=self._run_loop, args=(session_id,),
                                   name=f"Trading-{session_id}", daemon=True)
            self._jobs[session_id] = job
            job.start()
        logger.info(f"[scheduler] job started for session {session_id} (every {self.interval:.0f}s)")
        return True

    def start_all_active(self) -> int:
        started = 0
        for session in self.sessions.list_active():
            if self.start(session.id):
                started += 1
        return started

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_evt.set()
        with self._jobs_lock:
            jobs = list(self._jobs.values())
        for job in jobs:
            job.join(timeout)
        logger.info("[scheduler] stopped.")

    def running(self) -> list[int]:
        with self._jobs_lock:
            return sorted(sid for sid, job in self._jobs.items() if job.is_alive())

    # ---------- job ----------
    def _is_active(self, session_id: int) -> bool:
        session = self.sessions.get_by_id(session_id)
        return bool(session and session.is_active)

    @log_function
    def _run_loop(self, session_id: int) -> None:
        while not self._stop_evt.is_set():
            try:
                if not self._is_active(session_id):
                    logger.info(f"[scheduler] session {session_id} inactive; stopping its job.")
                    break
                self.run_once(session_id)
            except Exception as e:
                logger.exception(f"[scheduler] job error for session {session_id}: {e}")
                self.activity.log(session_id, ActivityType.JOB_ERROR, {"error": str(e)})
            self._stop_evt.wait(self.interval)

        with self._jobs_lock:
            if self._jobs.get(session_id) is threading.current_thread():
                del self._jobs[session_id]

    def run_once(self, session_id: int) -> bool:
        ok = self.orchestrator.run_iteration(session_id)
        logger.debug(f"[scheduler] session {session_id} tick → {'ok' if ok else 'not completed'}")
        return ok
