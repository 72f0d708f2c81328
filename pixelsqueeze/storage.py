import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from pixelsqueeze.config import MAX_SESSIONS
from pixelsqueeze.job_schema import ImageJob

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# IN-MEMORY JOB STORE
# One current job per browser session. Nothing survives a process restart.
# ------------------------------------------------------------------------------

@dataclass
class _Session:
    generation: int = 0
    job: Optional[ImageJob] = None


_sessions: "OrderedDict[str, _Session]" = OrderedDict()
_lock = threading.Lock()


def _touch(session_id: str) -> _Session:
    """Returns the session record, creating it and evicting the oldest if needed."""
    session = _sessions.get(session_id)
    if session is None:
        session = _Session()
        _sessions[session_id] = session
        while len(_sessions) > MAX_SESSIONS:
            evicted, _ = _sessions.popitem(last=False)
            logger.info("Evicted session %s", evicted)
    else:
        _sessions.move_to_end(session_id)
    return session


# ------------------------------------------------------------------------------
# PUBLIC API FUNCTIONS
# The API and the worker call THESE.
# ------------------------------------------------------------------------------

def create_job(job: ImageJob) -> ImageJob:
    """
    Makes ``job`` the current job of its session.
    Bumps the session generation; whatever was current before is dropped.
    """
    with _lock:
        session = _touch(job.session_id)
        session.generation += 1
        job = job.model_copy(update={"generation": session.generation})
        session.job = job
    logger.info("Job %s started (session %s, generation %d)", job.id, job.session_id, job.generation)
    return job


def update_job(job: ImageJob) -> bool:
    """
    Stores the new state of ``job`` if it is still the session's current job.
    Returns False, and stores nothing, for a superseded job.
    """
    with _lock:
        session = _sessions.get(job.session_id)
        if session is None or session.generation != job.generation:
            logger.info("Ignoring stale result for job %s", job.id)
            return False
        session.job = job
        return True


def get_job(job_id: str) -> Optional[ImageJob]:
    """Finds a job that is still current in some session."""
    with _lock:
        return next(
            (s.job for s in _sessions.values() if s.job is not None and s.job.id == job_id),
            None,
        )


def get_current_job(session_id: str) -> Optional[ImageJob]:
    with _lock:
        session = _sessions.get(session_id)
        return session.job if session else None


def reset() -> None:
    with _lock:
        _sessions.clear()
