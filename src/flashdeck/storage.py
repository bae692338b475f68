import logging
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Dict, List, Optional, Tuple

import redis
from pydantic import TypeAdapter, ValidationError

from .config import settings
from .models import AnalyticsData, Session, StudyState

logger = logging.getLogger(__name__)

redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)

_session_list = TypeAdapter(List[Session])


def get_redis():
    return redis_client


# --- Repository Pattern: Analytics ---
class AnalyticsRepository(ABC):
    """Persists the session history and the current-session slot."""

    @abstractmethod
    def load(self) -> AnalyticsData:
        pass

    @abstractmethod
    def save(self, data: AnalyticsData) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryAnalyticsRepository(AnalyticsRepository):
    def __init__(self):
        self._data = AnalyticsData()

    def load(self) -> AnalyticsData:
        return self._data.model_copy(deep=True)

    def save(self, data: AnalyticsData) -> None:
        self._data = data.model_copy(deep=True)

    def clear(self) -> None:
        self._data = AnalyticsData()


class RedisAnalyticsRepository(AnalyticsRepository):
    """
    Stores the two slots as JSON blobs under flat keys.

    A blob that is missing or fails validation reads as empty, so a damaged
    history never blocks the dashboard. Concurrent writers are last-writer-wins.
    """

    def __init__(
        self,
        client,
        sessions_key: str = settings.SESSIONS_KEY,
        current_key: str = settings.CURRENT_SESSION_KEY,
    ):
        self.client = client
        self.sessions_key = sessions_key
        self.current_key = current_key

    def load(self) -> AnalyticsData:
        sessions: List[Session] = []
        current: Optional[Session] = None

        raw_sessions = self.client.get(self.sessions_key)
        if raw_sessions:
            try:
                sessions = _session_list.validate_json(raw_sessions)
            except ValidationError as e:
                logger.warning(f"Ignoring corrupt {self.sessions_key}: {e}")

        raw_current = self.client.get(self.current_key)
        if raw_current:
            try:
                current = Session.model_validate_json(raw_current)
            except ValidationError as e:
                logger.warning(f"Ignoring corrupt {self.current_key}: {e}")

        return AnalyticsData(sessions=sessions, current=current)

    def save(self, data: AnalyticsData) -> None:
        self.client.set(self.sessions_key, _session_list.dump_json(data.sessions))
        if data.current is None:
            self.client.delete(self.current_key)
        else:
            self.client.set(self.current_key, data.current.model_dump_json())

    def clear(self) -> None:
        self.client.delete(self.sessions_key, self.current_key)


class AnalyticsStore:
    """Append-only session log plus a pointer to the current session."""

    def __init__(self, repository: AnalyticsRepository):
        self.repository = repository

    def append(self, session: Session) -> None:
        data = self.repository.load()
        data.sessions.append(session)
        data.current = session
        self.repository.save(data)
        logger.info(
            f"Stored session {session.session_id} ({len(data.sessions)} in history)"
        )

    def clear_all(self) -> None:
        self.repository.clear()
        logger.info("Cleared all analytics data")

    def read_all(self) -> List[Session]:
        return self.repository.load().sessions

    def read_current(self) -> Optional[Session]:
        return self.repository.load().current


# --- Repository Pattern: per-browser study state ---
class StudyStateRepository(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[StudyState]:
        pass

    @abstractmethod
    def save(self, key: str, state: StudyState) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MemoryStudyStateRepository(StudyStateRepository):
    """Keeps states in process; entries idle past the timeout are evicted like Redis keys."""

    def __init__(
        self,
        timeout_minutes: int = settings.SESSION_TIMEOUT_MINUTES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.timeout_seconds = timeout_minutes * 60
        self.clock = clock
        self._states: Dict[str, Tuple[float, str]] = {}

    def _evict_expired(self) -> None:
        cutoff = self.clock() - self.timeout_seconds
        for key in [k for k, (saved_at, _) in self._states.items() if saved_at <= cutoff]:
            del self._states[key]

    def get(self, key: str) -> Optional[StudyState]:
        self._evict_expired()
        entry = self._states.get(key)
        return StudyState.model_validate_json(entry[1]) if entry else None

    def save(self, key: str, state: StudyState) -> None:
        self._evict_expired()
        self._states[key] = (self.clock(), state.model_dump_json())

    def delete(self, key: str) -> None:
        self._states.pop(key, None)


class RedisStudyStateRepository(StudyStateRepository):
    def __init__(self, client, timeout_minutes: int = settings.SESSION_TIMEOUT_MINUTES):
        self.client = client
        self.timeout = timedelta(minutes=timeout_minutes)

    def get(self, key: str) -> Optional[StudyState]:
        raw = self.client.get(key)
        if not raw:
            return None
        try:
            return StudyState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding corrupt study state {key}: {e}")
            self.client.delete(key)
            return None

    def save(self, key: str, state: StudyState) -> None:
        self.client.set(key, state.model_dump_json(), ex=self.timeout)

    def delete(self, key: str) -> None:
        self.client.delete(key)
