import logging
import math
import time
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from .config import settings
from .models import (
    Flashcard,
    PendingAdvance,
    Phase,
    QuestionRecord,
    Session,
    StudyState,
)
from .storage import AnalyticsStore

logger = logging.getLogger(__name__)

Listener = Callable[[str, StudyState], None]


class SessionError(Exception):
    """Raised for a transition that is not allowed in the current state."""


def now_ms() -> int:
    return int(time.time() * 1000)


def _timestamp(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000)


def finalize_session(session: Session, started_at_ms: int, ended_at_ms: int) -> Session:
    """Stamps the end time and duration and averages the answered response times."""
    session.end_time = _timestamp(ended_at_ms)
    session.total_duration_ms = ended_at_ms - started_at_ms

    answered = [q for q in session.questions if q.answered]
    if answered:
        total = sum(q.response_time_ms for q in answered)
        session.average_response_time_ms = math.floor(total / len(answered) + 0.5)
    else:
        session.average_response_time_ms = 0
    return session


# --- State Machine: study session ---
class StudySessionController:
    """
    Drives one study pass over a deck: idle -> in_session -> finished.

    The controller owns a StudyState and mutates it in place; callers persist
    ``controller.state`` after each transition. Finished sessions are handed
    to the AnalyticsStore and the live copy is dropped.
    """

    def __init__(
        self,
        state: Optional[StudyState],
        store: AnalyticsStore,
        clock: Callable[[], int] = now_ms,
        auto_advance_delay_ms: int = settings.AUTO_ADVANCE_DELAY_MS,
    ):
        self.state = state or StudyState()
        self.store = store
        self.clock = clock
        self.auto_advance_delay_ms = auto_advance_delay_ms
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _notify(self, event: str) -> None:
        for listener in self._listeners:
            listener(event, self.state)

    # --- Queries ---
    @property
    def deck_size(self) -> int:
        return len(self.state.deck)

    @property
    def current_card(self) -> Optional[Flashcard]:
        if self.state.phase != Phase.IN_SESSION or not self.state.deck:
            return None
        return self.state.deck[self.state.card_index]

    @property
    def can_go_back(self) -> bool:
        return self.current_card is not None and self.state.card_index > 0

    @property
    def can_go_forward(self) -> bool:
        return self.current_card is not None and self.state.card_index < self.deck_size - 1

    @property
    def can_finish(self) -> bool:
        return self.state.phase == Phase.IN_SESSION and (
            not self.state.deck or self.state.card_index == self.deck_size - 1
        )

    # --- Transitions ---
    def start(self, deck: List[Flashcard], source_name: str) -> StudyState:
        if self.state.phase == Phase.IN_SESSION:
            raise SessionError("A session is already in progress. Reset it first.")

        started = self.clock()
        session = Session(
            session_id=str(started),
            source_name=source_name,
            start_time=_timestamp(started),
            questions=[
                QuestionRecord(index=i, question_text=card.question)
                for i, card in enumerate(deck)
            ],
        )
        self.state = StudyState(
            phase=Phase.IN_SESSION,
            deck=list(deck),
            session=session,
            session_started_at_ms=started,
        )
        self._show_card(0)
        logger.info(f"Session {session.session_id} started with {len(deck)} cards")
        self._notify("start")
        return self.state

    def navigate(self, direction: int) -> StudyState:
        if self.state.phase != Phase.IN_SESSION:
            raise SessionError("No session in progress.")

        target = self.state.card_index + direction
        if not 0 <= target < self.deck_size:
            return self.state

        self.state.pending_advance = None
        record = self.state.session.questions[self.state.card_index]
        if self.state.flipped and record.answered:
            record.response_time_ms = self.clock() - self.state.question_shown_at_ms

        self._show_card(target)
        self._notify("navigate")
        return self.state

    def toggle_answer(self) -> StudyState:
        if self.current_card is None:
            raise SessionError("No card is displayed.")
        self.state.flipped = not self.state.flipped
        self._notify("toggle")
        return self.state

    def record_response(self, knew_it: bool) -> StudyState:
        if self.current_card is None:
            raise SessionError("No card is displayed.")

        session = self.state.session
        record = session.questions[self.state.card_index]
        if record.answered:
            # a second response replaces the first
            if record.correct:
                session.correct_count -= 1
            else:
                session.incorrect_count -= 1

        now = self.clock()
        record.answered = True
        record.correct = knew_it
        record.response_time_ms = now - self.state.question_shown_at_ms
        if knew_it:
            session.correct_count += 1
        else:
            session.incorrect_count += 1

        if self.can_go_forward:
            self.state.pending_advance = PendingAdvance(
                token=uuid.uuid4().hex, due_at_ms=now + self.auto_advance_delay_ms
            )
        else:
            self.state.pending_advance = None

        self._notify("respond")
        return self.state

    def complete_auto_advance(self, token: str) -> StudyState:
        """Moves to the next card if ``token`` still names the pending advance."""
        pending = self.state.pending_advance
        if pending is None or pending.token != token:
            return self.state
        return self.navigate(1)

    def finish(self) -> StudyState:
        if not self.can_finish:
            raise SessionError("Finish is only available on the last card.")

        self._persist()
        self.state = StudyState(phase=Phase.FINISHED)
        self._notify("finish")
        return self.state

    def reset(self) -> StudyState:
        if self.state.phase == Phase.IN_SESSION and self.state.deck:
            self._persist()
        self.state = StudyState()
        self._notify("reset")
        return self.state

    # --- Internals ---
    def _show_card(self, index: int) -> None:
        self.state.card_index = index
        self.state.flipped = False
        self.state.question_shown_at_ms = self.clock()

    def _persist(self) -> None:
        session = finalize_session(
            self.state.session, self.state.session_started_at_ms, self.clock()
        )
        self.store.append(session)
        logger.info(
            f"Session {session.session_id} finished: "
            f"{session.correct_count} correct, {session.incorrect_count} incorrect"
        )
