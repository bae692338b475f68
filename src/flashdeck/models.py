from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Models ---
class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    strategy: Optional[str] = None


class QuestionRecord(BaseModel):
    index: int
    question_text: str
    response_time_ms: int = 0
    answered: bool = False
    correct: Optional[bool] = None


class Session(BaseModel):
    session_id: Optional[str] = None
    source_name: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_duration_ms: int = 0
    questions: List[QuestionRecord] = Field(default_factory=list)
    average_response_time_ms: int = 0
    correct_count: int = 0
    incorrect_count: int = 0

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.answered)


class AnalyticsData(BaseModel):
    sessions: List[Session] = Field(default_factory=list)
    current: Optional[Session] = None


class Phase(str, Enum):
    IDLE = "idle"
    IN_SESSION = "in_session"
    FINISHED = "finished"


class PendingAdvance(BaseModel):
    token: str
    due_at_ms: int


class StudyState(BaseModel):
    phase: Phase = Phase.IDLE
    deck: List[Flashcard] = Field(default_factory=list)
    card_index: int = 0
    flipped: bool = False
    session: Session = Field(default_factory=Session)
    session_started_at_ms: Optional[int] = None
    question_shown_at_ms: Optional[int] = None
    pending_advance: Optional[PendingAdvance] = None
