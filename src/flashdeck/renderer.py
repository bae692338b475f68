import math
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from .models import QuestionRecord, Session

NO_CURRENT_SESSION = "No current session data available."
NO_SESSIONS = "No previous sessions found."
NO_OTHER_SESSIONS = "No other previous sessions found."

STATUS_LABELS = {
    "correct": "✓ Correct",
    "incorrect": "✗ Incorrect",
    "unanswered": "Not Answered",
}


# --- Formatting ---
def format_duration(ms: Optional[int]) -> str:
    """Session-length format: "45s", "2m 5s" or "1h 2m"."""
    if not ms:
        return "0m"
    seconds = ms // 1000
    minutes = seconds // 60
    hours = minutes // 60

    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    elif minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


def format_time(ms: Optional[int]) -> str:
    if not ms:
        return "0s"
    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    return f"{seconds // 60}m {seconds % 60}s"


def format_date(value: Optional[datetime]) -> str:
    if not value:
        return "N/A"
    return value.strftime("%Y-%m-%d %H:%M")


def truncate_text(text: Optional[str], max_length: int = 100) -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def accuracy(correct: int, answered: int) -> int:
    if answered <= 0:
        return 0
    return max(0, min(100, math.floor(correct / answered * 100 + 0.5)))


def accuracy_tier(percentage: int) -> str:
    if percentage >= 70:
        return "good"
    elif percentage >= 50:
        return "neutral"
    return "poor"


# --- Views ---
def question_status(record: QuestionRecord) -> str:
    if record.correct is True:
        return "correct"
    elif record.correct is False:
        return "incorrect"
    return "unanswered"


def session_card(session: Session) -> Dict[str, Any]:
    answered = session.answered_count
    percentage = accuracy(session.correct_count, answered)

    dates = format_date(session.start_time)
    if session.end_time:
        dates += " - " + format_date(session.end_time)

    questions = []
    for position, record in enumerate(session.questions):
        status = question_status(record)
        questions.append(
            {
                "label": f"Q{position + 1}",
                "text": truncate_text(record.question_text, 100),
                "time": format_time(record.response_time_ms)
                if record.response_time_ms
                else "N/A",
                "status": status,
                "status_text": STATUS_LABELS[status],
            }
        )

    return {
        "session_id": session.session_id,
        "title": session.source_name or "Untitled Session",
        "dates": dates,
        "metrics": {
            "total_duration": format_duration(session.total_duration_ms),
            "average_response_time": format_time(session.average_response_time_ms),
            "total_questions": len(session.questions),
            "answered": answered,
            "correct": session.correct_count,
            "incorrect": session.incorrect_count,
            "accuracy": percentage,
            "accuracy_tier": accuracy_tier(percentage),
        },
        "questions": questions,
    }


def current_view(current: Optional[Session]) -> Dict[str, Any]:
    if current is None:
        return {"session": None, "placeholder": NO_CURRENT_SESSION}
    return {"session": session_card(current), "placeholder": None}


def sort_sessions(sessions: List[Session]) -> List[Session]:
    """Newest first by start time; sessions without one sort last."""
    if not sessions:
        return []
    frame = pd.DataFrame(
        {"start_time": pd.to_datetime([s.start_time for s in sessions])}
    )
    order = frame.sort_values(
        "start_time", ascending=False, kind="stable", na_position="last"
    ).index
    return [sessions[i] for i in order]


def history_view(sessions: List[Session], current: Optional[Session]) -> Dict[str, Any]:
    if not sessions:
        return {"sessions": [], "placeholder": NO_SESSIONS}

    current_id = current.session_id if current else None
    others = [s for s in sort_sessions(sessions) if s.session_id != current_id]
    if not others:
        return {"sessions": [], "placeholder": NO_OTHER_SESSIONS}
    return {"sessions": [session_card(s) for s in others], "placeholder": None}


def summary(sessions: List[Session]) -> Dict[str, Any]:
    if not sessions:
        return {
            "total_sessions": 0,
            "total_time": "0h 0m",
            "total_correct": 0,
            "accuracy": 0,
        }

    frame = pd.DataFrame(
        [
            {
                "duration": s.total_duration_ms,
                "correct": s.correct_count,
                "incorrect": s.incorrect_count,
            }
            for s in sessions
        ]
    )
    totals = frame.sum()
    total_correct = int(totals["correct"])
    total_answered = total_correct + int(totals["incorrect"])

    return {
        "total_sessions": len(sessions),
        "total_time": format_duration(int(totals["duration"])),
        "total_correct": total_correct,
        "accuracy": accuracy(total_correct, total_answered),
    }


def dashboard(sessions: List[Session], current: Optional[Session]) -> Dict[str, Any]:
    return {
        "current": current_view(current),
        "history": history_view(sessions, current),
        "summary": summary(sessions),
    }
