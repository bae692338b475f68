import logging
import os
import uuid
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Any, Callable, Dict, Optional

import uvicorn
from fastapi import (
    Cookie,
    Depends,
    FastAPI,
    File,
    Form,
    Request,
    UploadFile,
)
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from . import renderer
from .config import settings
from .deck import generate_deck
from .models import StudyState
from .pdf import ExtractionError, extract_text, is_pdf
from .session import SessionError, StudySessionController, now_ms
from .storage import (
    AnalyticsStore,
    MemoryAnalyticsRepository,
    MemoryStudyStateRepository,
    RedisAnalyticsRepository,
    RedisStudyStateRepository,
    StudyStateRepository,
    redis_client,
)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# --- Logging Setup ---
logger = logging.getLogger("flashdeck")
logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

if settings.LOG_TO_FILE:
    if not os.path.exists(settings.LOG_DIR):
        os.makedirs(settings.LOG_DIR)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
    handler = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=3)
else:
    handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
logger.addHandler(handler)


# --- Storage ---
if settings.STORE_BACKEND == "memory":
    analytics_store = AnalyticsStore(MemoryAnalyticsRepository())
    state_repository: StudyStateRepository = MemoryStudyStateRepository()
else:
    analytics_store = AnalyticsStore(RedisAnalyticsRepository(redis_client))
    state_repository = RedisStudyStateRepository(redis_client)


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} with {settings.STORE_BACKEND} storage")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.mount("/static", StaticFiles(directory=os.path.join(BASE_DIR, "static")), name="static")
templates = Jinja2Templates(directory=os.path.join(BASE_DIR, "templates"))


# --- Dependencies ---
def get_session_id(
    session_id: Optional[str] = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
) -> Optional[str]:
    return session_id


def get_analytics_store() -> AnalyticsStore:
    return analytics_store


def get_state_repository() -> StudyStateRepository:
    return state_repository


def get_clock() -> Callable[[], int]:
    return now_ms


def log_transition(event: str, state: StudyState) -> None:
    logger.debug(
        f"Transition {event}: phase={state.phase.value} card={state.card_index} "
        f"flipped={state.flipped}"
    )


def load_controller(
    session_id: Optional[str],
    repository: StudyStateRepository,
    store: AnalyticsStore,
    clock: Callable[[], int],
) -> StudySessionController:
    state = repository.get(session_id) if session_id else None
    controller = StudySessionController(state, store, clock=clock)
    controller.subscribe(log_transition)
    return controller


def state_payload(controller: StudySessionController) -> Dict[str, Any]:
    state = controller.state
    card = controller.current_card
    pending = state.pending_advance
    return {
        "phase": state.phase.value,
        "source_name": state.session.source_name,
        "card_index": state.card_index,
        "deck_size": controller.deck_size,
        "flipped": state.flipped,
        "card": card.model_dump() if card else None,
        "can_go_back": controller.can_go_back,
        "can_go_forward": controller.can_go_forward,
        "can_finish": controller.can_finish,
        "correct_count": state.session.correct_count,
        "incorrect_count": state.session.incorrect_count,
        "pending_advance": {
            "token": pending.token,
            "delay_ms": settings.AUTO_ADVANCE_DELAY_MS,
        }
        if pending
        else None,
    }


def apply_transition(
    session_id: Optional[str],
    repository: StudyStateRepository,
    store: AnalyticsStore,
    clock: Callable[[], int],
    action: Callable[[StudySessionController], Any],
):
    controller = load_controller(session_id, repository, store, clock)
    try:
        action(controller)
    except SessionError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    if session_id:
        repository.save(session_id, controller.state)
    return state_payload(controller)


# --- Pages ---
@app.get("/", response_class=HTMLResponse)
async def study_page(request: Request):
    return templates.TemplateResponse(
        request, "study.html", {"title": settings.PROJECT_NAME}
    )


@app.get("/analytics", response_class=HTMLResponse)
def analytics_page(
    request: Request, store: AnalyticsStore = Depends(get_analytics_store)
):
    dashboard = renderer.dashboard(store.read_all(), store.read_current())
    return templates.TemplateResponse(request, "analytics.html", {"dashboard": dashboard})


# --- Study API ---
@app.post("/upload")
def upload_pdf(
    file: UploadFile = File(...),
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    if not is_pdf(file.filename, file.content_type):
        logger.info(f"Rejected upload {file.filename} ({file.content_type})")
        return JSONResponse({"error": "Please upload a PDF file."}, status_code=400)

    try:
        text = extract_text(file.file.read())
    except ExtractionError as e:
        logger.warning(f"Extraction failed for {file.filename}: {e}")
        return JSONResponse(
            {"error": f"Error processing PDF: {e} Please try a different file."},
            status_code=422,
        )

    session_id = session_id or str(uuid.uuid4())
    controller = load_controller(session_id, repository, store, clock)
    deck = generate_deck(text)
    try:
        controller.start(deck, file.filename or "")
    except SessionError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    repository.save(session_id, controller.state)

    payload = state_payload(controller)
    if len(deck) < settings.MIN_CARDS:
        payload["warning"] = (
            f"Only generated {len(deck)} flashcards. "
            "Please ensure your PDF has sufficient content."
        )

    response = JSONResponse(payload)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        samesite="Lax",
    )
    return response


@app.get("/api/state")
def get_state(
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return state_payload(load_controller(session_id, repository, store, clock))


@app.post("/api/navigate")
def navigate(
    direction: int = Form(...),
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    if direction not in (-1, 1):
        return JSONResponse({"error": "Direction must be -1 or 1"}, status_code=400)
    return apply_transition(
        session_id, repository, store, clock, lambda c: c.navigate(direction)
    )


@app.post("/api/toggle")
def toggle_answer(
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return apply_transition(
        session_id, repository, store, clock, lambda c: c.toggle_answer()
    )


@app.post("/api/respond")
def respond(
    knew_it: bool = Form(...),
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return apply_transition(
        session_id, repository, store, clock, lambda c: c.record_response(knew_it)
    )


@app.post("/api/advance")
def auto_advance(
    token: str = Form(...),
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return apply_transition(
        session_id, repository, store, clock, lambda c: c.complete_auto_advance(token)
    )


@app.post("/api/finish")
def finish(
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return apply_transition(session_id, repository, store, clock, lambda c: c.finish())


@app.post("/api/reset")
def reset(
    session_id: Optional[str] = Depends(get_session_id),
    repository: StudyStateRepository = Depends(get_state_repository),
    store: AnalyticsStore = Depends(get_analytics_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    return apply_transition(session_id, repository, store, clock, lambda c: c.reset())


# --- Analytics API ---
@app.get("/api/analytics")
def get_analytics(store: AnalyticsStore = Depends(get_analytics_store)):
    return renderer.dashboard(store.read_all(), store.read_current())


@app.post("/api/analytics/clear")
def clear_analytics(store: AnalyticsStore = Depends(get_analytics_store)):
    store.clear_all()
    return {"status": "success"}


if __name__ == "__main__":
    uvicorn.run("flashdeck.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
