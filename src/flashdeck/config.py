import os


class Settings:
    PROJECT_NAME: str = "flashdeck"
    DEBUG: bool = os.getenv("FLASHDECK_DEBUG", "0") == "1"
    LOG_DIR: str = "log"
    LOG_FILE: str = "flashdeck.log"
    LOG_TO_FILE: bool = os.getenv("FLASHDECK_LOG_TO_FILE", "1") == "1"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # "redis" or "memory"
    STORE_BACKEND: str = os.getenv("FLASHDECK_STORE", "redis")
    SESSIONS_KEY: str = "quizSessions"
    CURRENT_SESSION_KEY: str = "currentSession"
    SESSION_COOKIE_NAME: str = "study_session_id"
    SESSION_TIMEOUT_MINUTES: int = 120
    MIN_CARDS: int = 8
    MAX_CARDS: int = 12
    AUTO_ADVANCE_DELAY_MS: int = 500


settings = Settings()
