"""Viva-related constants shared across the core and server layers."""

SECONDS_PER_QUESTION: int = 60
WARNING_DISPLAY_SECONDS: int = 3
FORCED_SUBMIT_VIOLATIONS: int = 2
OPTION_COUNT: int = 4
UNANSWERED: int = -1
TICK_INTERVAL_SECONDS: float = 1.0

EXPERIMENTS_COLLECTION: str = "experiments"
QUESTIONS_COLLECTION: str = "vivaQuestions"
ATTEMPTS_COLLECTION: str = "vivaAttempts"
SUBMISSIONS_COLLECTION: str = "submissions"
STUDENTS_COLLECTION: str = "students"
