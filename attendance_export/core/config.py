# attendance_export/core/config.py
from datetime import date
from functools import lru_cache

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """
    Raised when required settings are missing or invalid. Always fatal: the
    run stops before any meeting is processed.
    """


# Tokens accepted in MEETING_TYPES.
MEETING_TYPE_TOKENS = (
    "All",
    "Scheduled",
    "Instant",
    "OneOnOne",
    "GroupCall",
    "Webinar",
    "Townhall",
    "Broadcast",
)


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a `.env` file) at runtime.
    CLI options and the internal HTTP trigger can override the run-specific
    fields (target user, date range, meeting types, debug mode).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Teams Attendance Export"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")

    GRAPH_TENANT_ID: str | None = None
    GRAPH_CLIENT_ID: str | None = None
    GRAPH_CLIENT_SECRET: str | None = None
    GRAPH_BASE_URL: AnyHttpUrl | None = None

    TARGET_USER: str | None = Field(
        default=None,
        description="User principal name (or id) whose meetings are exported.",
    )
    START_DATE: date | None = Field(
        default=None,
        description="First day (inclusive) of the export window.",
    )
    END_DATE: date | None = Field(
        default=None,
        description="Last day (inclusive) of the export window.",
    )
    MEETING_TYPES: str = Field(
        default="All",
        description=(
            "Comma-separated meeting-type filter. Selects which discovery "
            "channels run. One of: " + ", ".join(MEETING_TYPE_TOKENS)
        ),
    )

    REQUEST_DELAY_MS: int = Field(
        default=200,
        ge=0,
        description="Fixed delay inserted between successive Graph calls.",
    )
    MAX_RETRIES: int = Field(
        default=3,
        ge=0,
        description="Retries for throttled or transiently failing Graph calls.",
    )
    RETRY_BASE_DELAY_SECONDS: float = Field(
        default=2.0,
        ge=0,
        description="Backoff base; retry N waits N * base seconds.",
    )
    THROTTLE_DEFAULT_WAIT_SECONDS: float = Field(
        default=60.0,
        ge=0,
        description="Wait applied on HTTP 429 when Graph sends no Retry-After.",
    )
    REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)

    DEBUG_MODE: bool = Field(
        default=False,
        description="Persist raw expanded attendance reports as JSON files.",
    )
    OUTPUT_DIR: str = Field(default="./output", description="Directory for CSV exports.")
    LOG_DIR: str | None = Field(
        default=None,
        description="Directory for the log file. Console-only logging when unset.",
    )
    LOG_LEVEL: str = Field(default="INFO")

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    def meeting_type_filter(self) -> set[str]:
        """
        Parse MEETING_TYPES into a set of canonical tokens.

        Tokens are matched case-insensitively. An empty value means "All".
        """
        return parse_meeting_types(self.MEETING_TYPES)

    def require_graph_credentials(self) -> None:
        missing = [
            name
            for name in ("GRAPH_TENANT_ID", "GRAPH_CLIENT_ID", "GRAPH_CLIENT_SECRET")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing Graph credentials: {', '.join(missing)}"
            )


def parse_meeting_types(value: str | None) -> set[str]:
    lookup = {token.lower(): token for token in MEETING_TYPE_TOKENS}
    tokens = [t.strip() for t in (value or "").split(",") if t.strip()]
    if not tokens:
        return {"All"}

    parsed: set[str] = set()
    for token in tokens:
        canonical = lookup.get(token.lower())
        if canonical is None:
            raise ConfigurationError(
                f"Unknown meeting type '{token}'. "
                f"Expected one of: {', '.join(MEETING_TYPE_TOKENS)}"
            )
        parsed.add(canonical)
    return parsed


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
