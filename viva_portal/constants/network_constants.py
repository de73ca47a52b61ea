"""Network configuration constants for the viva portal."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEFAULT_DATA_PATH: str = "data/viva_portal.json"
USER_ID_HEADER: str = "X-User-Id"
USER_ROLE_HEADER: str = "X-User-Role"
