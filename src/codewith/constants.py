"""Constants for codewith.

For paths and messages, import from:
- codewith.config.paths
- codewith.config.messages
"""

from codewith import __version__

# =============================================================================
# Version
# =============================================================================

VERSION = __version__

JSON_INDENT = 2

# =============================================================================
# SSOT document
# =============================================================================

SSOT_SCHEMA_VERSION = 2

# =============================================================================
# Materializer: fields the system owns in live config files
# =============================================================================

CLAUDE_ENV_KEY = "env"
CLAUDE_OWNED_ENV_KEYS: tuple[str, ...] = (
    "ANTHROPIC_AUTH_TOKEN",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URL",
    "ANTHROPIC_MODEL",
    "ANTHROPIC_SMALL_FAST_MODEL",
    "ANTHROPIC_DEFAULT_HAIKU_MODEL",
    "ANTHROPIC_DEFAULT_SONNET_MODEL",
    "ANTHROPIC_DEFAULT_OPUS_MODEL",
)

CLAUDE_PLUGIN_KEY = "primaryApiKey"
# The plugin only needs the key present to skip its own login flow
CLAUDE_PLUGIN_KEY_VALUE = "any"

CODEX_AUTH_SECTION = "auth"
CODEX_CONFIG_SECTION = "config"
CODEX_API_KEY_FIELD = "OPENAI_API_KEY"
CODEX_OWNED_CONFIG_KEYS: tuple[str, ...] = (
    "model_provider",
    "model",
    "model_providers",
    "model_reasoning_effort",
    "preferred_auth_method",
)

GEMINI_ENV_SECTION = "env"
GEMINI_OWNED_ENV_KEYS: tuple[str, ...] = (
    "GEMINI_API_KEY",
    "GOOGLE_GEMINI_BASE_URL",
    "GEMINI_MODEL",
)

# =============================================================================
# Sync
# =============================================================================

# Daily at 04:00, evaluated in DEFAULT_SYNC_TIMEZONE
DEFAULT_SYNC_CRON = "0 4 * * *"
DEFAULT_SYNC_TIMEZONE = "Asia/Shanghai"
DEFAULT_SYNC_JITTER_SECONDS = 1800
DEFAULT_SYNC_TIMEOUT_SECONDS = 30.0
DEFAULT_STARTUP_SYNC_DELAY_SECONDS = 3600

SYNC_SNAPSHOT_PATH = "/sync/snapshot"
SYNC_OVERRIDE_PATH = "/sync/override"
SYNC_LEGACY_PATH = "/api/v1/devices/sync"
SYNC_ERROR_MAX_LENGTH = 500

# =============================================================================
# Admin service
# =============================================================================

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8787
DEFAULT_MAX_REQUEST_BYTES = 1024 * 1024
ADMIN_SNAPSHOT_HISTORY_LIMIT = 20
ADMIN_API_PREFIX = "/api/v1/admin"
HEALTH_PATH = "/healthz"

AUTH_HEADER_NAME = "authorization"
AUTH_SCHEME_BEARER = "Bearer"
AUTH_SCHEME_BASIC = "Basic"
AUTH_ERROR_MISSING = "Missing Authorization header"
AUTH_ERROR_INVALID_SCHEME = "Invalid authorization scheme"
AUTH_ERROR_INVALID_TOKEN = "Invalid token"
AUTH_ERROR_NOT_CONFIGURED = "Authentication is not configured on this server"
AUTH_ERROR_PAYLOAD_TOO_LARGE = "Request body too large"
FORWARDED_FOR_HEADER = "x-forwarded-for"

# =============================================================================
# Logging
# =============================================================================

DEFAULT_LOG_MAX_SIZE_MB = 5
DEFAULT_LOG_BACKUP_COUNT = 3
MAX_LOG_MAX_SIZE_MB = 100
MAX_LOG_BACKUP_COUNT = 20
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
QUIET_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "uvicorn.access")

# =============================================================================
# Redaction
# =============================================================================

REDACTED_PLACEHOLDER = "[REDACTED]"
