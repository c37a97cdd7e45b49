import os
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Backend location
CONSOLE_BASE_URL = config.get("CONSOLE_BASE_URL", "http://localhost:4141")
CONSOLE_API_PREFIX = config.get("CONSOLE_API_PREFIX", "/api")
LOG_LEVEL = config.get("LOG_LEVEL", "info")

# WebUI password (only needed when the gateway has one configured)
CONSOLE_PASSWORD = os.getenv("CONSOLE_PASSWORD", None)

# Timeout configuration
# Connection timeout: Time to establish TCP connection
CONNECT_TIMEOUT = config.get("CONNECT_TIMEOUT", 10.0)
# Request timeout: Total timeout for REST calls
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 30.0)
# OAuth completion: the gateway polls the device flow for up to 5 minutes before answering
OAUTH_COMPLETE_TIMEOUT = config.get("OAUTH_COMPLETE_TIMEOUT", 330.0)

# Push streams reconnect after a fixed delay, forever, with no backoff growth
STREAM_RETRY_DELAY = config.get("STREAM_RETRY_DELAY", 5.0)

# Periodic timers (seconds)
DATA_REFRESH_INTERVAL = config.get("DATA_REFRESH_INTERVAL", 30.0)
VERSION_CHECK_INTERVAL = config.get("VERSION_CHECK_INTERVAL", 120.0)
# One-shot resync after a background token refresh was requested
TOKEN_REFRESH_RESYNC_DELAY = config.get("TOKEN_REFRESH_RESYNC_DELAY", 4.0)

# Bounded stores
LOG_BUFFER_CAPACITY = config.get("LOG_BUFFER_CAPACITY", 500)
NOTIFICATION_CAPACITY = config.get("NOTIFICATION_CAPACITY", 5)
RECENT_LOGS_LIMIT = config.get("RECENT_LOGS_LIMIT", 100)

# Quota health
LOW_QUOTA_THRESHOLD = config.get("LOW_QUOTA_THRESHOLD", 20)

# Alerting defaults (alerts.json overrides these, see config.loader.load_alert_settings)
RATE_LIMIT_ALERTS = config.get("RATE_LIMIT_ALERTS", True)
ACCOUNT_ERROR_ALERTS = config.get("ACCOUNT_ERROR_ALERTS", True)
NOTIFICATION_SOUND = config.get("NOTIFICATION_SOUND", False)
ALERTS_FILE = config.get("ALERTS_FILE", "alerts.json")

# Debug log written by the CLI when --debug is passed
DEBUG_LOG_FILE = config.get("DEBUG_LOG_FILE", "console_debug.log")
