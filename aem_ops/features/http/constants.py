"""HTTP constants for the AEM client layer.

Centralizes status ranges, fixed endpoints and header names so adapters
never hard-code them.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_REDIRECT_MAX = 400
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_UNAUTHORIZED = 401
HTTP_STATUS_FORBIDDEN = 403
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Timeouts
DEFAULT_TIMEOUT_MS = 30_000

# Anti-forgery token handling
CSRF_TOKEN_HEADER = "CSRF-Token"
CSRF_TOKEN_TTL_SECONDS = 5 * 60
CSRF_PROTECTED_METHODS = frozenset({"POST", "PUT", "DELETE"})

# Multipart upload
UPLOAD_FIELD_NAME = "file"
UPLOAD_CONTENT_TYPE = "application/zip"

# Truncation for response bodies attached to errors
ERROR_BODY_PREVIEW_CHARS = 200

# Fixed AEM 6.5 endpoints, relative to the configured base URL
HEALTH_SYSTEM_ENDPOINT = "/system/health"
HEALTH_READY_ENDPOINT = "/libs/granite/core/content/login.html"
CSRF_TOKEN_ENDPOINT = "/libs/granite/csrf/token.json"
REPLICATION_ENDPOINT = "/bin/replicate.json"
REPLICATION_AGENT_BASE = "/etc/replication/agents.author"
PACKAGE_LIST_ENDPOINT = "/crx/packmgr/list.jsp"
PACKAGE_SERVICE_ENDPOINT = "/crx/packmgr/service.jsp"
PACKAGE_INSTALL_ENDPOINT = "/crx/packmgr/service/script.html"
