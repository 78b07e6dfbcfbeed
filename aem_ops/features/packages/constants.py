"""Constants for the CRX package manager adapter."""

PACKAGE_EXTENSION = ".zip"
MAX_LOG_LINES = 100

SUCCESS_KEYWORDS = ("success", "Package uploaded", "Package installed")
ERROR_KEYWORDS = ("error",)

# Package paths as they appear in package manager markup
PACKAGE_PATH_PATTERN = r"/etc/packages/[^\"<\s]+\.zip"
