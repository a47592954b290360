"""
Application constants.

Fixed limits and enumerations that are part of the API contract rather
than deployment configuration.
"""

# Presigned URLs
DEFAULT_PRESIGNED_URL_EXPIRY_SECONDS = 3600

# Object store call bounds (seconds)
DEFAULT_S3_CONNECT_TIMEOUT = 3.0
DEFAULT_S3_READ_TIMEOUT = 5.0

# Authentication
DEFAULT_JWT_EXPIRY_HOURS = 24

# Object-store key layout
UPLOAD_KEY_ROOT = "uploads"

# Upload limits
MAX_UPLOAD_SIZE_BYTES = 5 * 1024 * 1024 * 1024  # 5 GiB
MAX_FILENAME_LENGTH = 255
MAX_S3_KEY_LENGTH = 512
MAX_DESCRIPTION_LENGTH = 1000
MAX_CHANGELOG_LENGTH = 5000
MAX_VERSION_LENGTH = 50

FILENAME_PATTERN = r"^[a-zA-Z0-9._-]+$"
MD5_PATTERN = r"^[a-f0-9]{32}$"

ALLOWED_CONTENT_TYPES = (
  "application/zip",
  "application/x-zip-compressed",
  "application/octet-stream",
  "application/x-gzip",
  "application/x-tar",
  "application/gzip",
)

ALLOWED_FILE_EXTENSIONS = (".zip", ".bin", ".tar", ".gz", ".tgz", ".img", ".hex")

# Listing
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
MAX_SEARCH_LENGTH = 100
RECENT_UPLOADS_LIMIT = 5

# Spaces
SPACE_SLUG_PATTERN = r"^[a-z0-9-]+$"
MAX_SPACE_SLUG_LENGTH = 50
MAX_SPACE_NAME_LENGTH = 100

# Reconciliation: objects younger than this may still be mid-upload
RECONCILE_MIN_OBJECT_AGE_SECONDS = 3600
