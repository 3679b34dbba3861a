"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_COMPANY_CODE = "ART"
FALLBACK_DEPT_CODE = "GEN"
DEPT_CODE_LENGTH = 3
DEPT_CODE_FILLER = "X"

SERIAL_WIDTH = 6
MAX_SERIAL = 999999

DEFAULT_ALLOCATION_RETRIES = 5
DEFAULT_BUCKET_LOCK_TIMEOUT = 10

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200

MAX_PHOTO_BYTES = 6 * 1024 * 1024
ALLOWED_PHOTO_TYPES = ("image/jpeg", "image/png", "image/webp")

# Sentinel sent by clients to remove the current photo on update.
PHOTO_DELETE_MARKER = "__DELETE__"

# Store-wide allocation scope held while checking for duplicates and writing.
DUPLICATE_CHECK_SCOPE = "duplicate-check"
