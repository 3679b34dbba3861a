import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "employee_registry_test"),
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")
COMPANY_CODE = "ART"

PUBLIC_BASE_URL = "http://registry.test"
COMPANY_LOGO_URL = ""

PHOTO_DIR = os.getenv("PHOTO_DIR", "instance/test-photos")

MAX_ALLOCATION_RETRIES = 5
BUCKET_LOCK_TIMEOUT = 5

LOG_LEVEL = "WARNING"
DEBUG = False
TESTING = True

AUTO_INIT_DB = False
