import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "employee_registry"),
}

STORE_BACKEND = os.getenv("STORE_BACKEND", "mysql")
COMPANY_CODE = os.getenv("COMPANY_CODE", "ART")

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "")
COMPANY_LOGO_URL = os.getenv("COMPANY_LOGO_URL", "")

PHOTO_DIR = os.getenv("PHOTO_DIR", "/var/lib/employee-registry/photos")

MAX_ALLOCATION_RETRIES = int(os.getenv("MAX_ALLOCATION_RETRIES", "5"))
BUCKET_LOCK_TIMEOUT = float(os.getenv("BUCKET_LOCK_TIMEOUT", "10"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DEBUG = False

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
