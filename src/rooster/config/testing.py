import os

JWT_SECRET = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "rooster_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

TOKEN_TTL_MINUTES = 60
RESET_TOKEN_TTL_MINUTES = 60
EXPOSE_RESET_TOKEN = True

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads-test")
MAX_UPLOAD_MB = 1

HALF_DAY_THRESHOLD_MINUTES = 0

AUTO_INIT_DB = False
AUTO_SEED_DB = False
