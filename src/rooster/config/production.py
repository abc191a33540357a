import os

# Required: load_settings refuses to start without it.
JWT_SECRET = os.getenv("JWT_SECRET", "")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "rooster_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TOKEN_TTL_MINUTES = int(os.getenv("TOKEN_TTL_MINUTES", "1440"))
RESET_TOKEN_TTL_MINUTES = 60
EXPOSE_RESET_TOKEN = False

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "/var/lib/rooster/uploads")
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "5"))

HALF_DAY_THRESHOLD_MINUTES = int(os.getenv("HALF_DAY_THRESHOLD_MINUTES", "0"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
