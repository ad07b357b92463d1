import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as lessonslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "lessonslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Shared secret for admin endpoints (unset = open, local dev only)
    ADMIN_API_TOKEN = os.getenv("ADMIN_API_TOKEN")
    ADMIN_TOKEN_HEADER = "X-Admin-Token"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Slot generator defaults: 06:00-19:00, 40 min lessons + 20 min breaks
    SLOT_DAY_START_HOUR = int(os.getenv("SLOT_DAY_START_HOUR", "6"))
    SLOT_DAY_END_HOUR = int(os.getenv("SLOT_DAY_END_HOUR", "19"))
    SLOT_LESSON_MINUTES = int(os.getenv("SLOT_LESSON_MINUTES", "40"))
    SLOT_BREAK_MINUTES = int(os.getenv("SLOT_BREAK_MINUTES", "20"))

    # Audit log listing
    AUDIT_LOG_DEFAULT_LIMIT = 200
    AUDIT_LOG_MAX_LIMIT = int(os.getenv("AUDIT_LOG_MAX_LIMIT", "500"))

    # Added to every API response
    RESPONSE_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
        "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
        "Cache-Control": "no-store",
    }

    # Basic app settings
    DEBUG = False
