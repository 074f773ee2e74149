import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./salon.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Redis (cache, rate limiting, duplicate-submission guard)
REDIS_URL = os.getenv("REDIS_URL", "").strip() or "redis://localhost:6379"
# Used when the primary host does not resolve (e.g. "redis" outside docker-compose)
REDIS_FALLBACK_URL = os.getenv("REDIS_FALLBACK_URL", "redis://localhost:6379")
CACHE_DEFAULT_TTL = int(os.getenv("CACHE_DEFAULT_TTL", "300"))
CACHE_QUEUE_SIZE = int(os.getenv("CACHE_QUEUE_SIZE", "1000"))
CACHE_QUEUE_WORKERS = int(os.getenv("CACHE_QUEUE_WORKERS", "2"))

# API key authentication
API_KEY_HEADER = os.getenv("API_KEY_HEADER", "x-api-key")
API_KEY_QUERY_PARAM = os.getenv("API_KEY_QUERY_PARAM", "api_key")
API_KEY_CACHE_TTL = int(os.getenv("API_KEY_CACHE_TTL", "86400"))
# Required in the x-admin-secret header to issue keys for an organisation
ADMIN_API_SECRET = os.getenv("ADMIN_API_SECRET")

# hCaptcha
HCAPTCHA_SECRET_KEY = os.getenv("HCAPTCHA_SECRET_KEY")
HCAPTCHA_VERIFY_URL = os.getenv("HCAPTCHA_VERIFY_URL", "https://hcaptcha.com/siteverify")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Diva Salon <bookings@divasalon.co.uk>")
BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Diva Salon")

# Booking
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "10"))
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "10"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", "60"))
# Seconds between sweeps of expired in-memory rate limit windows
RATE_LIMIT_MEMORY_CLEANUP_INTERVAL = int(os.getenv("RATE_LIMIT_MEMORY_CLEANUP_INTERVAL", "60"))
DUPLICATE_SUBMISSION_TTL = int(os.getenv("DUPLICATE_SUBMISSION_TTL", "300"))

# HTTP
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://divasalon.co.uk,https://www.divasalon.co.uk,http://localhost:5173,http://localhost:3000",
).split(",")
SECURITY_HEADERS_ENABLED = os.getenv("SECURITY_HEADERS_ENABLED", "true").lower() == "true"
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"
