import os

SECRET_KEY = os.environ.get("SECRET_KEY", "change-me-in-production")
ALGORITHM = os.environ.get("ALGORITHM", "HS256")
# tokens are valid for a day unless overridden
ACCESS_TOKEN_EXPIRE_MINUTES = float(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))
BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", 12))

# Default to local SQLite for dev/tests; override via env in Docker/Prod
DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./todo.db")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("LOG_JSON", "false").lower() in ("1", "true", "yes")

# Profile images are written to disk and served from UPLOAD_BASE_URL
UPLOAD_DIR = os.environ.get("UPLOAD_DIR", "./uploads")
UPLOAD_BASE_URL = os.environ.get("UPLOAD_BASE_URL", "/uploads")
MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))
