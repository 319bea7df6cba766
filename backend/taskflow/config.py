import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskflow.db")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

SESSION_COOKIE_NAME = "session"
SESSION_TTL_HOURS = int(os.getenv("SESSION_TTL_HOURS", "168"))  # 7 days
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# Upper bound on any single wait for the database (lock, pool checkout, connect)
STORE_TIMEOUT_SECONDS = float(os.getenv("STORE_TIMEOUT_SECONDS", "10"))

LOGIN_URL = os.getenv("LOGIN_URL", "/login")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
