import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file)
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./telehealth.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    APP_BASE_URL = data.get("APP_BASE_URL", "http://localhost:3000")

    # Doctor bearer tokens are issued by the identity provider with this secret
    JWT_SECRET = data.get("JWT_SECRET", "dev-secret-key-change-in-production")
    INVITE_TOKEN_SECRET = data.get(
        "INVITE_TOKEN_SECRET", "dev-invite-secret-change-in-production"
    )
    ADMIN_API_KEY = data.get("ADMIN_API_KEY", "test-admin-key-12345")

    LIVEKIT_API_KEY = data.get("LIVEKIT_API_KEY", "devkey")
    LIVEKIT_API_SECRET = data.get("LIVEKIT_API_SECRET", "devsecret")
    LIVEKIT_URL = data.get("LIVEKIT_URL", "wss://*.livekit.cloud")
    AI_SUMMARY_URL = data.get("AI_SUMMARY_URL", "https://api.openai.com")
    PATIENT_TOKEN_TTL_MINUTES = int(data.get("PATIENT_TOKEN_TTL_MINUTES", 60))
    DOCTOR_TOKEN_TTL_MINUTES = int(data.get("DOCTOR_TOKEN_TTL_MINUTES", 240))

    DEFAULT_INVITE_HOURS = int(data.get("DEFAULT_INVITE_HOURS", 24))
    MAX_INVITE_HOURS = int(data.get("MAX_INVITE_HOURS", 168))
    MAX_INVITE_USES = int(data.get("MAX_INVITE_USES", 10))
    MAX_WAITING_PATIENTS = int(data.get("MAX_WAITING_PATIENTS", 50))
    # "log" records a pinned-location mismatch as advisory, "deny" rejects it
    GEO_MISMATCH_POLICY = data.get("GEO_MISMATCH_POLICY", "log")
    STORE_TIMEOUT_SECONDS = float(data.get("STORE_TIMEOUT_SECONDS", 5.0))
    RETENTION_DAYS = int(data.get("RETENTION_DAYS", 90))

    # Per client IP, counted in the database so every worker shares the window
    RATE_LIMIT_ENABLED = data.get("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_REQUESTS = int(data.get("RATE_LIMIT_REQUESTS", 5))
    RATE_LIMIT_WINDOW_SECONDS = int(data.get("RATE_LIMIT_WINDOW_SECONDS", 60))
    RATE_LIMIT_BLOCK_SECONDS = int(data.get("RATE_LIMIT_BLOCK_SECONDS", 300))
