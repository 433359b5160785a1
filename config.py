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
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./credits.db")
    STORAGE_BACKEND = data.get("STORAGE_BACKEND", "sql")  # sql | memory
    AUTO_CREATE_TABLES = bool(data.get("AUTO_CREATE_TABLES", True))
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Run the sweep and dispatcher inside the API process (required for the memory backend)
    RUN_BACKGROUND_WORKERS = bool(data.get("RUN_BACKGROUND_WORKERS", False))

    # Unlocks
    UNLOCK_RESPONSE_WINDOW_HOURS = data.get("UNLOCK_RESPONSE_WINDOW_HOURS", 12)
    REFUND_SWEEP_INTERVAL_SECONDS = data.get("REFUND_SWEEP_INTERVAL_SECONDS", 300)
    REFUND_SWEEP_BATCH_SIZE = data.get("REFUND_SWEEP_BATCH_SIZE", 100)

    # Idempotency index
    IDEMPOTENCY_TTL_SECONDS = data.get("IDEMPOTENCY_TTL_SECONDS", 86400)
    IDEMPOTENCY_PURGE_INTERVAL_SECONDS = data.get("IDEMPOTENCY_PURGE_INTERVAL_SECONDS", 3600)

    # Outbound dispatcher
    OUTBOUND_DISPATCH_INTERVAL_SECONDS = data.get("OUTBOUND_DISPATCH_INTERVAL_SECONDS", 60)
    OUTBOUND_BATCH_SIZE = data.get("OUTBOUND_BATCH_SIZE", 50)
    OUTBOUND_MAX_ATTEMPTS = data.get("OUTBOUND_MAX_ATTEMPTS", 6)
    OUTBOUND_BASE_BACKOFF_SECONDS = data.get("OUTBOUND_BASE_BACKOFF_SECONDS", 30)
    OUTBOUND_MAX_BACKOFF_SECONDS = data.get("OUTBOUND_MAX_BACKOFF_SECONDS", 3600)
    CRM_WEBHOOK_URL = data.get("CRM_WEBHOOK_URL", None)
    CRM_TIMEOUT_SECONDS = data.get("CRM_TIMEOUT_SECONDS", 10)

    # Payments
    PAYMENT_WEBHOOK_SECRET = data.get("PAYMENT_WEBHOOK_SECRET", None)
    RAZORPAY_WEBHOOK_SECRET = data.get("RAZORPAY_WEBHOOK_SECRET", None)
    UPI_WEBHOOK_SECRET = data.get("UPI_WEBHOOK_SECRET", None)
    PAYMENT_PROVIDER_KEY = data.get("PAYMENT_PROVIDER_KEY", "")

    # Wallet
    SIGNUP_GRANT_CREDITS = data.get("SIGNUP_GRANT_CREDITS", 2)

    # Ledger Reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
