import os

# Operator page; {evse_id} is URL-encoded before substitution
OPERATOR_URL = os.getenv("OPERATOR_URL", "https://www.chrg.direct/?evseId={evse_id}")
OPERATOR_NAME = os.getenv("OPERATOR_NAME", "AUG. PRIEN")
PAYMENT_MARKER = os.getenv("PAYMENT_MARKER", "Adhoc Payment")

# http | browser | disabled
FETCHER_BACKEND = os.getenv("FETCHER_BACKEND", "http").strip().lower()
FETCH_TIMEOUT_SEC = float(os.getenv("FETCH_TIMEOUT_SEC", "30"))
BADGE_WAIT_SEC = float(os.getenv("BADGE_WAIT_SEC", "5"))
PAGE_SETTLE_SEC = float(os.getenv("PAGE_SETTLE_SEC", "2"))
USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
)

CACHE_TTL_SEC = float(os.getenv("CACHE_TTL_SEC", "30"))
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "de").strip().lower()

MONITORED_CHARGERS = [
    cid.strip()
    for cid in os.getenv(
        "MONITORED_CHARGERS",
        "DE*MDS*E006234,DE*MDS*E006198,DE*PRI*E000001,DE*PRI*E000002",
    ).split(",")
    if cid.strip()
]
# JSON file replacing the built-in registry (optional)
CHARGER_REGISTRY_FILE = os.getenv("CHARGER_REGISTRY_FILE")

HTTP_HOST = os.getenv("HTTP_HOST", "0.0.0.0")
HTTP_PORT = int(os.getenv("HTTP_PORT", "8080"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
