from typing import Dict, Optional, Tuple

from .config import DEFAULT_LOCALE


class ChargerStatus:
    AVAILABLE = "available"
    CHARGING = "charging"
    MAINTENANCE = "maintenance"
    ERROR = "error"
    UNKNOWN = "unknown"

    ALL = (AVAILABLE, CHARGING, MAINTENANCE, ERROR, UNKNOWN)


class UpdatedBy:
    SYSTEM = "system"
    USER = "user"


STATUS_LABELS: Dict[str, Dict[str, str]] = {
    "de": {
        ChargerStatus.AVAILABLE: "Verfügbar",
        ChargerStatus.CHARGING: "Besetzt",
        ChargerStatus.MAINTENANCE: "Wartung",
        ChargerStatus.ERROR: "Fehler",
        ChargerStatus.UNKNOWN: "Unbekannt",
    },
    "en": {
        ChargerStatus.AVAILABLE: "Available",
        ChargerStatus.CHARGING: "Occupied",
        ChargerStatus.MAINTENANCE: "Maintenance",
        ChargerStatus.ERROR: "Error",
        ChargerStatus.UNKNOWN: "Unknown",
    },
}

# badge colour suffix (bg-success, badge-success, text-success, ...) -> status
CLASS_TOKENS: Dict[str, str] = {
    "success": ChargerStatus.AVAILABLE,
    "warning": ChargerStatus.MAINTENANCE,
    "danger": ChargerStatus.ERROR,
    "secondary": ChargerStatus.CHARGING,
    "primary": ChargerStatus.CHARGING,
    "info": ChargerStatus.CHARGING,
}

# evaluated in order; whole-word, case-insensitive
STATUS_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (ChargerStatus.AVAILABLE, ("available", "verfügbar", "free")),
    (ChargerStatus.MAINTENANCE, ("maintenance", "wartung")),
    (ChargerStatus.ERROR, ("error", "fehler")),
    (ChargerStatus.CHARGING, ("charging", "besetzt", "occupied", "in use")),
)

FALLBACK_STATUSES = (
    ChargerStatus.AVAILABLE,
    ChargerStatus.CHARGING,
    ChargerStatus.MAINTENANCE,
    ChargerStatus.ERROR,
)


def normalize_locale(locale: Optional[str]) -> str:
    """Reduce ``de-DE``/``en_GB`` style tags to a supported label set."""
    if locale:
        lang = locale.strip().lower().replace("_", "-").split("-", 1)[0]
        if lang in STATUS_LABELS:
            return lang
    if DEFAULT_LOCALE in STATUS_LABELS:
        return DEFAULT_LOCALE
    return "de"


def status_label(status: str, locale: Optional[str] = None) -> str:
    labels = STATUS_LABELS[normalize_locale(locale)]
    return labels.get(status, labels[ChargerStatus.UNKNOWN])


def is_valid_status(status) -> bool:
    return isinstance(status, str) and status in ChargerStatus.ALL


def stable_fallback_status(charger_id: str) -> str:
    """Status used when no live data could be obtained.

    Derived from the code points of the id so repeated failures for the same
    charger report the same value.
    """
    total = sum(ord(ch) for ch in charger_id)
    return FALLBACK_STATUSES[total % len(FALLBACK_STATUSES)]
