from __future__ import annotations

import json
import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable

from .config import CHARGER_REGISTRY_FILE

REGISTRY_VERSION = "1"

DEFAULT_OPERATOR = "AUG. PRIEN Bauunternehmung (GmbH & Co. KG)"
DEFAULT_ADDRESS = "Dampfschiffweg 2, 21079 Hamburg"
DEFAULT_PLUG_TYPE = "Type 2 (Mennekes)"
DEFAULT_POWER = "22 kW"
DEFAULT_PRICE = "0.625 €/kWh"


@dataclass(frozen=True)
class ChargerInfo:
    """Static attributes of a charging point."""

    charger_id: str
    location: str
    plug_type: str = DEFAULT_PLUG_TYPE
    power: str = DEFAULT_POWER
    price: str = DEFAULT_PRICE
    address: str = DEFAULT_ADDRESS
    operator: str = DEFAULT_OPERATOR


BUILTIN_CHARGERS = (
    ChargerInfo("DE*MDS*E006234", "Ladestation E006234"),
    ChargerInfo("DE*MDS*E006198", "Ladestation E006198"),
)


def default_location(charger_id: str) -> str:
    serial = charger_id.rsplit("*", 1)[-1]
    return f"Ladestation {serial}"


class ChargerRegistry:
    def __init__(self, chargers: Iterable[ChargerInfo] = BUILTIN_CHARGERS, version: str = REGISTRY_VERSION):
        self.version = version
        self._chargers: Dict[str, ChargerInfo] = {c.charger_id: c for c in chargers}

    def __contains__(self, charger_id: str) -> bool:
        return charger_id in self._chargers

    def __len__(self) -> int:
        return len(self._chargers)

    def get(self, charger_id: str) -> ChargerInfo | None:
        return self._chargers.get(charger_id)

    def lookup(self, charger_id: str) -> ChargerInfo:
        """Known attributes for ``charger_id``, or synthesized defaults."""
        info = self._chargers.get(charger_id)
        if info is not None:
            return info
        return ChargerInfo(charger_id=charger_id, location=default_location(charger_id))

    @classmethod
    def from_file(cls, path: str) -> "ChargerRegistry":
        """Load a registry from JSON.

        Expected shape::

            {"version": "2", "chargers": {"DE*MDS*E006234": {"location": "...", "plugType": "..."}}}
        """
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        chargers = []
        for charger_id, attrs in raw.get("chargers", {}).items():
            info = ChargerInfo(charger_id=charger_id, location=attrs.get("location") or default_location(charger_id))
            info = replace(
                info,
                plug_type=attrs.get("plugType", info.plug_type),
                power=attrs.get("power", info.power),
                price=attrs.get("price", info.price),
                address=attrs.get("address", info.address),
                operator=attrs.get("operator", info.operator),
            )
            chargers.append(info)
        registry = cls(chargers, version=str(raw.get("version", REGISTRY_VERSION)))
        logging.info(f"Loaded charger registry v{registry.version} from {path} ({len(registry)} chargers)")
        return registry


def load_registry() -> ChargerRegistry:
    if CHARGER_REGISTRY_FILE:
        return ChargerRegistry.from_file(CHARGER_REGISTRY_FILE)
    return ChargerRegistry()
