"""Reconciliation of registry data, live extraction and manual overrides."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional
from urllib.parse import quote

from .cache import RecordCache
from .config import DEFAULT_LOCALE, OPERATOR_URL
from .errors import InterstitialPageDetected
from .extractor import extract, is_interstitial
from .fetcher import PageFetcher
from .models import ChargerRecord
from .overrides import ManualOverrideEntry, ManualOverrideStore
from .registry import ChargerInfo, ChargerRegistry
from .status import ChargerStatus, UpdatedBy, normalize_locale, stable_fallback_status, status_label


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def operator_url(charger_id: str, template: str = OPERATOR_URL) -> str:
    return template.format(evse_id=quote(charger_id, safe=""))


class ChargerStatusService:
    def __init__(
        self,
        registry: ChargerRegistry,
        fetcher: PageFetcher,
        overrides: ManualOverrideStore,
        cache: RecordCache,
        locale: str = DEFAULT_LOCALE,
        url_template: str = OPERATOR_URL,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.registry = registry
        self.fetcher = fetcher
        self.overrides = overrides
        self.cache = cache
        self.locale = normalize_locale(locale)
        self.url_template = url_template
        self._now = now

    async def resolve(self, charger_id: str, bypass_cache: bool = False, locale: Optional[str] = None) -> ChargerRecord:
        """Current record for ``charger_id``.

        Fetch and extraction failures never propagate; they produce a fallback
        record with ``isRealTime=False`` and ``error`` set instead.
        """
        locale = normalize_locale(locale or self.locale)
        if not bypass_cache:
            cached = self.cache.get(charger_id)
            if cached is not None:
                logging.debug(f"Cache hit for {charger_id}")
                return self._localize(cached, locale)

        info = self.registry.lookup(charger_id)
        try:
            record = await self._live_record(info, locale)
        except Exception as e:
            reason = str(e) or e.__class__.__name__
            logging.warning(f"Falling back to simulated data for {charger_id}: {reason}")
            record = self._fallback_record(info, locale, reason)

        entry = self.overrides.get_status(charger_id)
        if entry is not None:
            record = self._apply_override(record, entry, locale)

        self.cache.put(charger_id, record)
        return record

    async def resolve_many(
        self, charger_ids: Iterable[str], bypass_cache: bool = False, locale: Optional[str] = None
    ) -> List[ChargerRecord]:
        return list(
            await asyncio.gather(*(self.resolve(cid, bypass_cache, locale) for cid in charger_ids))
        )

    async def set_status(self, charger_id: str, status: str, locale: Optional[str] = None) -> ChargerRecord:
        self.overrides.set_status(charger_id, status)
        return await self.resolve(charger_id, locale=locale)

    async def close(self) -> None:
        await self.fetcher.close()

    async def _live_record(self, info: ChargerInfo, locale: str) -> ChargerRecord:
        html = await self.fetcher.fetch(operator_url(info.charger_id, self.url_template))
        if is_interstitial(html):
            raise InterstitialPageDetected("Operator returned its landing page instead of charger data")
        page = extract(html, locale)
        status, status_text = page.status, page.status_text
        if page.page_error:
            status, status_text = ChargerStatus.ERROR, status_label(ChargerStatus.ERROR, locale)
        return ChargerRecord(
            chargerId=info.charger_id,
            status=status,
            statusText=status_text,
            location=info.location,
            operator=info.operator,
            address=info.address,
            plugType=page.plug_type or info.plug_type,
            power=page.power or info.power,
            price=page.price or info.price,
            lastUpdated=_iso(self._now()),
            isRealTime=True,
            updatedBy=UpdatedBy.SYSTEM,
            error=page.page_error,
        )

    def _fallback_record(self, info: ChargerInfo, locale: str, reason: str) -> ChargerRecord:
        status = stable_fallback_status(info.charger_id)
        return ChargerRecord(
            chargerId=info.charger_id,
            status=status,
            statusText=status_label(status, locale),
            location=info.location,
            operator=info.operator,
            address=info.address,
            plugType=info.plug_type,
            power=info.power,
            price=info.price,
            lastUpdated=_iso(self._now()),
            isRealTime=False,
            updatedBy=UpdatedBy.SYSTEM,
            error=reason,
        )

    @staticmethod
    def _apply_override(record: ChargerRecord, entry: ManualOverrideEntry, locale: str) -> ChargerRecord:
        return record.model_copy(
            update={
                "status": entry.status,
                "statusText": status_label(entry.status, locale),
                "updatedBy": UpdatedBy.USER,
                "lastUpdated": _iso(entry.set_at),
            }
        )

    @staticmethod
    def _localize(record: ChargerRecord, locale: str) -> ChargerRecord:
        text = status_label(record.status, locale)
        if text == record.statusText:
            return record
        return record.model_copy(update={"statusText": text})


def build_service(registry: ChargerRegistry, fetcher: PageFetcher) -> ChargerStatusService:
    cache = RecordCache()
    return ChargerStatusService(registry, fetcher, ManualOverrideStore(cache), cache)
