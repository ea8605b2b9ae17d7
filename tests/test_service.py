import pytest

from chargewatch.errors import FetchError, InputError
from chargewatch.status import stable_fallback_status

from conftest import CHARGING_PAGE, INTERSTITIAL_PAGE, charger_page

CID = "DE*MDS*E006234"


@pytest.mark.asyncio
async def test_live_record_prefers_extracted_values(service, fetcher):
    record = await service.resolve(CID)
    assert fetcher.urls == ["https://operator.test/?evseId=DE%2AMDS%2AE006234"]
    assert record.status == "available"
    assert record.statusText == "Verfügbar"
    assert record.isRealTime is True
    assert record.updatedBy == "system"
    assert record.error is None
    # page values over registry defaults
    assert record.power == "11 kW"
    assert record.price == "0,49 €/kWh"
    assert record.plugType == "Typ 2"
    # registry values kept
    assert record.location == "Ladestation E006234"
    assert record.address == "Dampfschiffweg 2, 21079 Hamburg"
    assert record.lastUpdated == "2024-05-01T12:00:00Z"


@pytest.mark.asyncio
async def test_registry_defaults_when_page_lacks_details(service, fetcher):
    fetcher.html = CHARGING_PAGE
    record = await service.resolve(CID)
    assert record.status == "charging"
    assert record.power == "22 kW"
    assert record.price == "0.625 €/kWh"
    assert record.plugType == "Type 2 (Mennekes)"


@pytest.mark.asyncio
async def test_unknown_charger_gets_synthesized_defaults(service):
    record = await service.resolve("DE*PRI*E000001")
    assert record.chargerId == "DE*PRI*E000001"
    assert record.location == "Ladestation E000001"
    assert record.operator == "AUG. PRIEN Bauunternehmung (GmbH & Co. KG)"


@pytest.mark.asyncio
async def test_cached_record_is_stable(service, fetcher):
    first = await service.resolve(CID)
    fetcher.html = CHARGING_PAGE
    second = await service.resolve(CID)
    assert second.model_dump_json() == first.model_dump_json()
    assert len(fetcher.urls) == 1


@pytest.mark.asyncio
async def test_cache_expires_after_ttl(service, fetcher, clock):
    await service.resolve(CID)
    fetcher.html = CHARGING_PAGE
    clock.advance(29)
    assert (await service.resolve(CID)).status == "available"
    clock.advance(1)
    assert (await service.resolve(CID)).status == "charging"
    assert len(fetcher.urls) == 2


@pytest.mark.asyncio
async def test_bypass_cache_refetches(service, fetcher):
    await service.resolve(CID)
    fetcher.html = CHARGING_PAGE
    record = await service.resolve(CID, bypass_cache=True)
    assert record.status == "charging"
    assert len(fetcher.urls) == 2
    # the fresh record replaces the cached one
    assert (await service.resolve(CID)).status == "charging"


@pytest.mark.asyncio
async def test_fetch_failure_gives_deterministic_fallback(service, fetcher):
    fetcher.error = FetchError("Failed to fetch charger data: 503 Service Unavailable")
    first = await service.resolve(CID, bypass_cache=True)
    second = await service.resolve(CID, bypass_cache=True)
    assert first.status == second.status == stable_fallback_status(CID)
    assert first.isRealTime is False
    assert first.error == "Failed to fetch charger data: 503 Service Unavailable"
    assert first.updatedBy == "system"
    assert first.power == "22 kW"


@pytest.mark.asyncio
async def test_unexpected_exception_is_absorbed(service, fetcher):
    fetcher.error = RuntimeError()
    record = await service.resolve(CID)
    assert record.isRealTime is False
    assert record.error == "RuntimeError"


@pytest.mark.asyncio
async def test_interstitial_page_is_a_fetch_failure(service, fetcher):
    fetcher.html = INTERSTITIAL_PAGE
    record = await service.resolve(CID)
    assert record.isRealTime is False
    assert record.status == stable_fallback_status(CID)
    assert "landing page" in record.error


@pytest.mark.asyncio
async def test_page_without_marker_is_unknown_but_real_time(service, fetcher):
    fetcher.html = "<html><body><h1>AUG. PRIEN</h1><p>Ladepunkt</p></body></html>"
    record = await service.resolve(CID)
    assert record.status == "unknown"
    assert record.statusText == "Unbekannt"
    assert record.isRealTime is True
    assert record.error is None


@pytest.mark.asyncio
async def test_operator_error_alert(service, fetcher):
    fetcher.html = charger_page(
        "bg-success", "Verfügbar", '<div class="alert alert-danger">Error: EVSE offline</div>'
    )
    record = await service.resolve(CID)
    assert record.status == "error"
    assert record.statusText == "Fehler"
    assert record.error == "Error: EVSE offline"
    assert record.isRealTime is True


@pytest.mark.asyncio
async def test_override_wins_over_live_status(service):
    service.overrides.set_status(CID, "maintenance")
    record = await service.resolve(CID)
    assert record.status == "maintenance"
    assert record.statusText == "Wartung"
    assert record.updatedBy == "user"
    assert record.isRealTime is True
    assert record.power == "11 kW"


@pytest.mark.asyncio
async def test_override_wins_when_fetch_fails(service, fetcher):
    fetcher.error = FetchError("Timed out after 30s fetching x")
    service.overrides.set_status(CID, "available")
    record = await service.resolve(CID)
    assert record.status == "available"
    assert record.updatedBy == "user"
    assert record.isRealTime is False
    assert record.error == "Timed out after 30s fetching x"


@pytest.mark.asyncio
async def test_set_status_invalidates_cache_but_override_applies(service, fetcher):
    fetcher.html = CHARGING_PAGE
    assert (await service.resolve(CID)).status == "charging"

    service.overrides.set_status(CID, "available")
    assert CID not in service.cache

    record = await service.resolve(CID, bypass_cache=False)
    assert record.status == "available"
    assert record.updatedBy == "user"
    assert record.lastUpdated == "2024-05-01T12:00:00Z"
    assert len(fetcher.urls) == 2


@pytest.mark.asyncio
async def test_set_status_returns_resolved_record(service):
    record = await service.set_status(CID, "error", locale="en")
    assert record.status == "error"
    assert record.statusText == "Error"
    assert record.updatedBy == "user"


@pytest.mark.asyncio
async def test_invalid_status_keeps_previous_override(service):
    service.overrides.set_status(CID, "charging")
    with pytest.raises(InputError):
        await service.set_status(CID, "bogus")
    assert service.overrides.get_status(CID).status == "charging"
    assert (await service.resolve(CID)).status == "charging"


@pytest.mark.asyncio
async def test_cached_record_relabelled_for_locale(service, fetcher):
    de = await service.resolve(CID)
    en = await service.resolve(CID, locale="en")
    assert de.statusText == "Verfügbar"
    assert en.statusText == "Available"
    assert len(fetcher.urls) == 1


@pytest.mark.asyncio
async def test_concurrent_resolutions_keep_separate_entries(service, fetcher):
    other = "DE*MDS*E006198"
    fetcher.pages = {other: CHARGING_PAGE}
    records = await service.resolve_many([CID, other])
    assert [r.chargerId for r in records] == [CID, other]
    assert [r.status for r in records] == ["available", "charging"]
    assert service.cache.get(CID).status == "available"
    assert service.cache.get(other).status == "charging"


@pytest.mark.asyncio
async def test_close_releases_fetcher(service, fetcher):
    await service.close()
    assert fetcher.closed
