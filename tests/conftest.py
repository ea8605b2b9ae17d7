from datetime import datetime, timezone
from urllib.parse import quote

import pytest

from chargewatch.cache import RecordCache
from chargewatch.fetcher import PageFetcher
from chargewatch.models import ChargerRecord
from chargewatch.overrides import ManualOverrideStore
from chargewatch.registry import ChargerRegistry
from chargewatch.service import ChargerStatusService

OPERATOR_URL = "https://operator.test/?evseId={evse_id}"
FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def charger_page(badge_class: str, badge_text: str, extra: str = "") -> str:
    return f"""
    <html><body>
      <h1>AUG. PRIEN Bauunternehmung (GmbH &amp; Co. KG)</h1>
      <div class="card">
        <span class="badge rounded-pill {badge_class}">{badge_text}</span>
        {extra}
      </div>
    </body></html>
    """


AVAILABLE_PAGE = charger_page(
    "bg-success", "Verfügbar", "<p>Typ 2</p><p>Leistung: 11 kW</p><p>Preis: 0,49 €/kWh</p>"
)
CHARGING_PAGE = charger_page("bg-secondary", "Besetzt")
INTERSTITIAL_PAGE = "<html><body><h2>Adhoc Payment</h2><p>Bitte Ladepunkt wählen</p></body></html>"


class FakeFetcher(PageFetcher):
    """Returns canned markup, per charger id when ``pages`` has an entry."""

    name = "fake"

    def __init__(self, html=AVAILABLE_PAGE, pages=None, error=None):
        self.html = html
        self.pages = pages or {}
        self.error = error
        self.urls: list[str] = []
        self.closed = False

    async def fetch(self, url, headers=None):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        for charger_id, html in self.pages.items():
            if quote(charger_id, safe="") in url:
                return html
        return self.html

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def service(fetcher, clock):
    cache = RecordCache(ttl=30, clock=clock)
    overrides = ManualOverrideStore(cache, now=lambda: FIXED_NOW)
    return ChargerStatusService(
        ChargerRegistry(),
        fetcher,
        overrides,
        cache,
        locale="de",
        url_template=OPERATOR_URL,
        now=lambda: FIXED_NOW,
    )


def make_record(charger_id: str, status: str = "available") -> ChargerRecord:
    return ChargerRecord(
        chargerId=charger_id,
        status=status,
        statusText="Verfügbar",
        location="Ladestation",
        operator="op",
        address="addr",
        plugType="Typ 2",
        power="22 kW",
        price="0,49 €/kWh",
        lastUpdated="2024-05-01T12:00:00Z",
        isRealTime=True,
    )
