import asyncio
import sys
import time
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.api.routes_calculator import configure_calculator, position_size, router  # noqa: E402
from backend.risk.risk_engine import DegenerateInputError  # noqa: E402
from backend.trading.calculator import RiskCalculator  # noqa: E402
from backend.trading.schemas import CalculatorRequest  # noqa: E402


class RecordingSink:
    def __init__(self) -> None:
        self.events = []

    def track(self, element_id, action, metadata=None):
        self.events.append((element_id, action, metadata))


class SlowSink:
    def __init__(self, delay: float) -> None:
        self.delay = delay

    def track(self, element_id, action, metadata=None):
        time.sleep(self.delay)


class ExplodingCalculator:
    def calculate(self, raw):
        raise DegenerateInputError("Risk per share must be positive")


def build_client(calculator) -> TestClient:
    app = FastAPI()
    configure_calculator(calculator)
    app.include_router(router)
    return TestClient(app)


def test_position_size_success_payload():
    sink = RecordingSink()
    client = build_client(RiskCalculator(event_sink=sink))
    payload = {
        "principal": "10000",
        "riskPercentage": "2",
        "buyPrice": "2.50",
        "stopLoss": "2.25",
        "market": "MY",
    }
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["market"] == "MY"
    assert data["riskAmount"] == 200
    assert data["riskBasedShares"] == 800
    assert data["capitalBasedShares"] == 4000
    assert data["finalShareCountPreLot"] == 800
    assert data["maxLots"] == 8
    assert data["maxShares"] == 800
    assert data["positionValue"] == 2000
    assert data["isValid"] is True
    assert data["warnings"] == []
    assert data["validationErrors"] == {}
    assert data["formatted"] == {
        "riskAmount": "RM200.00",
        "positionValue": "RM2,000.00",
        "actualRiskAmount": "RM200.00",
    }
    assert data["summary"].startswith("Buy 8 lots (800 shares) at RM2.50 per share.")
    assert len(sink.events) == 1


def test_position_size_accepts_numbers():
    client = build_client(RiskCalculator())
    payload = {"principal": 1000, "riskPercentage": 10, "buyPrice": 50, "stopLoss": 49, "market": "US"}
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["maxShares"] == 20
    assert data["maxLots"] is None
    assert data["warnings"] == ["High risk: Consider risking no more than 2-5% per trade"]


def test_position_size_unaffordable_has_no_summary():
    client = build_client(RiskCalculator())
    payload = {"principal": "50", "riskPercentage": "2", "buyPrice": "100", "stopLoss": "90", "market": "US"}
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 200
    data = resp.json()
    assert data["isValid"] is False
    assert data["summary"] is None
    assert data["warnings"][-1].startswith("Cannot afford any shares")


def test_position_size_validation_errors():
    sink = RecordingSink()
    client = build_client(RiskCalculator(event_sink=sink))
    payload = {"principal": "", "riskPercentage": "2", "buyPrice": "10", "stopLoss": "10", "market": "US"}
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "validation_error"
    assert body["validationErrors"] == {
        "principal": "Principal must be greater than 0",
        "stopLoss": "Stop loss must be lower than buy price",
    }
    assert body["context"]["codes"] == {"principal": "out_of_range", "stopLoss": "invalid_ordering"}
    assert sink.events == []


def test_position_size_sizing_error_returns_500():
    client = build_client(ExplodingCalculator())
    payload = {"principal": "1", "riskPercentage": "1", "buyPrice": "2", "stopLoss": "1", "market": "US"}
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 500
    assert resp.json()["error"] == "sizing_error"


def test_markets_endpoint_lists_rules():
    client = build_client(RiskCalculator())
    resp = client.get("/api/calculator/markets")
    assert resp.status_code == 200
    data = resp.json()
    assert [m["code"] for m in data] == ["MY", "SG", "CN", "HK", "US"]
    us = data[-1]
    assert us["lotSize"] == 1
    assert us["usesLots"] is False
    assert us["currencyCode"] == "USD"


def test_app_factory_wires_health_and_calculator(monkeypatch):
    monkeypatch.setenv("ANALYTICS_MODE", "off")
    from backend.core.config import get_settings
    from backend.main import create_app

    get_settings.cache_clear()
    try:
        client = TestClient(create_app())
        assert client.get("/health").json() == {"status": "ok"}
        resp = client.post(
            "/api/calculator/position-size",
            json={"principal": "10000", "riskPercentage": "2", "buyPrice": "2.50", "stopLoss": "2.25"},
        )
        assert resp.status_code == 200
        assert resp.json()["market"] == "MY"
    finally:
        get_settings.cache_clear()


def test_position_size_overflowing_inputs_return_sizing_error():
    client = build_client(RiskCalculator())
    payload = {"principal": "1e307", "riskPercentage": "100", "buyPrice": "1", "stopLoss": "0.5", "market": "US"}
    resp = client.post("/api/calculator/position-size", json=payload)
    assert resp.status_code == 500
    assert resp.json()["error"] == "sizing_error"


def test_slow_event_sink_does_not_block_event_loop():
    calculator = RiskCalculator(event_sink=SlowSink(0.3))
    request = CalculatorRequest(principal="1000", risk_percentage="10", buy_price="50", stop_loss="49", market="US")

    async def run():
        ticks = 0
        done = asyncio.Event()

        async def ticker():
            nonlocal ticks
            while not done.is_set():
                await asyncio.sleep(0.02)
                ticks += 1

        ticker_task = asyncio.create_task(ticker())
        started = time.monotonic()
        responses = await asyncio.gather(
            position_size(request, calculator=calculator),
            position_size(request, calculator=calculator),
        )
        elapsed = time.monotonic() - started
        done.set()
        await ticker_task
        return responses, elapsed, ticks

    responses, elapsed, ticks = asyncio.run(run())
    assert all(r.max_shares == 20 for r in responses)
    # Both calls share the slow sink delay instead of running back to back.
    assert elapsed < 0.55
    assert ticks >= 5


def test_validation_error_schema_uses_camel_case():
    client = build_client(RiskCalculator())
    schema = client.get("/openapi.json").json()["components"]["schemas"]["ValidationErrorResponse"]
    assert "validationErrors" in schema["properties"]
    assert "validation_errors" not in schema["properties"]
