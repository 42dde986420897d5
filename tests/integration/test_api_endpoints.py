"""API endpoint integration tests.

Tests the FastAPI endpoints for payroll runs and entries.
"""

from datetime import datetime

import pytest
import pytz
from httpx import ASGITransport, AsyncClient

from tests.integration.conftest import build_test_app

pytestmark = pytest.mark.asyncio


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should report database and scheduler state."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["scheduler"] == "disabled"
        assert "timestamp" in data

    async def test_liveness_check(self, client: AsyncClient):
        """Liveness endpoint should return 200."""
        response = await client.get("/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"


class TestPayrollRunEndpoints:
    """Test payroll run endpoints."""

    async def test_create_run(self, client: AsyncClient):
        """POST /api/v1/payroll-runs creates an UNPAID run."""
        response = await client.post("/api/v1/payroll-runs", json={"run_date": "2024-03-20"})

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["status"] == "UNPAID"
        assert data["amount"] == 0
        assert data["run_date"] == "2024-03-20"

    async def test_create_run_with_invalid_status(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payroll-runs",
            json={"run_date": "2024-03-20", "status": "PAGO"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS"

        listing = await client.get("/api/v1/payroll-runs")
        assert listing.json()["total"] == 0

    async def test_malformed_body(self, client: AsyncClient):
        response = await client.post("/api/v1/payroll-runs", json={"run_date": "not-a-date"})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    async def test_get_run(self, client: AsyncClient, seeded_db):
        run_id = seeded_db["march_run_id"]

        response = await client.get(f"/api/v1/payroll-runs/{run_id}")

        assert response.status_code == 200
        assert response.json()["payroll_run_id"] == run_id

    async def test_get_missing_run(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll-runs/999")

        assert response.status_code == 404
        assert response.json()["code"] == "RUN_NOT_FOUND"

    async def test_list_runs_by_month(self, client: AsyncClient, seeded_db):
        response = await client.get("/api/v1/payroll-runs", params={"month": 3, "year": 2024})

        assert response.status_code == 200
        assert response.json()["total"] == 1

        empty = await client.get("/api/v1/payroll-runs", params={"month": 4, "year": 2024})
        assert empty.json() == {"items": [], "total": 0}

    async def test_list_runs_invalid_month(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll-runs", params={"month": 13})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    async def test_pay_then_pay_again(self, client: AsyncClient, seeded_db):
        run_id = seeded_db["march_run_id"]

        first = await client.post(f"/api/v1/payroll-runs/{run_id}/pay")
        assert first.status_code == 200
        assert first.json()["status"] == "PAID"

        second = await client.post(f"/api/v1/payroll-runs/{run_id}/pay")
        assert second.status_code == 409
        assert second.json()["code"] == "ALREADY_PAID"

        current = await client.get(f"/api/v1/payroll-runs/{run_id}")
        assert current.json()["status"] == "PAID"

    async def test_reset_and_delete(self, client: AsyncClient, seeded_db):
        run_id = seeded_db["march_run_id"]
        await client.post(f"/api/v1/payroll-runs/{run_id}/pay")

        reset = await client.post(f"/api/v1/payroll-runs/{run_id}/reset")
        assert reset.json()["status"] == "UNPAID"

        await client.post(f"/api/v1/payroll-runs/{run_id}/pay")
        deleted = await client.delete(f"/api/v1/payroll-runs/{run_id}")
        assert deleted.status_code == 200
        assert deleted.json()["status"] == "UNPAID"

        still_there = await client.get(f"/api/v1/payroll-runs/{run_id}")
        assert still_there.status_code == 200

    async def test_generate_run(self, client: AsyncClient, seeded_db):
        response = await client.post(
            "/api/v1/payroll-runs/generate",
            json={"run_date": "2024-04-20"},
        )

        assert response.status_code == 201, response.text
        report = response.json()
        assert report["success"] is True
        assert len(report["entry_ids"]) == 2

        run = await client.get(f"/api/v1/payroll-runs/{report['payroll_run_id']}")
        # March incidences fall before the 2024-03-20..2024-04-20 window
        assert run.json()["amount"] == 2_000_000 + 1_500_000

        entries = await client.get(f"/api/v1/payroll-runs/{report['payroll_run_id']}/entries")
        assert [e["worker_name"] for e in entries.json()["items"]] == [
            "Maria Lopez",
            "Jose Ruiz",
        ]

    @pytest.mark.parametrize("zone", ["Pacific/Kiritimati", "Pacific/Pago_Pago"])
    async def test_generate_defaults_to_today_in_payroll_zone(self, session_factory, zone):
        """Without run_date the run is dated today where payroll is kept."""
        app = build_test_app(session_factory, timezone_name=zone)
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as zoned:
            response = await zoned.post("/api/v1/payroll-runs/generate", json={})
            assert response.status_code == 201, response.text

            run = await zoned.get(f"/api/v1/payroll-runs/{response.json()['payroll_run_id']}")

        expected = datetime.now(pytz.timezone(zone)).date()
        assert run.json()["run_date"] == expected.isoformat()


class TestPayrollEntryEndpoints:
    """Test payroll entry endpoints."""

    async def test_create_entry(self, client: AsyncClient, seeded_db):
        """Base salary plus incidences: 2,000,000 + 50,000 - 20,000."""
        response = await client.post(
            "/api/v1/payroll-entries",
            json={
                "worker_id": seeded_db["maria_id"],
                "payroll_run_id": seeded_db["march_run_id"],
            },
        )

        assert response.status_code == 201, response.text
        data = response.json()
        assert data["base_salary"] == 2_000_000
        assert data["incidence_total"] == 30_000
        assert data["total"] == 2_030_000
        assert data["worker_name"] == "Maria Lopez"
        assert data["details"] == "Payroll for month of March, plus incidences if applicable"

        run = await client.get(f"/api/v1/payroll-runs/{seeded_db['march_run_id']}")
        assert run.json()["amount"] == 2_030_000

    async def test_duplicate_entry(self, client: AsyncClient, seeded_db):
        payload = {
            "worker_id": seeded_db["maria_id"],
            "payroll_run_id": seeded_db["march_run_id"],
        }
        await client.post("/api/v1/payroll-entries", json=payload)

        response = await client.post("/api/v1/payroll-entries", json=payload)

        assert response.status_code == 409
        assert response.json()["code"] == "DUPLICATE_ENTRY"

    async def test_unknown_worker(self, client: AsyncClient, seeded_db):
        response = await client.post(
            "/api/v1/payroll-entries",
            json={"worker_id": 999, "payroll_run_id": seeded_db["march_run_id"]},
        )

        assert response.status_code == 404
        assert response.json()["code"] == "WORKER_NOT_FOUND"

    async def test_non_positive_id(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payroll-entries",
            json={"worker_id": 0, "payroll_run_id": 1},
        )

        assert response.status_code == 400

    async def test_search_paid_in_unpaid_month(self, client: AsyncClient, seeded_db):
        await client.post(
            "/api/v1/payroll-entries",
            json={
                "worker_id": seeded_db["maria_id"],
                "payroll_run_id": seeded_db["march_run_id"],
            },
        )

        response = await client.get(
            "/api/v1/payroll-entries/search",
            params={"worker_id": seeded_db["maria_id"], "paid": True, "month": 3, "year": 2024},
        )

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}

        unpaid = await client.get(
            "/api/v1/payroll-entries/search",
            params={"worker_id": seeded_db["maria_id"], "unpaid": True, "current": True},
        )
        assert unpaid.json()["total"] == 1

    async def test_month_report(self, client: AsyncClient, seeded_db):
        for worker_id in (seeded_db["maria_id"], seeded_db["jose_id"]):
            await client.post(
                "/api/v1/payroll-entries",
                json={"worker_id": worker_id, "payroll_run_id": seeded_db["march_run_id"]},
            )

        response = await client.get(
            "/api/v1/payroll-entries/month",
            params={"month": 3, "year": 2024},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert {e["last_name"] for e in data["items"]} == {"Lopez", "Ruiz"}

    async def test_month_report_requires_month(self, client: AsyncClient):
        response = await client.get("/api/v1/payroll-entries/month", params={"year": 2024})

        assert response.status_code == 400
