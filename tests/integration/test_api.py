"""
Integration tests for the LeakTrace API.

Every test runs against the spike scenario written to a temporary data
directory (see the ``data_dir`` and ``client`` fixtures in conftest).

Endpoints tested:
- System: health, record snapshot health, cache invalidation
- Investigations: run, latest
- Analysis: drift, risk, anomalies
- Alerts: list
"""

import json

from tests.conftest import ENTITY


# =============================================================================
# System
# =============================================================================


class TestSystemEndpoints:
    """Test health and cache management."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")

        assert response.headers.get("X-Request-ID")

    def test_system_health_reports_snapshot(self, client):
        response = client.get("/api/v1/system/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["records"]["billing"] == 1040
        assert data["records"]["events"] == 5
        assert data["entities"] == [ENTITY]

    def test_cache_invalidate_reports_previous_state(self, client):
        first = client.post("/api/v1/system/cache/invalidate")
        assert first.json()["data"]["invalidated"] is False

        client.get("/api/v1/system/health")
        second = client.post("/api/v1/system/cache/invalidate")
        assert second.json()["data"]["invalidated"] is True

    def test_cache_invalidate_picks_up_new_files(self, client, data_dir):
        client.get("/api/v1/system/health")
        (data_dir / "churn_events.json").write_text("[]", encoding="utf-8")

        stale = client.get("/api/v1/system/health").json()["data"]
        assert stale["records"]["churn"] == 6

        client.post("/api/v1/system/cache/invalidate")
        fresh = client.get("/api/v1/system/health").json()["data"]
        assert fresh["records"]["churn"] == 0


# =============================================================================
# Investigations
# =============================================================================


class TestInvestigationEndpoints:
    """Test running and retrieving investigations."""

    def test_run_investigation_confirms_culprit(self, client):
        response = client.post(
            "/api/v1/investigations",
            json={"entity": ENTITY, "baseline_end": "2026-02-10"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["verdict"] == "CAUSAL_LINK_CONFIRMED"
        assert data["culprit"]["version"] == "v2.0.0"
        assert [s["step"] for s in data["reasoning_steps"]] == [
            "detect",
            "investigate",
            "correlate",
            "quantify",
            "decide",
            "explain",
        ]

    def test_run_investigation_defaults_to_end_of_last_day(self, client):
        response = client.post("/api/v1/investigations", json={"entity": ENTITY})

        data = response.json()["data"]
        assert data["investigation_id"] == f"inv_{ENTITY}_20260216T235959"
        assert data["analysis_instant"].startswith("2026-02-16T23:59:59")

    def test_run_investigation_repeatable(self, client):
        payload = {
            "entity": ENTITY,
            "analysis_instant": "2026-02-16T23:59:00Z",
            "baseline_end": "2026-02-10",
        }

        first = client.post("/api/v1/investigations", json=payload).json()
        second = client.post("/api/v1/investigations", json=payload).json()

        assert first == second

    def test_run_investigation_unknown_entity_is_degraded(self, client):
        response = client.post("/api/v1/investigations", json={"entity": "ghost-service"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["culprit"] is None
        assert data["verdict"] == "ANOMALY_DETECTED_UNCLEAR_CAUSE"

    def test_run_investigation_requires_entity(self, client):
        response = client.post("/api/v1/investigations", json={"entity": ""})

        assert response.status_code == 422

    def test_latest_investigation_not_found_initially(self, client):
        response = client.get("/api/v1/investigations/latest")

        assert response.status_code == 404

    def test_latest_investigation_after_run(self, client):
        run = client.post(
            "/api/v1/investigations",
            json={"entity": ENTITY, "baseline_end": "2026-02-10"},
        ).json()["data"]

        response = client.get("/api/v1/investigations/latest")

        assert response.status_code == 200
        assert response.json()["data"] == run

    def test_malformed_record_returns_422(self, client, data_dir):
        records = json.loads((data_dir / "invoices.json").read_text(encoding="utf-8"))
        del records[5]["expected_amount"]
        (data_dir / "invoices.json").write_text(json.dumps(records), encoding="utf-8")
        client.post("/api/v1/system/cache/invalidate")

        response = client.post("/api/v1/investigations", json={"entity": ENTITY})

        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["kind"] == "billing"
        assert body["index"] == 5
        assert body["record_id"] == records[5]["record_id"]


# =============================================================================
# Analysis
# =============================================================================


class TestAnalysisEndpoints:
    """Test on-demand component endpoints."""

    def test_drift_with_baseline_end(self, client):
        response = client.get(
            "/api/v1/analysis/drift",
            params={"entity": ENTITY, "baseline_end": "2026-02-10"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_spike"] is True
        assert data["spike_onset"] == "2026-02-10"
        assert data["significance_tier"] == "HIGH_SIGNAL"
        assert abs(data["drift_factor"] - 17.5) < 1e-6

    def test_drift_defaults_to_latest_release(self, client):
        response = client.get("/api/v1/analysis/drift", params={"entity": ENTITY})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["baseline_end"] == "2026-02-10"
        assert data["is_spike"] is True
        assert abs(data["drift_factor"] - 17.5) < 1e-6

    def test_drift_requires_entity(self, client):
        response = client.get("/api/v1/analysis/drift")

        assert response.status_code == 422

    def test_risk_breakdown(self, client):
        response = client.get(
            "/api/v1/analysis/risk",
            params={"entity": ENTITY, "analysis_instant": "2026-02-16T23:59:00Z"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["category"] == "LOW"
        assert set(data["components"]) == {"anomaly_rate", "loss_ratio", "recency"}
        assert abs(data["score"] - 0.1937) < 1e-3

    def test_anomalies_listing(self, client):
        response = client.get("/api/v1/analysis/anomalies", params={"entity": ENTITY})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["entity"] == ENTITY
        assert data["count"] == len(data["anomalies"])

    def test_entities_report_drift_status(self, client):
        response = client.get("/api/v1/analysis/entities")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 1
        entity = data["entities"][0]
        assert entity["entity"] == ENTITY
        assert entity["status"] == "SPIKING"
        assert abs(entity["drift_factor"] - 17.5) < 1e-6
        assert entity["total_records"] == 1040
        assert entity["anomaly_count"] == 67
        assert abs(entity["anomaly_rate"] - 67 / 1040) < 1e-9
        assert abs(entity["loss"] - 1340.0) < 1e-6
        assert entity["latest_deployment"]["version"] == "v2.0.0"

    def test_timeline_daily_series_and_markers(self, client):
        response = client.get("/api/v1/analysis/timeline", params={"entity": ENTITY})

        assert response.status_code == 200
        data = response.json()["data"]
        timeline = data["timeline"]
        assert len(timeline) == 16
        spike_day = next(d for d in timeline if d["day"] == "2026-02-10")
        assert spike_day["total"] == 20
        assert spike_day["anomalies"] == 7
        assert abs(spike_day["anomaly_rate"] - 0.35) < 1e-9
        assert abs(spike_day["loss"] - 140.0) < 1e-6

        markers = data["deployment_markers"]
        assert [m["version"] for m in markers] == ["v1.0.0", "v1.1.0", "v2.0.0"]
        assert markers[-1]["classification"] == "STRONG_CAUSAL_LINK"
        assert abs(markers[-1]["confidence"] - 1.0) < 1e-6

    def test_timeline_unknown_entity_is_empty(self, client):
        response = client.get("/api/v1/analysis/timeline", params={"entity": "ghost-service"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["timeline"] == []
        assert data["deployment_markers"] == []


# =============================================================================
# Alerts
# =============================================================================


class TestAlertEndpoints:
    """Test threshold alerts across entities."""

    def test_list_alerts_most_severe_first(self, client):
        response = client.get("/api/v1/alerts")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 2
        assert data["critical_count"] == 1
        assert data["alerts"][0]["alert_type"] == "ANOMALY_SPIKE"
        assert data["alerts"][0]["severity"] == "CRITICAL"
        assert data["alerts"][1]["alert_type"] == "REVENUE_LOSS"
