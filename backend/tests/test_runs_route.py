"""Route tests for runs, analysis, storage, generated records and context packs."""
from fastapi.testclient import TestClient

from stress_engine.main import app
from stress_engine.simulation.engine import compute_baseline_run
from stress_engine.simulation.scenarios import sample_driver_series

client = TestClient(app)


def _baseline_json():
    return compute_baseline_run(sample_driver_series()).model_dump(mode="json")


# --- Runs ---


def test_baseline_defaults_to_sample():
    response = client.post("/api/runs/baseline", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["kind"] == "baseline"
    assert len(data["kpi_results"]) == 6


def test_baseline_rejects_incomplete_drivers():
    response = client.post(
        "/api/runs/baseline", json={"driver_series": [{"period": "2024-01", "drivers": {"COVERS": 1}}]},
    )
    assert response.status_code == 422


def test_scenario_run_by_library_id():
    response = client.post("/api/runs/scenario", json={"scenario_id": "S-001"})
    assert response.status_code == 200
    data = response.json()
    assert data["scenario_id"] == "S-001"
    assert data["summary"]["total_revenue_change_pct"] < 0


def test_scenario_run_unknown_id_returns_404():
    response = client.post("/api/runs/scenario", json={"scenario_id": "S-999"})
    assert response.status_code == 404


def test_mitigated_run_persists():
    response = client.post(
        "/api/runs/mitigated",
        json={"scenario_id": "S-001", "mitigation_ids": ["M-001"], "persist": True},
    )
    assert response.status_code == 200
    run_id = response.json()["id"]
    stored = client.get(f"/api/storage/runs/{run_id}")
    assert stored.status_code == 200
    assert stored.json()["mitigation_ids"] == ["M-001"]


def test_bundles_endpoint():
    response = client.post("/api/runs/bundles", json={"scenario_id": "S-002"})
    assert response.status_code == 200
    data = response.json()
    assert sorted(o["bundle"] for o in data) == ["A", "B", "C"]
    assert [o["rank"] for o in data] == [1, 2, 3]


def test_scenario_ranking_endpoint():
    response = client.post("/api/runs/scenarios/rank", json={})
    assert response.status_code == 200
    assert len(response.json()) == 3


def test_monte_carlo_endpoint():
    response = client.post(
        "/api/runs/monte-carlo", json={"scenario_id": "S-001", "n_simulations": 10, "seed": 3},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["n_simulations"] == 10
    band = data["net_profit_change_pct"]
    assert band["p10"] <= band["p50"] <= band["p90"]


# --- Analysis ---


def test_compare_misaligned_returns_422():
    full = _baseline_json()
    short = compute_baseline_run(sample_driver_series()[:2]).model_dump(mode="json")
    response = client.post("/api/analysis/compare", json={"reference_run": full, "comparison_run": short})
    assert response.status_code == 422


def test_compare_stored_runs():
    baseline = client.post("/api/runs/baseline", json={"persist": True}).json()
    stressed = client.post(
        "/api/runs/scenario", json={"scenario_id": "S-002", "persist": True},
    ).json()
    response = client.post(
        "/api/analysis/compare",
        json={"reference_run_id": baseline["id"], "comparison_run_id": stressed["id"]},
    )
    assert response.status_code == 200
    assert response.json()["reference_choice"] == "baseline"


def test_compare_missing_run_returns_404():
    response = client.post(
        "/api/analysis/compare", json={"reference_run_id": "missing", "comparison_run_id": "missing"},
    )
    assert response.status_code == 404


def test_breakpoint_survival_risk_curve():
    baseline = _baseline_json()
    bp = client.post("/api/analysis/breakpoint", json={"baseline_run": baseline, "stressed_run": baseline})
    assert bp.status_code == 200
    assert bp.json()["rule"] != "cash_below_zero"

    survival = client.post("/api/analysis/survival", json={"run": baseline}).json()
    assert len(survival["survival"]) == 6

    risk = client.post("/api/analysis/risk", json={"run": baseline}).json()
    assert set(risk["features"]) == {
        "revenue_trend", "net_margin_volatility", "avg_net_margin", "prime_cost_pct_avg",
    }

    curve = client.post("/api/analysis/curve", json={"curve_type": "decay", "horizon_months": 3}).json()
    assert curve["values"] == [1.0, 0.5, 0.0]


# --- Storage ---


def test_storage_conflict_returns_409():
    run = _baseline_json()
    run["id"] = "baseline-v1"
    assert client.post("/api/storage/runs", json=run).status_code == 200
    assert client.post("/api/storage/runs", json=run).status_code == 200
    run["summary"]["total_revenue_change_pct"] = 0.25
    assert client.post("/api/storage/runs", json=run).status_code == 409
    versions = client.get("/api/storage/versions", params={"prefix": "baseline-"}).json()
    assert versions["versions"] == ["baseline-v1"]


def test_storage_missing_run_returns_404():
    assert client.get("/api/storage/runs/unknown-run").status_code == 404


# --- Generated records and context pack ---


def test_generated_scenarios_clamped():
    payload = {"scenarios": [{
        "name": "Demand dip",
        "shocks": [{"driver": "COVERS", "mode": "multiply", "value": 0.9}],
        "probability": 2,
        "evidence_refs": ["E-REV-001"],
    }]}
    response = client.post("/api/generated/scenarios", json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["scenarios"][0]["probability"] == 1.0
    assert data["warnings"]


def test_generated_scenarios_without_evidence_returns_422():
    payload = {"scenarios": [{"shocks": [{"driver": "COVERS", "mode": "add", "value": 1}]}]}
    response = client.post("/api/generated/scenarios", json=payload)
    assert response.status_code == 422
    assert "evidence_refs" in response.json()["detail"]


def test_context_pack_endpoint():
    response = client.post("/api/context-pack", json={"metadata": {"restaurant_name": "Harbor & Hearth"}})
    assert response.status_code == 200
    data = response.json()
    assert data["metadata"]["restaurant_name"] == "Harbor & Hearth"
    assert "total_revenue" in data["summary"]
