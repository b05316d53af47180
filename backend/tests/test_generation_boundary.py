"""Tests for normalizing generator output into engine records."""
import pytest

from stress_engine.models.driver import DriverKey
from stress_engine.models.scenario import (
    ConfidenceLevel,
    MitigationCategory,
    ProbabilityLevel,
    Severity,
    ShockCurve,
    ShockMode,
)
from stress_engine.services.generation_boundary import (
    GenerationError,
    normalize_assumptions,
    normalize_mitigations,
    normalize_scenarios,
)


def _make_scenario(**overrides):
    record = {
        "name": "Protein spike",
        "shocks": [{"driver": "FOOD_COST_PROTEIN", "mode": "multiply", "value": 1.1, "duration_months": 3}],
        "probability": 0.4,
        "severity": "high",
        "confidence": "medium",
        "evidence_refs": ["E-COGS-002"],
    }
    record.update(overrides)
    return record


def _make_mitigation(**overrides):
    record = {
        "id": "M-LAB",
        "name": "Labor trim",
        "adjustments": [{"driver": "labor_hours", "mode": "multiply", "value": 0.95}],
        "category": "efficiency",
        "evidence_refs": ["E-LAB-003"],
    }
    record.update(overrides)
    return record


# --- Scenarios ---


def test_valid_scenario_passes_without_warnings():
    result = normalize_scenarios({"scenarios": [_make_scenario(id="S-9")]})
    scenario = result.scenarios[0]
    assert result.warnings == []
    assert scenario.id == "S-9"
    assert scenario.severity == Severity.high
    assert scenario.probability == pytest.approx(0.4)
    assert scenario.probability_level == ProbabilityLevel.possible
    assert scenario.shocks[0].driver == DriverKey.FOOD_COST_PROTEIN
    assert scenario.shock_curve == ShockCurve.flat


def test_missing_ids_are_assigned_in_order():
    result = normalize_scenarios({"scenarios": [_make_scenario(), _make_scenario()]})
    assert [s.id for s in result.scenarios] == ["S1", "S2"]


def test_out_of_range_values_are_clamped_with_warnings():
    record = _make_scenario(
        probability=1.7,
        risk_score=140,
        shocks=[{"driver": "COVERS", "mode": "add", "value": -50,
                 "duration_months": 0, "start_month_offset": -2}],
    )
    result = normalize_scenarios({"scenarios": [record]})
    scenario = result.scenarios[0]
    assert scenario.probability == 1.0
    assert scenario.risk_score == 100.0
    assert scenario.shocks[0].duration_months == 1
    assert scenario.shocks[0].start_month_offset == 0
    assert len(result.warnings) == 4
    assert any("scenarios[0].probability" in w for w in result.warnings)


def test_unknown_labels_fall_back_to_defaults():
    result = normalize_scenarios({"scenarios": [_make_scenario(severity="apocalyptic", confidence="sure")]})
    scenario = result.scenarios[0]
    assert scenario.severity == Severity.moderate
    assert scenario.confidence == ConfidenceLevel.medium
    assert len(result.warnings) == 2


def test_probability_label_maps_to_number():
    result = normalize_scenarios({"scenarios": [_make_scenario(probability="likely")]})
    scenario = result.scenarios[0]
    assert scenario.probability_level == ProbabilityLevel.likely
    assert scenario.probability == pytest.approx(0.65)


def test_unknown_driver_rejected_with_field_path():
    record = _make_scenario(shocks=[{"driver": "TABLE_TURNS", "mode": "add", "value": 1}])
    with pytest.raises(GenerationError) as exc:
        normalize_scenarios({"scenarios": [record]})
    assert exc.value.field == "scenarios[0].shocks[0].driver"


def test_unknown_mode_rejected():
    record = _make_scenario(shocks=[{"driver": "COVERS", "mode": "scale", "value": 1}])
    with pytest.raises(GenerationError, match="mode"):
        normalize_scenarios({"scenarios": [record]})


def test_missing_evidence_rejected():
    with pytest.raises(GenerationError) as exc:
        normalize_scenarios({"scenarios": [_make_scenario(evidence_refs=[])]})
    assert exc.value.field == "scenarios[0].evidence_refs"


@pytest.mark.parametrize("raw, expected", [
    ("false", False), ("False", False), ("no", False), (0, False),
    ("true", True), ("yes", True), (1, True), (True, True),
])
def test_expected_to_break_parsed_explicitly(raw, expected):
    result = normalize_scenarios({"scenarios": [_make_scenario(expected_to_break=raw)]})
    assert result.scenarios[0].expected_to_break is expected


def test_unparseable_flag_rejected_with_field_path():
    with pytest.raises(GenerationError) as exc:
        normalize_scenarios({"scenarios": [_make_scenario(expected_to_break="maybe")]})
    assert exc.value.field == "scenarios[0].expected_to_break"


def test_break_reason_must_be_text():
    result = normalize_scenarios({"scenarios": [_make_scenario(break_reason="  Cash runs out  ")]})
    assert result.scenarios[0].break_reason == "Cash runs out"
    with pytest.raises(GenerationError) as exc:
        normalize_scenarios({"scenarios": [_make_scenario(break_reason=42)]})
    assert exc.value.field == "scenarios[0].break_reason"


def test_mitigation_enabled_string_parsed():
    result = normalize_mitigations({"mitigations": [_make_mitigation(enabled="false")]})
    assert result.mitigations[0].enabled is False


def test_generation_error_is_value_error():
    with pytest.raises(ValueError):
        normalize_scenarios({"items": []})


# --- Mitigations ---


def test_mitigation_normalized():
    result = normalize_mitigations({"mitigations": [_make_mitigation()]})
    mitigation = result.mitigations[0]
    assert mitigation.id == "M-LAB"
    assert mitigation.category == MitigationCategory.efficiency
    assert mitigation.adjustments[0].driver == DriverKey.LABOR_HOURS
    assert mitigation.adjustments[0].mode == ShockMode.multiply
    assert mitigation.enabled is True


def test_mitigation_unknown_category_defaults():
    result = normalize_mitigations({"mitigations": [_make_mitigation(id=None, category="magic")]})
    assert result.mitigations[0].id == "M1"
    assert result.mitigations[0].category == MitigationCategory.cost_reduction
    assert result.warnings


def test_mitigation_without_adjustments_rejected():
    with pytest.raises(GenerationError, match="adjustments"):
        normalize_mitigations({"mitigations": [_make_mitigation(adjustments=[])]})


# --- Assumptions ---


def test_assumption_range_forms():
    payload = {"assumptions": [
        {"driver": "COVERS", "baseline": 5600, "range": {"min": 5000, "max": 6400},
         "unit": "covers/month", "confidence": "high", "evidence_refs": ["E-REV-001"]},
        {"driver": "WASTE_PCT", "baseline": 0.05, "range_min": 0.04, "range_max": 0.07,
         "evidence_refs": ["E-COGS-002"]},
    ]}
    result = normalize_assumptions(payload)
    first, second = result.assumptions
    assert first.id == "A1" and second.id == "A2"
    assert (first.range_min, first.range_max) == (5000, 6400)
    assert second.range_max == pytest.approx(0.07)
    assert result.warnings == []


def test_assumption_inverted_range_swapped_and_flagged():
    payload = {"assumptions": [
        {"driver": "COVERS", "baseline": 7000, "range": {"min": 6400, "max": 5000},
         "evidence_refs": ["E-REV-001"]},
    ]}
    result = normalize_assumptions(payload)
    assumption = result.assumptions[0]
    assert (assumption.range_min, assumption.range_max) == (5000, 6400)
    assert assumption.needs_user_confirmation is True
    assert len(result.warnings) == 2


def test_assumption_non_numeric_baseline_rejected():
    payload = {"assumptions": [{"driver": "COVERS", "baseline": "lots", "evidence_refs": ["E"]}]}
    with pytest.raises(GenerationError, match="baseline"):
        normalize_assumptions(payload)
