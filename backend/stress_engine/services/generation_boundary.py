"""Generation boundary: normalize generator payloads into engine records.

Generated assumptions, scenarios and mitigations arrive as loosely typed
JSON. Structural problems (unknown driver, unknown shock mode, missing
evidence) are rejected with an error naming the offending field. Values
that are merely out of range are clamped, and unrecognised labels fall back
to safe defaults; each such repair is reported as a warning.
"""
from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Optional, TypeVar

from stress_engine.models.driver import parse_driver_key
from stress_engine.models.scenario import (
    Adjustment,
    ConfidenceLevel,
    DriverAssumption,
    GeneratedAssumptions,
    GeneratedMitigations,
    GeneratedScenarios,
    Mitigation,
    MitigationCategory,
    ProbabilityLevel,
    Scenario,
    Severity,
    Shock,
    ShockCurve,
    ShockMode,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)

_LEVEL_PROBABILITY: dict[ProbabilityLevel, float] = {
    ProbabilityLevel.rare: 0.10,
    ProbabilityLevel.possible: 0.35,
    ProbabilityLevel.likely: 0.65,
    ProbabilityLevel.almost_certain: 0.90,
}

_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0", ""}


class GenerationError(ValueError):
    """A generated record is structurally invalid."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field


def _level_for(probability: float) -> ProbabilityLevel:
    if probability < 0.2:
        return ProbabilityLevel.rare
    if probability < 0.5:
        return ProbabilityLevel.possible
    if probability < 0.8:
        return ProbabilityLevel.likely
    return ProbabilityLevel.almost_certain


class _Normalizer:
    """Collects warnings while coercing one payload."""

    def __init__(self) -> None:
        self.warnings: list[str] = []

    def warn(self, field: str, message: str) -> None:
        text = f"{field}: {message}"
        logger.warning("Generated record repaired: %s", text)
        self.warnings.append(text)

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------
    def number(self, value: Any, field: str) -> float:
        if isinstance(value, bool) or value is None:
            raise GenerationError(field, "a number is required")
        try:
            result = float(value)
        except (TypeError, ValueError):
            raise GenerationError(field, f"not a number: {value!r}") from None
        if not math.isfinite(result):
            raise GenerationError(field, "must be finite")
        return result

    def clamp(self, value: float, lo: float, hi: float, field: str) -> float:
        clamped = min(max(value, lo), hi)
        if clamped != value:
            self.warn(field, f"{value} clamped to {clamped}")
        return clamped

    def integer_at_least(self, value: Any, minimum: int, default: int, field: str) -> int:
        if value is None:
            return default
        result = int(round(self.number(value, field)))
        if result < minimum:
            self.warn(field, f"{result} raised to {minimum}")
            return minimum
        return result

    def enum(self, value: Any, enum_cls: type[E], default: E, field: str) -> E:
        if value is None:
            return default
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError:
            self.warn(field, f"unrecognised value {value!r}, using {default.value!r}")
            return default

    def flag(self, value: Any, default: bool, field: str) -> bool:
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_WORDS:
                return True
            if lowered in _FALSE_WORDS:
                return False
        raise GenerationError(field, f"not a boolean: {value!r}")

    def text(self, value: Any, default: str = "") -> str:
        return default if value is None else str(value).strip()

    def optional_text(self, value: Any, field: str) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise GenerationError(field, f"a string is required, got {type(value).__name__}")
        return value.strip() or None

    def text_list(self, value: Any, field: str) -> list[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise GenerationError(field, "a list is required")
        return [str(v).strip() for v in value if str(v).strip()]

    def evidence(self, record: dict, field: str) -> list[str]:
        refs = self.text_list(record.get("evidence_refs"), f"{field}.evidence_refs")
        if not refs:
            raise GenerationError(f"{field}.evidence_refs", "at least one evidence reference is required")
        return refs

    # ------------------------------------------------------------------
    # Shocks / adjustments
    # ------------------------------------------------------------------
    def shock_fields(self, record: Any, field: str) -> dict:
        if not isinstance(record, dict):
            raise GenerationError(field, "an object is required")
        try:
            driver = parse_driver_key(record.get("driver"))
        except ValueError as exc:
            raise GenerationError(f"{field}.driver", str(exc)) from None
        raw_mode = record.get("mode")
        try:
            mode = ShockMode(str(raw_mode).strip().lower())
        except ValueError:
            raise GenerationError(
                f"{field}.mode",
                f"unknown shock mode {raw_mode!r}; expected one of {[m.value for m in ShockMode]}",
            ) from None
        return {
            "driver": driver,
            "mode": mode,
            "value": self.number(record.get("value"), f"{field}.value"),
            "start_month_offset": self.integer_at_least(
                record.get("start_month_offset"), 0, 0, f"{field}.start_month_offset",
            ),
            "duration_months": self.integer_at_least(
                record.get("duration_months"), 1, 1, f"{field}.duration_months",
            ),
        }

    def records(self, payload: Any, key: str) -> list:
        if not isinstance(payload, dict) or not isinstance(payload.get(key), list):
            raise GenerationError(key, "payload must contain a list")
        return payload[key]


def _record_id(record: dict, prefix: str, index: int) -> str:
    raw = record.get("id")
    return str(raw).strip() if raw is not None and str(raw).strip() else f"{prefix}{index + 1}"


def _require_object(record: Any, field: str) -> dict:
    if not isinstance(record, dict):
        raise GenerationError(field, "an object is required")
    return record


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def normalize_scenarios(payload: Any) -> GeneratedScenarios:
    """Validate a ``{"scenarios": [...]}`` payload."""
    norm = _Normalizer()
    scenarios: list[Scenario] = []
    for index, raw in enumerate(norm.records(payload, "scenarios")):
        field = f"scenarios[{index}]"
        record = _require_object(raw, field)
        scenario_id = _record_id(record, "S", index)

        raw_shocks = record.get("shocks")
        if not isinstance(raw_shocks, list) or not raw_shocks:
            raise GenerationError(f"{field}.shocks", "at least one shock is required")
        shocks = [
            Shock(**norm.shock_fields(s, f"{field}.shocks[{i}]"))
            for i, s in enumerate(raw_shocks)
        ]

        probability, level = _probability(norm, record, field)
        risk_score: Optional[float] = None
        if record.get("risk_score") is not None:
            risk_score = norm.clamp(
                norm.number(record["risk_score"], f"{field}.risk_score"), 0.0, 100.0, f"{field}.risk_score",
            )

        scenarios.append(Scenario(
            id=scenario_id,
            name=norm.text(record.get("name"), scenario_id),
            description=norm.text(record.get("description")),
            shocks=shocks,
            probability=probability,
            probability_level=level,
            severity=norm.enum(record.get("severity"), Severity, Severity.moderate, f"{field}.severity"),
            confidence=norm.enum(
                record.get("confidence"), ConfidenceLevel, ConfidenceLevel.medium, f"{field}.confidence",
            ),
            risk_score=risk_score,
            shock_curve=norm.enum(
                record.get("shock_curve"), ShockCurve, ShockCurve.flat, f"{field}.shock_curve",
            ),
            expected_to_break=norm.flag(
                record.get("expected_to_break"), False, f"{field}.expected_to_break",
            ),
            break_reason=norm.optional_text(record.get("break_reason"), f"{field}.break_reason"),
            evidence_refs=norm.evidence(record, field),
        ))
    logger.info("Normalized %d generated scenarios (%d warnings)", len(scenarios), len(norm.warnings))
    return GeneratedScenarios(scenarios=scenarios, warnings=norm.warnings)


def _probability(norm: _Normalizer, record: dict, field: str) -> tuple[float, ProbabilityLevel]:
    raw = record.get("probability")
    raw_level = record.get("probability_level")
    if isinstance(raw, str) and raw.strip().lower() in {lvl.value for lvl in ProbabilityLevel}:
        # A label given where a number was expected.
        raw_level, raw = raw, None

    if raw is None:
        level = norm.enum(
            raw_level, ProbabilityLevel, ProbabilityLevel.possible, f"{field}.probability_level",
        )
        return _LEVEL_PROBABILITY[level], level

    probability = norm.clamp(
        norm.number(raw, f"{field}.probability"), 0.0, 1.0, f"{field}.probability",
    )
    level = norm.enum(
        raw_level, ProbabilityLevel, _level_for(probability), f"{field}.probability_level",
    )
    return probability, level


def normalize_mitigations(payload: Any) -> GeneratedMitigations:
    """Validate a ``{"mitigations": [...]}`` payload."""
    norm = _Normalizer()
    mitigations: list[Mitigation] = []
    for index, raw in enumerate(norm.records(payload, "mitigations")):
        field = f"mitigations[{index}]"
        record = _require_object(raw, field)
        mitigation_id = _record_id(record, "M", index)

        raw_adjustments = record.get("adjustments")
        if not isinstance(raw_adjustments, list) or not raw_adjustments:
            raise GenerationError(f"{field}.adjustments", "at least one adjustment is required")
        adjustments = [
            Adjustment(**norm.shock_fields(a, f"{field}.adjustments[{i}]"))
            for i, a in enumerate(raw_adjustments)
        ]

        mitigations.append(Mitigation(
            id=mitigation_id,
            name=norm.text(record.get("name"), mitigation_id),
            description=norm.text(record.get("description")),
            adjustments=adjustments,
            enabled=norm.flag(record.get("enabled"), True, f"{field}.enabled"),
            category=norm.enum(
                record.get("category"), MitigationCategory, MitigationCategory.cost_reduction,
                f"{field}.category",
            ),
            confidence=norm.enum(
                record.get("confidence"), ConfidenceLevel, ConfidenceLevel.medium, f"{field}.confidence",
            ),
            constraints=norm.text_list(record.get("constraints"), f"{field}.constraints"),
            implementation_steps=norm.text_list(
                record.get("implementation_steps"), f"{field}.implementation_steps",
            ),
            evidence_refs=norm.evidence(record, field),
        ))
    logger.info("Normalized %d generated mitigations (%d warnings)", len(mitigations), len(norm.warnings))
    return GeneratedMitigations(mitigations=mitigations, warnings=norm.warnings)


def normalize_assumptions(payload: Any) -> GeneratedAssumptions:
    """Validate a ``{"assumptions": [...]}`` payload.

    Ranges may be given as ``range: {min, max}`` or flat ``range_min`` /
    ``range_max``. An inverted range is swapped; a baseline outside its
    range is flagged for operator confirmation.
    """
    norm = _Normalizer()
    assumptions: list[DriverAssumption] = []
    for index, raw in enumerate(norm.records(payload, "assumptions")):
        field = f"assumptions[{index}]"
        record = _require_object(raw, field)
        try:
            driver = parse_driver_key(record.get("driver"))
        except ValueError as exc:
            raise GenerationError(f"{field}.driver", str(exc)) from None
        baseline = norm.number(record.get("baseline"), f"{field}.baseline")

        bounds = record.get("range") if isinstance(record.get("range"), dict) else {}
        raw_min = bounds.get("min", record.get("range_min"))
        raw_max = bounds.get("max", record.get("range_max"))
        range_min = baseline if raw_min is None else norm.number(raw_min, f"{field}.range.min")
        range_max = baseline if raw_max is None else norm.number(raw_max, f"{field}.range.max")
        if range_min > range_max:
            norm.warn(f"{field}.range", f"inverted range [{range_min}, {range_max}] swapped")
            range_min, range_max = range_max, range_min

        needs_confirmation = norm.flag(
            record.get("needs_user_confirmation"), False, f"{field}.needs_user_confirmation",
        )
        if not range_min <= baseline <= range_max:
            norm.warn(f"{field}.baseline", f"{baseline} outside [{range_min}, {range_max}]")
            needs_confirmation = True

        assumptions.append(DriverAssumption(
            id=_record_id(record, "A", index),
            driver=driver,
            baseline=baseline,
            range_min=range_min,
            range_max=range_max,
            unit=norm.text(record.get("unit")),
            confidence=norm.enum(
                record.get("confidence"), ConfidenceLevel, ConfidenceLevel.medium, f"{field}.confidence",
            ),
            needs_user_confirmation=needs_confirmation,
            rationale=norm.text(record.get("rationale")),
            evidence_refs=norm.evidence(record, field),
        ))
    logger.info("Normalized %d generated assumptions (%d warnings)", len(assumptions), len(norm.warnings))
    return GeneratedAssumptions(assumptions=assumptions, warnings=norm.warnings)
