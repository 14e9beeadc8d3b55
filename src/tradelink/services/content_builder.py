"""Derived values and completeness checks for proposal content.

Pure functions shared by the create/negotiate paths and the builder preview
endpoint. End dates use ``relativedelta``, so month arithmetic clamps to the
last day of the target month (2024-01-31 + 1 month -> 2024-02-29).
"""

import json
import math
from datetime import date
from typing import Iterable, Optional, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from tradelink.domain.enums import DurationUnit, MeasurementUnit, ProposalStepKey
from tradelink.domain.errors import ProposalValidationError
from tradelink.domain.schemas import (
    ObjectiveRow,
    ObjectivesStep,
    ProposalContent,
    TrackingKpiRow,
)


def parse_positive_number(value: Union[int, float, str, None]) -> Optional[float]:
    """Return ``value`` as a float when it is a finite number > 0, else None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or number <= 0:
        return None
    return number


def parse_start_date(value) -> Optional[date]:
    """Accept a date, datetime or ISO-8601 string; return None when unusable."""
    if value is None:
        return None
    if isinstance(value, date):
        return value if type(value) is date else value.date()
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return isoparse(value.strip()).date()
    except (ValueError, OverflowError):
        return None


def compute_end_date(
    start_date,
    duration_value,
    duration_unit: Optional[DurationUnit],
    ongoing: bool = False,
) -> Optional[date]:
    """End of a fixed-term partnership, or None for ongoing/incomplete terms.

    Fractional durations are truncated to whole units.
    """
    if ongoing:
        return None
    start = parse_start_date(start_date)
    amount = parse_positive_number(duration_value)
    if start is None or amount is None or duration_unit is None:
        return None

    unit = DurationUnit(duration_unit)
    whole = int(amount)
    if unit == DurationUnit.DAYS:
        delta = relativedelta(days=whole)
    elif unit == DurationUnit.MONTHS:
        delta = relativedelta(months=whole)
    elif unit == DurationUnit.QUARTERS:
        delta = relativedelta(months=whole * 3)
    else:
        delta = relativedelta(years=whole)

    try:
        return start + delta
    except OverflowError:
        return None


def is_valid_kpi_row(row: TrackingKpiRow) -> bool:
    has_name = bool(row.name.strip())
    has_target = bool(row.target_value.strip())
    has_frequency = parse_positive_number(row.report_frequency_value) is not None
    has_currency = row.measurement_unit != MeasurementUnit.CURRENCY or bool((row.currency or "").strip())
    return has_name and has_target and has_frequency and has_currency


def has_valid_objective_row(rows: Iterable[ObjectiveRow]) -> bool:
    return any(row.proposer_outcome.strip() and row.recipient_outcome.strip() for row in rows)


def is_buildable(objective_rows: Iterable[ObjectiveRow], kpis: list[TrackingKpiRow]) -> bool:
    """A submission needs one complete objective row and only valid KPI rows (at least one)."""
    return (
        has_valid_objective_row(objective_rows)
        and len(kpis) > 0
        and all(is_valid_kpi_row(row) for row in kpis)
    )


def validate_content(content: ProposalContent) -> None:
    """Raise ProposalValidationError unless the content could be submitted."""
    terms = content.terms
    if not terms.ongoing and (
        parse_positive_number(terms.duration_value) is None or terms.duration_unit is None
    ):
        raise ProposalValidationError(
            "A fixed-term partnership needs a positive duration and a duration unit"
        )

    objectives: ObjectivesStep = content.objectives
    if not has_valid_objective_row(objectives.rows):
        raise ProposalValidationError(
            "At least one objective row needs outcomes for both businesses"
        )

    kpis = content.tracking.kpis
    if not kpis:
        raise ProposalValidationError("At least one KPI is required")
    invalid = [row.id for row in kpis if not is_valid_kpi_row(row)]
    if invalid:
        raise ProposalValidationError(
            f"Incomplete KPI rows: {', '.join(invalid)}", kpi_ids=invalid
        )


def _canonical(value) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def determine_updated_steps(previous: dict, current: dict) -> list[ProposalStepKey]:
    """Step keys whose serialized content differs between two snapshots."""
    changed: list[ProposalStepKey] = []
    for key in ProposalStepKey:
        if _canonical(previous.get(key.value)) != _canonical(current.get(key.value)):
            changed.append(key)
    return changed


def build_default_title(content: ProposalContent, proposer_name: str) -> str:
    focus_title = content.outline.focus_title.strip()
    if focus_title:
        return f"{focus_title} partnership"
    return f"{proposer_name} ↔ {content.partner_selection.partner_name}"


def build_default_summary(content: ProposalContent) -> str:
    summary = content.outline.summary.strip()
    if summary:
        return summary
    contributions = content.contributions
    return f"{contributions.proposer_contribution} / {contributions.recipient_contribution}"
