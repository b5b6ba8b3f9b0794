"""
Category classifier.

Pure functions with deterministic behavior. No I/O.

Maps an instructor's metrics onto the tier requirements of a discipline and
period.  Manual assignments arrive as an explicit ``overrides`` mapping keyed
by ``(instructor_id, discipline_id)`` and win unconditionally; the classifier
never reads or mutates shared state.

Tiers are scanned highest first and the first tier whose every requirement
holds is returned, falling back to ``DEFAULT_TIER``.  Because each
requirement is a ``>=`` test (or a "satisfied or not required" flag),
improving any single metric can never lower the result.
"""

from __future__ import annotations

from collections.abc import Mapping

from payroll_kernel.domain.types import (
    DEFAULT_TIER,
    CategoryThresholds,
    InstructorMetrics,
    Tier,
    TierRequirement,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.classifier")

OverrideMap = Mapping[tuple[int, int], Tier]


def meets_requirement(metrics: InstructorMetrics, requirement: TierRequirement) -> bool:
    return (
        metrics.occupancy >= requirement.min_occupancy
        and metrics.classes_per_week >= requirement.min_classes_per_week
        and metrics.venue_count >= requirement.min_venues
        and metrics.back_to_back_count >= requirement.min_back_to_back
        and metrics.off_peak_count >= requirement.min_off_peak
        and (metrics.event_participation or not requirement.requires_event_participation)
        and (metrics.guideline_compliance or not requirement.requires_guideline_compliance)
    )


@traced_engine(
    "category_classifier",
    "1.0",
    fingerprint_fields=("instructor_id", "discipline_id", "period_id", "metrics"),
)
def determine_category(
    instructor_id: int,
    discipline_id: int,
    period_id: int,
    thresholds: CategoryThresholds | None,
    metrics: InstructorMetrics,
    overrides: OverrideMap | None = None,
) -> Tier:
    """
    Tier for one instructor in one discipline and period.

    Args:
        thresholds: Requirements for the discipline/period; None means no
            tier beyond the default can be earned.
        overrides: Manual tiers keyed by (instructor_id, discipline_id).

    Returns:
        The override if present, else the highest qualifying tier, else
        ``DEFAULT_TIER``.
    """
    if overrides:
        manual = overrides.get((instructor_id, discipline_id))
        if manual is not None:
            logger.debug(
                "category_override_applied",
                extra={
                    "instructor_id": instructor_id,
                    "discipline_id": discipline_id,
                    "tier": manual.value,
                },
            )
            return manual

    if thresholds is not None:
        for requirement in thresholds.requirements:
            if meets_requirement(metrics, requirement):
                return requirement.tier

    return DEFAULT_TIER
