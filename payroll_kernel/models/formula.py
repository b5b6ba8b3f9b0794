"""
ORM model for per-discipline, per-period formulas.

Contract:
    ``FormulaModel`` stores the serialized ``FormulaGraph`` together with the
    tier requirements used to categorize instructors of that discipline in
    that period.  There is at most one row per (discipline, period).

Invariants enforced:
    - UNIQUE (discipline_id, period_id).
    - ``graph`` is the exact output of ``FormulaGraph.to_dict()``; loading is
      a pure ``FormulaGraph.from_dict()``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.domain.formula_graph import FormulaGraph
from payroll_kernel.domain.types import CategoryThresholds, Tier, TierRequirement


def thresholds_to_json(thresholds: CategoryThresholds | None) -> list[dict[str, Any]]:
    if thresholds is None:
        return []
    return [
        {
            "tier": r.tier.value,
            "min_occupancy": str(r.min_occupancy),
            "min_classes_per_week": str(r.min_classes_per_week),
            "min_venues": r.min_venues,
            "min_back_to_back": str(r.min_back_to_back),
            "min_off_peak": str(r.min_off_peak),
            "requires_event_participation": r.requires_event_participation,
            "requires_guideline_compliance": r.requires_guideline_compliance,
        }
        for r in thresholds.requirements
    ]


def thresholds_from_json(
    discipline_id: int, period_id: int, raw: list[dict[str, Any]] | None
) -> CategoryThresholds:
    requirements = tuple(
        TierRequirement(
            tier=Tier(item["tier"]),
            min_occupancy=Decimal(str(item.get("min_occupancy", "0"))),
            min_classes_per_week=Decimal(str(item.get("min_classes_per_week", "0"))),
            min_venues=int(item.get("min_venues", 0)),
            min_back_to_back=Decimal(str(item.get("min_back_to_back", "0"))),
            min_off_peak=Decimal(str(item.get("min_off_peak", "0"))),
            requires_event_participation=bool(
                item.get("requires_event_participation", False)
            ),
            requires_guideline_compliance=bool(
                item.get("requires_guideline_compliance", False)
            ),
        )
        for item in raw or ()
    )
    return CategoryThresholds(discipline_id, period_id, requirements)


class FormulaModel(TrackedBase):
    __tablename__ = "formulas"

    __table_args__ = (
        UniqueConstraint("discipline_id", "period_id", name="uq_formula_discipline_period"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discipline_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("disciplines.id"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    graph: Mapped[dict] = mapped_column(JSON, nullable=False)
    thresholds: Mapped[list | None] = mapped_column(JSON, nullable=True)

    def to_graph(self) -> FormulaGraph:
        return FormulaGraph.from_dict(self.graph)

    def to_thresholds(self) -> CategoryThresholds:
        return thresholds_from_json(self.discipline_id, self.period_id, self.thresholds)

    @classmethod
    def from_dto(
        cls,
        discipline_id: int,
        period_id: int,
        graph: FormulaGraph,
        thresholds: CategoryThresholds | None = None,
    ) -> FormulaModel:
        return cls(
            discipline_id=discipline_id,
            period_id=period_id,
            graph=graph.to_dict(),
            thresholds=thresholds_to_json(thresholds),
        )
