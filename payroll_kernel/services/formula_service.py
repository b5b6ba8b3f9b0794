"""
FormulaService -- SQLAlchemy-backed FormulaStore.

Stores one FormulaGraph (plus its tier requirements) per discipline and
period, and copies a period's formulas into another period.
"""

from __future__ import annotations

from sqlalchemy import select

from payroll_kernel.domain.formula_graph import FormulaGraph
from payroll_kernel.domain.types import CategoryThresholds
from payroll_kernel.exceptions import FormulaNotFoundError, PeriodNotFoundError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.formula import FormulaModel, thresholds_to_json
from payroll_kernel.services.base import BaseService

logger = get_logger("services.formula")


class FormulaService(BaseService):
    """Per-(discipline, period) formula persistence."""

    def _find(self, discipline_id: int, period_id: int) -> FormulaModel | None:
        stmt = select(FormulaModel).where(
            FormulaModel.discipline_id == discipline_id,
            FormulaModel.period_id == period_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _for_period(self, period_id: int) -> list[FormulaModel]:
        stmt = (
            select(FormulaModel)
            .where(FormulaModel.period_id == period_id)
            .order_by(FormulaModel.discipline_id)
        )
        return list(self.session.execute(stmt).scalars())

    def get(self, discipline_id: int, period_id: int) -> FormulaGraph:
        """
        Get the graph for a discipline in a period.

        Raises:
            FormulaNotFoundError: If no formula was authored for the pair.
        """
        model = self._find(discipline_id, period_id)
        if model is None:
            raise FormulaNotFoundError(discipline_id, period_id)
        return model.to_graph()

    def list(self, period_id: int) -> dict[int, FormulaGraph]:
        """All graphs of a period keyed by discipline id."""
        return {m.discipline_id: m.to_graph() for m in self._for_period(period_id)}

    def thresholds(self, period_id: int) -> dict[int, CategoryThresholds]:
        """Tier requirements of a period keyed by discipline id."""
        return {m.discipline_id: m.to_thresholds() for m in self._for_period(period_id)}

    def create(
        self,
        discipline_id: int,
        period_id: int,
        graph: FormulaGraph,
        thresholds: CategoryThresholds | None = None,
    ) -> FormulaGraph:
        """Store ``graph`` for the pair, replacing an existing one.

        The graph must validate; a malformed graph is never persisted.

        Raises:
            FormulaValidationError: If the graph is structurally invalid.
        """
        graph.ensure_valid(discipline_id)
        model = self._find(discipline_id, period_id)
        if model is None:
            model = FormulaModel.from_dto(discipline_id, period_id, graph, thresholds)
            self.session.add(model)
        else:
            model.graph = graph.to_dict()
            if thresholds is not None:
                model.thresholds = thresholds_to_json(thresholds)
        self.session.flush()
        logger.info(
            "formula_saved",
            extra={
                "discipline_id": discipline_id,
                "period_id": period_id,
                "node_count": len(graph.nodes),
            },
        )
        return graph

    def duplicate(self, from_period_id: int, to_period_id: int) -> int:
        """Copy every formula of ``from_period_id`` that ``to_period_id`` lacks.

        Returns:
            Number of formulas created.

        Raises:
            PeriodNotFoundError: If ``from_period_id`` has no formulas.
        """
        sources = self._for_period(from_period_id)
        if not sources:
            raise PeriodNotFoundError(from_period_id)
        existing = {m.discipline_id for m in self._for_period(to_period_id)}
        created = 0
        for source in sources:
            if source.discipline_id in existing:
                continue
            self.session.add(
                FormulaModel(
                    discipline_id=source.discipline_id,
                    period_id=to_period_id,
                    graph=dict(source.graph),
                    thresholds=list(source.thresholds or []),
                )
            )
            created += 1
        self.session.flush()
        logger.info(
            "formulas_duplicated",
            extra={
                "from_period_id": from_period_id,
                "to_period_id": to_period_id,
                "formulas_created": created,
            },
        )
        return created

    def nearest_period_with_formulas(self, period_id: int) -> int | None:
        """Closest earlier period that has at least one formula."""
        stmt = (
            select(FormulaModel.period_id)
            .where(FormulaModel.period_id < period_id)
            .order_by(FormulaModel.period_id.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()
