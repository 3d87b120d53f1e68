"""Load Tooth Chart use case: one-shot read of the reconciled chart."""

from ...domain.entities.tooth_record import ToothAggregate
from ...observability import trace_operation
from ..dto.chart_dto import LoadToothChartRequest, LoadToothChartResponse
from ..ports.repositories.tooth_record_repo import ToothRecordRepository
from ..reconciliation.aggregation import build_overviews, collect_findings
from ..reconciliation.reconciler import ToothSnapshot, reconcile


class LoadToothChartUseCase:
    """Use case for reading the latest row per tooth as an aggregate."""

    def __init__(self, tooth_record_repository: ToothRecordRepository):
        self._tooth_record_repository = tooth_record_repository

    async def execute(self, request: LoadToothChartRequest) -> LoadToothChartResponse:
        """Execute the load chart use case."""
        with trace_operation("chart.load", {"patient_id": request.patient_id}):
            rows = await self._tooth_record_repository.find_latest_per_tooth(request.patient_id)
        aggregate = reconcile(ToothAggregate.empty(), ToothSnapshot.from_rows(rows))
        return LoadToothChartResponse(
            aggregate=aggregate,
            stats=aggregate.stats(),
            overviews=build_overviews(aggregate, collect_findings(aggregate)),
        )
