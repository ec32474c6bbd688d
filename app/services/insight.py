# services/insight.py
import logging
from datetime import date
from typing import Dict, Optional

from app.core.exceptions import StepSourceError
from app.schemas.insight import InsightReport
from app.services.insight_analyzer import InsightAnalyzer
from app.services.journal_gateway import JournalGateway
from app.services.step_count import StepCountSource

logger = logging.getLogger(__name__)


class InsightService:
    """Loads a date window through the gateway and hands it to the analyzer."""

    def __init__(
        self,
        gateway: JournalGateway,
        step_source: StepCountSource,
        analyzer: Optional[InsightAnalyzer] = None,
    ):
        self.gateway = gateway
        self.step_source = step_source
        self.analyzer = analyzer or InsightAnalyzer()

    def build_report(self, start: date, end: date) -> InsightReport:
        """
        Build the insight report for [start, end].

        Raises:
            ReadError: If journal data could not be read. Step data problems
                never raise; that section reports itself unavailable instead.
        """
        entries = self.gateway.get_entries_by_date_range(start, end)
        full_charges = self.gateway.get_full_charges_by_date_range(start, end)
        step_totals = self._load_step_totals(start, end)

        logger.info(
            f"Building insight report {start}..{end}: {len(entries)} entries, "
            f"{len(full_charges)} full charges, step data {'yes' if step_totals else 'no'}"
        )
        return self.analyzer.generate_report(
            entries, full_charges, step_totals, start=start, end=end
        )

    def _load_step_totals(self, start: date, end: date) -> Optional[Dict[date, float]]:
        """Best effort: None when access is denied or the source fails."""
        try:
            if not self.step_source.authorize():
                logger.info("Step-count access not granted")
                return None
            return self.step_source.fetch_daily_totals(start, end)
        except StepSourceError as exc:
            logger.warning(f"Step totals unavailable for {start}..{end}: {exc}")
            return None
