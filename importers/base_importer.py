from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from models.appointment import Appointment
from models.match_report import AppointmentMatchReport
from core.appointment_matcher import AppointmentMatcher
from core.session_tracker import SessionTracker
import time
import logging
import json
from datetime import datetime
from pathlib import Path


class BaseAppointmentImporter(ABC):
    """Abstract base class for appointment importers."""

    def __init__(self,
                 config: Dict[str, Any],
                 matcher: AppointmentMatcher,
                 session_tracker: Optional[SessionTracker] = None):
        self.config = config
        self.matcher = matcher
        self.session_tracker = session_tracker
        self.source = self._get_source_name()
        self.logger = self._setup_logging()

    def _setup_logging(self) -> logging.Logger:
        """Setup logging for this importer."""
        logger = logging.getLogger(f"{self.source}_importer")
        logger.setLevel(logging.INFO)

        # Clear existing handlers to avoid duplicates
        logger.handlers.clear()

        logs_dir = Path(self.config.get("paths", {}).get("logs_dir", "logs"))
        logs_dir.mkdir(parents=True, exist_ok=True)

        # One log file per run
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        log_file = logs_dir / f"{self.source}_{timestamp}.log"

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.INFO)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        file_handler.setFormatter(formatter)

        logger.addHandler(file_handler)
        return logger

    @abstractmethod
    def _get_source_name(self) -> str:
        """Return source name for this importer."""
        pass

    @abstractmethod
    def validate_source(self, source_path: str) -> bool:
        """Validate input source."""
        pass

    @abstractmethod
    def extract_appointments(self, source_path: str) -> List[Appointment]:
        """Extract session appointments from source."""
        pass

    def match_appointments(self, source_path: str) -> AppointmentMatchReport:
        """Import, match and (when a session tracker is set) annotate appointments."""
        start_time = time.time()
        run_timestamp = datetime.now()

        run_id = f"{self.source}_{run_timestamp.strftime('%Y%m%d_%H%M%S')}"

        self.logger.info(f"Starting matching run: {run_id}")
        self.logger.info(f"Source: {source_path}")

        try:
            self.logger.info("Validating source...")
            if not self.validate_source(source_path):
                error_msg = f"Invalid source: {source_path}"
                self.logger.error(error_msg)
                raise ValueError(error_msg)
            self.logger.info("Source validation successful")

            self.logger.info("Extracting appointments...")
            extraction_start = time.time()
            appointments = self.extract_appointments(source_path)
            extraction_time = time.time() - extraction_start

            self.logger.info(f"Extracted {len(appointments)} appointments in {extraction_time:.2f}s")

            self.logger.info("Starting appointment matching...")
            matching_start = time.time()
            match_results = self.matcher.bulk_match_appointments(appointments)
            if self.session_tracker is not None:
                match_results = self.session_tracker.annotate_appointments(match_results)
            matching_time = time.time() - matching_start

            self.logger.info(f"Completed matching in {matching_time:.2f}s")

            processing_time = time.time() - start_time

            report = AppointmentMatchReport.from_match_results(
                run_id=run_id,
                source=self.source,
                source_identifier=str(source_path),
                match_results=match_results,
                processing_time=processing_time
            )

            self._log_statistics(report, extraction_time, matching_time)

            self.logger.info(f"Matching completed successfully: {run_id}")

            return report

        except Exception as e:
            self.logger.error(f"Matching failed: {str(e)}", exc_info=True)
            raise

    def _log_statistics(self, report: AppointmentMatchReport, extraction_time: float, matching_time: float):
        """Log detailed statistics about the matching run."""
        stats = {
            "run_id": report.run_id,
            "source": report.source,
            "run_date": report.run_date.isoformat(),
            "source_file": report.source_identifier,
            "total_appointments": report.total_appointments,
            "matched_appointments": report.matched_appointments,
            "unmatched_appointments": report.unmatched_appointments,
            "requires_review": report.requires_review,
            "match_rate": report.matched_appointments / report.total_appointments if report.total_appointments > 0 else 0,
            "confidence_distribution": report.confidence_distribution,
            "match_method_breakdown": report.match_method_breakdown,
            "documentation_breakdown": report.documentation_breakdown,
            "timing": {
                "total_processing_time": report.processing_time,
                "extraction_time": extraction_time,
                "matching_time": matching_time,
            }
        }

        self.logger.info("STATISTICS: " + json.dumps(stats, indent=2))
