from pathlib import Path
from typing import Dict, List, Any
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import PatternFill, Font
from openpyxl.utils.dataframe import dataframe_to_rows
from openpyxl.utils import get_column_letter

from core.title_parser import format_time_range
from models.match_report import AppointmentMatchReport
from models.match_result import MatchResult

APPOINTMENT_COLUMNS = [
    "Confidence", "Date", "Time", "Title", "Client ID", "Client Name",
    "Match Method", "Documentation", "Session ID", "Appointment ID",
]

CONFIDENCE_FILLS = {
    "high": "90EE90",    # Light green
    "medium": "FFE699",  # Light amber
    "low": "F4B183",     # Light orange
    "none": "FFB6C1",    # Light red
}


class AppointmentReport:
    """Creates Excel reports for appointment matching with confidence highlighting."""

    def export_excel_report(self, report: AppointmentMatchReport, output_path: str) -> str:
        """
        Export appointment matching report to Excel.

        Args:
            report: Matching report with match results
            output_path: Path to save Excel file

        Returns:
            Path to created Excel file
        """
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()

        self._create_appointments_sheet(wb, "Appointments", report.match_results, 0)
        self._create_appointments_sheet(
            wb, "Needs Review", [r for r in report.match_results if r.requires_review], 1
        )
        self._create_summary_sheet(wb, report)

        wb.save(output_file)
        return str(output_file)

    def build_appointments_dataframe(self, match_results: List[MatchResult]) -> pd.DataFrame:
        rows = [self._result_row(result) for result in match_results]
        return pd.DataFrame(rows, columns=APPOINTMENT_COLUMNS)

    def _result_row(self, result: MatchResult) -> Dict[str, Any]:
        appointment = result.appointment
        client = result.client
        return {
            "Confidence": result.confidence.value,
            "Date": appointment.start_time.date().isoformat() if appointment else "",
            "Time": format_time_range(appointment.start_time, appointment.end_time) if appointment else "",
            "Title": appointment.title if appointment else "",
            "Client ID": client.client_id if client else "",
            "Client Name": client.name if client else "",
            "Match Method": result.match_method,
            "Documentation": result.documentation_status.value,
            "Session ID": result.session_id or "",
            "Appointment ID": result.appointment_id,
        }

    def _create_appointments_sheet(self, wb: Workbook, title: str, match_results: List[MatchResult], index: int):
        """Create an appointments sheet with the Confidence column coloured."""
        if 'Sheet' in wb.sheetnames:
            wb.remove(wb['Sheet'])
        ws = wb.create_sheet(title, index)

        df = self.build_appointments_dataframe(match_results)
        for r in dataframe_to_rows(df, index=False, header=True):
            ws.append(r)

        self._format_sheet_headers(ws)
        self._apply_confidence_coloring(ws, len(df))

    def _apply_confidence_coloring(self, ws, row_count: int):
        confidence_col = 1  # Column A
        for row in range(2, row_count + 2):
            cell = ws.cell(row=row, column=confidence_col)
            color = CONFIDENCE_FILLS.get(cell.value)
            if color:
                cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")

    def _create_summary_sheet(self, wb: Workbook, report: AppointmentMatchReport):
        ws = wb.create_sheet("Summary")
        ws.append(["Metric", "Value"])

        match_rate = report.matched_appointments / report.total_appointments if report.total_appointments > 0 else 0
        rows = [
            ("Run ID", report.run_id),
            ("Source", report.source_identifier),
            ("Run Date", report.run_date.strftime('%Y-%m-%d %H:%M:%S')),
            ("Total Appointments", report.total_appointments),
            ("Matched", report.matched_appointments),
            ("Unmatched", report.unmatched_appointments),
            ("Requires Review", report.requires_review),
            ("Match Rate", f"{match_rate:.1%}"),
        ]
        rows += [(f"Confidence: {level}", count) for level, count in report.confidence_distribution.items()]
        rows += [(f"Method: {method}", count) for method, count in report.match_method_breakdown.items()]
        rows += [(f"Documentation: {status}", count) for status, count in report.documentation_breakdown.items()]

        for row in rows:
            ws.append(list(row))

        self._format_sheet_headers(ws)

    def _format_sheet_headers(self, ws):
        """Apply formatting to sheet headers."""
        header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")  # Blue
        header_font = Font(bold=True, color="FFFFFF")  # White text

        for col in range(1, ws.max_column + 1):
            cell = ws.cell(row=1, column=col)
            cell.fill = header_fill
            cell.font = header_font

            column_letter = get_column_letter(col)
            ws.column_dimensions[column_letter].auto_size = True
