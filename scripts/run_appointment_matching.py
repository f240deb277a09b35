#!/usr/bin/env python3
"""
Appointment Matching Runner

Matches the calendar export configured in practice_config.yaml under
data.calendar_export_path against the client sheet, marks each appointment
with its documentation status and writes JSON and Excel reports.
No command line arguments required.
"""

import sys
import os
import json
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
load_dotenv(project_root / "config" / ".env")

from core.config import load_config
from core.client_directory import ClientDirectory
from core.appointment_matcher import AppointmentMatcher
from core.session_tracker import SessionTracker
from importers.calendar_csv_importer import CalendarCsvImporter
from exporters.appointment_report import AppointmentReport


def export_match_report(report, output_config: dict) -> Path:
    """Export matching report to JSON."""
    output_base = Path(output_config.get('output_base', 'output'))
    reports_dir = output_base / output_config.get('reports_subdir', 'appointment_reports')
    reports_dir.mkdir(parents=True, exist_ok=True)

    report_file = reports_dir / f"{report.run_id}.json"
    with open(report_file, 'w') as f:
        json.dump(report.model_dump(mode='json'), f, indent=2, default=str)

    print(f"Report saved to: {report_file}")
    return reports_dir


def main():
    config = load_config(os.getenv('PRACTICE_CONFIG', project_root / 'config' / 'practice_config.yaml'))

    calendar_file = os.getenv('CALENDAR_EXPORT_PATH') or config.get('data', {}).get('calendar_export_path')
    if not calendar_file:
        print("Error: calendar_export_path not found in config")
        sys.exit(1)

    if not Path(calendar_file).exists():
        print(f"Error: Calendar export not found: {calendar_file}")
        sys.exit(1)

    print(f"Matching appointments from: {calendar_file}")

    try:
        paths = config['paths']
        client_directory = ClientDirectory(config, paths['clients_sheet'])
        session_tracker = SessionTracker.load_csv(paths['sessions_sheet'], config)

        matcher = AppointmentMatcher(config, client_directory)

        importer = CalendarCsvImporter(config, matcher, session_tracker)
        report = importer.match_appointments(calendar_file)

        reports_dir = export_match_report(report, paths)
        excel_file = AppointmentReport().export_excel_report(report, reports_dir / f"{report.run_id}.xlsx")
        print(f"Excel report saved to: {excel_file}")

        print(f"\n🎯 Appointment Matching Complete")
        print(f"   Total appointments: {report.total_appointments}")
        print(f"   Matched: {report.matched_appointments}")
        print(f"   Unmatched: {report.unmatched_appointments}")
        print(f"   Requires review: {report.requires_review}")
        print(f"   Processing time: {report.processing_time:.2f}s")

        print(f"\n📊 Confidence Distribution:")
        for level, count in report.confidence_distribution.items():
            print(f"   {level.capitalize()}: {count}")

        print(f"\n🔍 Match Methods:")
        for method, count in report.match_method_breakdown.items():
            print(f"   {method.replace('_', ' ').title()}: {count}")

        print(f"\n📝 Documentation:")
        for status, count in report.documentation_breakdown.items():
            print(f"   {status.replace('_', ' ').title()}: {count}")

        # Suggestions for appointments no strategy could place
        unmatched = [r for r in report.match_results if not r.is_matched and r.appointment]
        if unmatched:
            print(f"\n❓ Unmatched appointments:")
            for result in unmatched:
                suggestions = matcher.suggest_clients(result.appointment)
                names = ", ".join(f"{c.name} ({c.client_id})" for c in suggestions) or "no suggestions"
                print(f"   {result.appointment.title}: {names}")

    except Exception as e:
        print(f"❌ Appointment matching failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
