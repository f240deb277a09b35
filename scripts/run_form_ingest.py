#!/usr/bin/env python3
"""
Form Response Ingest Runner

Reads the form responses export configured in practice_config.yaml under
data.form_responses_path, writes persistent answers back to the client sheet
and marks the matching sessions completed.

Usage: run_form_ingest.py [--since ISO_TIMESTAMP]
"""

import sys
import os
import argparse
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
load_dotenv(project_root / "config" / ".env")

from core.config import load_config, validate_form_configuration
from core.client_directory import ClientDirectory
from core.session_tracker import SessionTracker
from core.form_persistence import FormResponseProcessor
from importers.form_response_importer import FormResponseImporter


def main():
    parser = argparse.ArgumentParser(description="Apply form responses to the client and session sheets")
    parser.add_argument('--since', help="Only process responses submitted after this timestamp")
    args = parser.parse_args()

    config = load_config(os.getenv('PRACTICE_CONFIG', project_root / 'config' / 'practice_config.yaml'))

    validation = validate_form_configuration(config)
    if not validation['is_valid']:
        for error in validation['errors']:
            print(f"⚠️  {error}")

    responses_file = os.getenv('FORM_RESPONSES_PATH') or config.get('data', {}).get('form_responses_path')
    if not responses_file or not Path(responses_file).exists():
        print(f"Error: Form responses file not found: {responses_file}")
        sys.exit(1)

    try:
        last_processed = datetime.fromisoformat(args.since) if args.since else None

        paths = config['paths']
        client_directory = ClientDirectory(config, paths['clients_sheet'])
        session_tracker = SessionTracker.load_csv(paths['sessions_sheet'], config)
        processor = FormResponseProcessor(config, client_directory, session_tracker)

        importer = FormResponseImporter(last_processed)
        responses = importer.extract_responses(responses_file)
        processed = processor.process_responses(responses)

        client_directory.save()
        session_tracker.save(paths['sessions_sheet'])

        stats = processor.get_processing_statistics()
        print(f"\n🎯 Form Ingest Complete")
        print(f"   Responses read: {len(responses)}")
        print(f"   Processed: {processed}")
        print(f"   Failed: {stats['failed_processed']}")
        print(f"   Success rate: {stats['success_rate']}%")
        if importer.latest_timestamp:
            print(f"   Next run: --since {importer.latest_timestamp.isoformat()}")

    except Exception as e:
        print(f"❌ Form ingest failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
