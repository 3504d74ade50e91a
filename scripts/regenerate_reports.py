#!/usr/bin/env python3
"""Regenerate breach reports for every raw log file"""

import json
import sys
from datetime import datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.breach_ingestion import EmptyDatasetError, Normalizer
from src.breach_analysis import DatasetConfig, analyze_breach_data


def regenerate_reports(raw_dir: Path = Path("data/raw")) -> int:
    """Re-analyze raw CSV/JSON logs; returns the number of reports written."""
    processed_dir = DatasetConfig.ensure_output_dir()
    normalizer = Normalizer()

    files_to_process = sorted(
        p for p in raw_dir.glob("*") if p.suffix.lower() in normalizer.PARSER_MAP
    )
    if not files_to_process:
        print(f"⚠️  No log files found in {raw_dir}")
        return 0

    written = 0
    for raw_file in files_to_process:
        print(f"\n📄 Processing {raw_file.name}...")
        try:
            batch = normalizer.ingest(raw_file)
            report = analyze_breach_data(batch.records)

            output_file = processed_dir / f"{raw_file.stem}_report_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(report.to_document(), f, indent=2, ensure_ascii=False)

            written += 1
            print(f"✅ {batch.record_count} events, risk {report.risk_score:.1f}/10 -> {output_file.name}")
            if batch.metadata.warnings:
                print(f"   {len(batch.metadata.warnings)} warnings")
                for warning in batch.metadata.warnings[:3]:
                    print(f"      - {warning}")

        except (EmptyDatasetError, ValueError) as e:
            print(f"❌ Error processing {raw_file.name}: {e}")

    return written


if __name__ == "__main__":
    regenerate_reports(Path(sys.argv[1]) if len(sys.argv) > 1 else Path("data/raw"))
