#!/usr/bin/env python3
"""
Breach Report - Simple CLI Runner

Analyzes a security-event log and saves the breach report as JSON.

Usage:
    python run.py [file_path] [--output-dir <path>] [--preview [N]] [--json]
    python run.py faulty_logs_100.csv
    python run.py data/raw/logs.json --output-dir reports
    python run.py faulty_logs_100.csv --preview 5
"""

import json
import sys
from pathlib import Path
from typing import Optional

from src.breach_ingestion import EmptyDatasetError, Normalizer, preview_rows
from src.breach_analysis import DatasetConfig, analyze_breach_data


def _option(argv: list[str], name: str) -> Optional[str]:
    if name in argv:
        idx = argv.index(name)
        if idx + 1 < len(argv):
            return argv[idx + 1]
    return None


def _positional(argv: list[str]) -> Optional[str]:
    skip = False
    for arg in argv:
        if skip:
            skip = False
            continue
        if arg in ("--output-dir", "--preview"):
            skip = True
            continue
        if not arg.startswith("--"):
            return arg
    return None


def save_report(document: dict, source: Path, output_dir: Path) -> Path:
    """Write a report document as ``<source stem>_<breach id>.json``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{source.stem}_{document['breachId']}.json"
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)
    return output_path


def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    if "--help" in argv or "-h" in argv:
        print(__doc__)
        return 0

    file_path = Path(_positional(argv) or DatasetConfig.DEFAULT_DATASET)
    output_dir = Path(_option(argv, "--output-dir") or DatasetConfig.OUTPUT_DIR)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    try:
        batch = Normalizer().ingest(file_path)
    except (EmptyDatasetError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if "--preview" in argv:
        preview = _option(argv, "--preview")
        if preview is None or preview.startswith("--"):
            limit = DatasetConfig.PREVIEW_LIMIT
        else:
            try:
                limit = int(preview)
            except ValueError:
                print(f"Error: --preview expects a number, got '{preview}'")
                return 1
        print(json.dumps(preview_rows(batch, limit), indent=2, ensure_ascii=False))
        return 0

    report = analyze_breach_data(batch.records)
    document = report.to_document()

    if "--json" in argv:
        print(json.dumps(document, indent=2, ensure_ascii=False))
        return 0

    print(f"Analyzing: {file_path}")
    print("-" * 50)

    for warning in batch.metadata.warnings:
        print(f"  Warning: {warning}")
    for error in batch.metadata.errors:
        print(f"  Error: {error}")

    meta = document["meta"]
    print(f"Report: {report.breach_id}")
    print(f"Events: {meta['totalLogs']}")
    print(f"  Failed: {meta['failedLogs']} ({meta['failedPct']}%)")
    print(f"  Critical: {meta['highRiskEvents']} ({meta['criticalPct']}%)")
    print(f"  Corrupted: {meta['corruptedCount']} ({meta['corruptedPct']}%)")
    print(f"Risk score: {report.risk_score:.1f}/10")
    print(f"Timeline entries: {len(report.attack_timeline)}")
    print("-" * 50)

    output_path = save_report(document, file_path, output_dir)
    print(f"Saved to: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
