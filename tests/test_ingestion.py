"""
Tests for the ingestion pipeline
"""

import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
from datetime import datetime, timezone

import pytest

from src.breach_ingestion import (
    EmptyDatasetError,
    IngestedBatch,
    LogRecord,
    MalformedRowError,
    Normalizer,
    ParserMetadata,
    SourceType,
    UnparsableNumericError,
    ingest_csv_text,
    ingest_file,
    ingest_rows,
    preview_rows,
    simulate_attack_rows,
)
from src.breach_ingestion.normalizer import DEFAULT_PREVIEW_LIMIT
from src.breach_ingestion.parsers import CSVParser, RowParser
from src.breach_analysis import DatasetConfig

from conftest import CSV_HEADER, breach_rows, to_csv


class TestLogRecord:
    """Test the LogRecord model."""

    def test_defaults_are_absent(self):
        """A bare record has absent identifiers and zero risk."""
        record = LogRecord()

        assert record.server_id is None
        assert record.ml_risk_score == 0.0
        assert record.action == "UNKNOWN"
        assert record.is_corrupted
        assert set(record.missing_fields) == {
            "server_id", "firewall_id", "user", "action_type", "timestamp"
        }

    def test_complete_record_is_not_corrupted(self):
        """All five identifying fields present means not corrupted."""
        record = LogRecord(
            timestamp="2024-01-01T00:00:00Z",
            server_id="srv-001",
            firewall_id="fw-001",
            user="root",
            action_type="BRUTE_FORCE",
        )
        assert not record.is_corrupted
        assert record.missing_fields == []

    def test_failed_status_is_case_insensitive(self):
        assert LogRecord(status="failed").is_failed
        assert LogRecord(status="FAILED").is_failed
        assert not LogRecord(status="SUCCESS").is_failed
        assert not LogRecord().is_failed

    def test_critical_threshold_is_inclusive(self):
        assert LogRecord(ml_risk_score=0.9).is_critical
        assert not LogRecord(ml_risk_score=0.8999).is_critical

    def test_record_is_frozen(self):
        """Records cannot be modified after construction."""
        record = LogRecord(user="root")
        with pytest.raises(Exception):
            record.user = "someone_else"

    def test_to_row_uses_recognized_columns(self):
        row = LogRecord(user="root", ml_risk_score=0.5, row_number=3).to_row()

        assert row["user"] == "root"
        assert row["ml_risk_score"] == 0.5
        assert "row_number" not in row
        assert "observed_at" not in row


class TestCSVParser:
    """Test delimited text parsing."""

    def test_parses_all_rows(self):
        batch = ingest_csv_text(to_csv(breach_rows(20)))

        assert batch.record_count == 20
        assert batch.source_type == SourceType.CSV_LOG
        assert batch.records[0].firewall_id == "fw-001"
        assert batch.records[0].row_number == 1
        assert batch.metadata.rows_seen == 20

    def test_crlf_line_endings(self):
        """Windows line endings are accepted and stripped from values."""
        text = to_csv(breach_rows(3)).replace("\n", "\r\n")
        batch = ingest_csv_text(text)

        assert batch.record_count == 3
        assert batch.records[-1].notes == "event 2"

    def test_blank_lines_are_skipped(self):
        lines = to_csv(breach_rows(3)).splitlines()
        text = "\n".join([lines[0], lines[1], "", lines[2], "", "", lines[3], ""])
        batch = ingest_csv_text(text)

        assert batch.record_count == 3

    def test_quoted_fields_keep_commas(self):
        text = CSV_HEADER + "\n" + (
            '2024-01-01T00:00:00Z,srv-001,fw-001,root,BRUTE_FORCE,,,FAILED,0.95,SIEM,,'
            '"login failed, retrying"\n'
        )
        batch = ingest_csv_text(text)

        assert batch.records[0].notes == "login failed, retrying"

    def test_short_row_pads_absent_fields(self):
        """Missing trailing columns become absent, with a warning."""
        text = CSV_HEADER + "\n2024-01-01T00:00:00Z,srv-001,fw-001,root\n"
        batch = ingest_csv_text(text)
        record = batch.records[0]

        assert record.user == "root"
        assert record.action_type is None
        assert record.ml_risk_score == 0.0
        assert record.is_corrupted
        assert any("expected 12 fields, found 4" in w for w in batch.metadata.warnings)

    def test_long_row_is_truncated(self):
        text = CSV_HEADER + "\n" + (
            "2024-01-01T00:00:00Z,srv-001,fw-001,root,BRUTE_FORCE,,,FAILED,0.95,SIEM,,note\n"
            "2024-01-01T00:00:00Z,srv-001,fw-001,root,BRUTE_FORCE,,,FAILED,0.95,SIEM,,note,extra\n"
        )
        batch = ingest_csv_text(text)

        assert batch.record_count == 2
        assert batch.records[1].user == "root"
        assert batch.records[1].notes == "note"
        assert any("expected 12 fields, found 13" in w for w in batch.metadata.warnings)

    def test_long_first_data_row_is_truncated(self):
        """An over-wide first row does not shift the columns."""
        text = CSV_HEADER + "\n" + (
            "2024-01-01T00:00:00Z,srv-001,fw-001,root,BRUTE_FORCE,,,FAILED,0.95,SIEM,,note,extra,more\n"
        )
        batch = ingest_csv_text(text)
        record = batch.records[0]

        assert batch.record_count == 1
        assert record.timestamp == "2024-01-01T00:00:00Z"
        assert record.server_id == "srv-001"
        assert record.notes == "note"
        assert any("expected 12 fields, found 14" in w for w in batch.metadata.warnings)

    def test_whitespace_is_trimmed(self):
        text = " timestamp , user , ml_risk_score \n 2024-01-01T00:00:00Z ,  root , 0.5 \n"
        record = ingest_csv_text(text).records[0]

        assert record.user == "root"
        assert record.timestamp == "2024-01-01T00:00:00Z"
        assert record.ml_risk_score == 0.5

    def test_unrecognized_columns_are_ignored(self):
        text = "user,favourite_color,ml_risk_score\nroot,blue,0.3\n"
        record = ingest_csv_text(text).records[0]

        assert record.user == "root"
        assert not hasattr(record, "favourite_color")

    def test_unparsable_risk_defaults_to_zero(self):
        text = "user,ml_risk_score\nroot,very-high\nalice,nan\n"
        batch = ingest_csv_text(text)

        assert [r.ml_risk_score for r in batch.records] == [0.0, 0.0]
        assert len(batch.metadata.warnings) == 2
        assert "ml_risk_score" in batch.metadata.warnings[0]

    def test_unparsable_timestamp_keeps_raw_text(self):
        """The raw text stays on the record; only the parsed instant is absent."""
        text = "timestamp,user\nnot-a-date,root\n2024-01-01T00:00:05Z,alice\n"
        batch = ingest_csv_text(text)

        assert batch.records[0].timestamp == "not-a-date"
        assert batch.records[0].observed_at is None
        assert batch.records[1].observed_at == datetime(2024, 1, 1, 0, 0, 5, tzinfo=timezone.utc)
        assert any("could not be parsed" in w for w in batch.metadata.warnings)

    def test_clock_words_are_not_timestamps(self):
        """'now' and 'today' are unparsable instead of resolving to the current time."""
        text = "timestamp,user\nnow,root\nToday,alice\n2024-01-01T00:00:00Z,bob\n"
        batch = ingest_csv_text(text)

        assert [r.observed_at for r in batch.records[:2]] == [None, None]
        assert batch.records[0].timestamp == "now"
        assert batch.records[2].observed_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert sum("could not be parsed" in w for w in batch.metadata.warnings) == 2

    def test_empty_text_raises(self):
        with pytest.raises(EmptyDatasetError):
            ingest_csv_text("")

    def test_header_only_raises(self):
        with pytest.raises(EmptyDatasetError):
            ingest_csv_text(CSV_HEADER + "\n")

    def test_source_hash(self):
        text = to_csv(breach_rows(2))
        parser = CSVParser(text)

        assert parser.get_source_hash() == CSVParser.hash_text(text)
        assert len(parser.get_source_hash()) == 64


class TestRowParser:
    """Test pre-parsed row ingestion."""

    def test_values_are_stringified(self):
        batch = ingest_rows([{"user": "root", "ml_risk_score": 0.75, "notes": 42}])
        record = batch.records[0]

        assert record.ml_risk_score == 0.75
        assert record.notes == "42"
        assert batch.source_type == SourceType.ROWS

    def test_keys_are_trimmed(self):
        record = ingest_rows([{" user ": "root"}]).records[0]
        assert record.user == "root"

    def test_none_and_blank_are_absent(self):
        record = ingest_rows([{"user": None, "server_id": "   ", "firewall_id": ""}]).records[0]

        assert record.user is None
        assert record.server_id is None
        assert record.firewall_id is None

    def test_non_mapping_rows_are_skipped(self):
        parser = RowParser([{"user": "root"}, "garbage", 7])
        records, metadata = parser.run()

        assert len(records) == 1
        assert len(metadata.errors) == 2
        assert metadata.rows_seen == 3

    def test_empty_rows_raise(self):
        with pytest.raises(EmptyDatasetError):
            ingest_rows([])

    def test_only_invalid_rows_raise(self):
        with pytest.raises(EmptyDatasetError):
            ingest_rows(["not", "rows"])


class TestNormalizer:
    """Test the Normalizer class."""

    def test_supported_extensions(self):
        normalizer = Normalizer()

        assert '.csv' in normalizer.PARSER_MAP
        assert '.json' in normalizer.PARSER_MAP

    def test_unsupported_extension_raises(self):
        with pytest.raises(ValueError, match="No parser available"):
            Normalizer().get_parser("file.txt")

    def test_nonexistent_file_raises(self):
        with pytest.raises(FileNotFoundError):
            Normalizer().ingest("nonexistent.csv")

    def test_ingest_csv_file(self, tmp_path):
        path = tmp_path / "logs.csv"
        path.write_text(to_csv(breach_rows(10)), encoding="utf-8")

        batch = ingest_file(path)

        assert batch.record_count == 10
        assert batch.source_name == "logs.csv"
        assert batch.source_hash is not None

    def test_ingest_json_list(self, tmp_path):
        path = tmp_path / "logs.json"
        path.write_text(json.dumps(breach_rows(5)), encoding="utf-8")

        batch = ingest_file(path)

        assert batch.record_count == 5
        assert batch.source_type == SourceType.JSON_ROWS

    def test_ingest_json_rows_object(self, tmp_path):
        path = tmp_path / "body.json"
        path.write_text(json.dumps({"rows": breach_rows(4)}), encoding="utf-8")

        assert ingest_file(path).record_count == 4

    def test_json_scalar_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("42", encoding="utf-8")

        with pytest.raises(ValueError):
            ingest_file(path)

    def test_empty_csv_file_raises(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")

        with pytest.raises(EmptyDatasetError):
            ingest_file(path)


class TestPreview:
    """Test the dataset preview."""

    def test_preview_limits_rows(self):
        batch = ingest_rows(breach_rows(30))
        preview = preview_rows(batch, 5)

        assert preview["total_rows"] == 30
        assert len(preview["preview"]) == 5
        assert preview["preview"][0]["notes"] == "event 0"

    def test_preview_is_capped_at_dataset_size(self):
        batch = ingest_rows(breach_rows(3))

        assert len(preview_rows(batch, 20)["preview"]) == 3
        assert len(preview_rows(batch, None)["preview"]) == 3

    def test_default_limit_is_configured(self):
        batch = ingest_rows(breach_rows(30))

        assert len(preview_rows(batch)["preview"]) == DEFAULT_PREVIEW_LIMIT
        assert DatasetConfig.PREVIEW_LIMIT == DEFAULT_PREVIEW_LIMIT

    def test_batch_metadata(self):
        batch = IngestedBatch(
            source_type=SourceType.ROWS,
            records=(LogRecord(user="root"),),
            metadata=ParserMetadata(parser_name="test_parser"),
        )
        assert batch.record_count == 1
        assert batch.preview(0) == []


class TestSimulation:
    """Test the synthetic attack generator."""

    def test_default_count(self):
        assert len(simulate_attack_rows()) == 100

    def test_rows_normalize_to_critical_corrupted_records(self):
        start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        batch = ingest_rows(simulate_attack_rows(10, now=start))

        assert batch.record_count == 10
        assert all(r.is_critical for r in batch.records)
        assert all(r.server_id is None and r.is_corrupted for r in batch.records)
        assert batch.records[0].observed_at == start
        assert batch.records[3].notes == "Anomalous activity packet #3"
        assert {r.firewall_id for r in batch.records} == {"fw-999"}


class TestErrors:
    """Test the error taxonomy."""

    def test_errors_are_value_errors(self):
        assert issubclass(EmptyDatasetError, ValueError)
        assert issubclass(MalformedRowError, ValueError)

    def test_messages(self):
        assert str(MalformedRowError(4, 12, 9)) == "Row 4: expected 12 fields, found 9"
        assert "using 0.0" in str(UnparsableNumericError(2, "ml_risk_score", "x"))
        assert str(EmptyDatasetError()) == "No valid data rows found in the dataset."
