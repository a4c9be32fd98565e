"""Tests for the CSV report writer."""

import csv

from sendertally.report.csv_report import write_report


class TestWriteReport:
    def test_header_and_rows(self, tmp_path):
        path = write_report(tmp_path / "report.csv", [("jane@x.com", 2), ("bob@y.org", 1)])

        with path.open(newline="") as fh:
            rows = list(csv.reader(fh))

        assert rows == [
            ["Sender", "MessageCount"],
            ["jane@x.com", "2"],
            ["bob@y.org", "1"],
        ]

    def test_empty_tally_writes_header_only(self, tmp_path):
        path = write_report(tmp_path / "report.csv", [])

        assert path.read_text().splitlines() == ["Sender,MessageCount"]

    def test_creates_parent_directories(self, tmp_path):
        path = write_report(tmp_path / "out" / "nested" / "report.csv", [("a@x.com", 1)])

        assert path.exists()

    def test_overwrites_existing_file(self, tmp_path):
        target = tmp_path / "report.csv"
        target.write_text("stale\n")

        write_report(target, [("a@x.com", 1)])

        assert "stale" not in target.read_text()

    def test_quotes_awkward_addresses(self, tmp_path):
        path = write_report(tmp_path / "report.csv", [("odd,addr@x.com", 1)])

        with path.open(newline="") as fh:
            rows = list(csv.reader(fh))

        assert rows[1] == ["odd,addr@x.com", "1"]
