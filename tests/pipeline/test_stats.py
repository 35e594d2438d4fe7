# SPDX-License-Identifier: MIT
"""Tests for gap coverage statistics."""

from rich.console import Console

from spot_pipeline.stats import gap_statistics, print_stats


class TestGapStatistics:
    """Test coverage counts."""

    def test_counts(self, make_record, complete_spot_data):
        records = [
            make_record(**complete_spot_data),
            make_record(id=2),
            make_record(**{**complete_spot_data, "id": 3, "image_url": None, "country": "Other", "country_ja": "その他"}),
        ]

        stats = gap_statistics(records)
        by_gap = {row["gap"]: row for row in stats["gaps"]}

        assert stats["total"] == 3
        assert stats["complete"] == 1
        assert stats["unknown_country"] == 1
        assert by_gap["image"]["missing"] == 2
        assert by_gap["country"]["missing"] == 1
        assert by_gap["locale:ja"]["missing"] == 1
        assert by_gap["year"]["coverage_pct"] == 66.67

    def test_empty(self):
        stats = gap_statistics([])

        assert stats["total"] == 0
        assert all(row["coverage_pct"] == 0.0 for row in stats["gaps"])

    def test_print(self, make_record):
        console = Console(record=True, width=100)

        print_stats(gap_statistics([make_record()], languages=("ja",)), console)

        text = console.export_text()
        assert "Total spots" in text
        assert "locale:ja" in text
