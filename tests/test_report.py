import csv
from collections import Counter
from pathlib import Path

from blocos import report
from blocos.models import BlockRecord, Coordinate, EnrichedBlock, MatchStats


def sample_blocks():
    matched = EnrichedBlock(
        block=BlockRecord(id=1, name="Bola Preta", date=None, anchor=Coordinate(0.0, 0.0)),
        anchor=Coordinate(-22.91, -43.17),
        route=(Coordinate(-22.91, -43.17), Coordinate(-22.92, -43.17)),
        matched_name="BLOCO BOLA PRETA",
        match_strategy="prefix_insertion",
    )
    unmatched = EnrichedBlock(
        block=BlockRecord(id=2, name="Pipe | Bloco", date=None, anchor=Coordinate(0.0, 0.0), neighborhood="LAPA"),
        anchor=Coordinate(0.0, 0.0),
    )
    stats = MatchStats(total_blocks=2, total_geometry_groups=5, matched=1, by_strategy=Counter(prefix_insertion=1))
    return [matched, unmatched], stats


def test_markdown_summary_reports_coverage_and_unmatched():
    blocks, stats = sample_blocks()
    markdown = report.generate_markdown_summary(blocks, stats, source="api", notice="Using cached data")

    assert "1 of 2 blocks have traced routes" in markdown
    assert "- prefix_insertion: 1" in markdown
    assert "> Using cached data" in markdown
    assert "Pipe \\| Bloco" in markdown
    assert "| 1 | Bola Preta" not in markdown


def test_write_csv_and_json(tmp_path: Path):
    blocks, stats = sample_blocks()
    report.write_csv(tmp_path / "out" / "blocos.csv", blocks)
    report.write_json(tmp_path / "out" / "blocos.json", blocks, stats)

    with (tmp_path / "out" / "blocos.csv").open(encoding="utf-8") as handle:
        rows = list(csv.DictReader(handle))
    assert rows[0]["match_strategy"] == "prefix_insertion"
    assert rows[0]["route_points"] == "2"
    assert rows[1]["has_route"] == "False"
    assert (tmp_path / "out" / "blocos.json").exists()


def test_display_helpers():
    assert report.format_duration(45.4) == "45 min"
    assert report.format_duration(60) == "1h"
    assert report.format_duration(95) == "1h 35min"
    assert report.format_distance_km(0.42) == "420 m"
    assert report.format_distance_km(12.34) == "12.3 km"
    assert report.split_route_description("Rua A | Rua B / Praça C||") == ["Rua A", "Rua B", "Praça C"]
    assert report.split_route_description("") == []
    assert report.abbreviate("Curto") == "Curto"
    assert report.abbreviate("A" * 40, 10) == "AAAAAAA..."
