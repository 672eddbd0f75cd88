import tempfile

import pytest

from stormrank.engine import StormAnalysis
from stormrank.loader import events_from_frame
from stormrank.models import Ranking
from stormrank.normalizer import RULES
from stormrank.report import ReportConfig, format_ranking, generate_docx_report, plot_economic, plot_health, save_charts


@pytest.fixture
def analysis(storm_frame):
    return StormAnalysis.run(events_from_frame(storm_frame), dataset_path="StormData.csv.bz2")


def test_format_health_table(analysis) -> None:
    text = format_ranking(analysis.health, 2)
    lines = text.splitlines()
    assert "Fatalities" in lines[0]
    assert len(lines) == 4
    assert "FLOOD" in lines[2]
    assert "THUNDERSTORM" in lines[3]


def test_format_economic_table(analysis) -> None:
    text = format_ranking(analysis.economic, None)
    assert "1,000,000,000" in text
    assert "Total US$" in text


def test_format_empty_table() -> None:
    assert "(no rows)" in format_ranking(Ranking("health", ("total_fatalities",), ()), 5)


def test_charts_are_written(tmp_path, analysis) -> None:
    pytest.importorskip("matplotlib")
    assert (tmp_path / "h.png").exists() is False
    plot_health(analysis.health, tmp_path / "h.png", 3, dpi=50)
    plot_economic(analysis.economic, tmp_path / "e.png", 3, dpi=50)
    assert (tmp_path / "h.png").stat().st_size > 0
    assert (tmp_path / "e.png").stat().st_size > 0

    paths = save_charts(analysis, tmp_path / "charts", 2, dpi=50)
    assert len(paths) == 2


def test_docx_report(tmp_path, analysis) -> None:
    docx = pytest.importorskip("docx")
    pytest.importorskip("matplotlib")
    out = tmp_path / "reports" / "storms.docx"
    generate_docx_report(analysis, out, config=ReportConfig(top_n=3, chart_dpi=50))
    assert out.exists()

    doc = docx.Document(str(out))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Storm Events: Health and Economic Impact" in text
    assert "rule set v1" in text
    assert "Dataset file: StormData.csv.bz2" in text
    assert len(doc.tables) == 3

    rules_table = doc.tables[0]
    assert [c.text for c in rules_table.rows[0].cells] == ["Rule", "Match", "Pattern", "Label", "Hits"]
    assert len(rules_table.rows) == 1 + len(RULES)
    hits = {row.cells[0].text: row.cells[4].text for row in rules_table.rows[1:]}
    # one rule fires per matched raw value; RIP CURRENT matches none
    assert hits["1"] == "1"
    assert hits["2"] == "1"
    assert hits["4"] == "1"
    assert hits["12"] == "0"
    assert hits["13"] == "1"
    assert hits["16"] == "0"
    assert rules_table.rows[16].cells[2].text == "TROPICALS"

    assert doc.tables[1].rows[1].cells[1].text == "FLOOD"


def test_docx_report_leaves_no_scratch_files(tmp_path, analysis, monkeypatch) -> None:
    pytest.importorskip("docx")
    pytest.importorskip("matplotlib")
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    generate_docx_report(analysis, tmp_path / "storms.docx", config=ReportConfig(chart_dpi=50))
    assert (tmp_path / "storms.docx").exists()
    assert list(scratch.iterdir()) == []
