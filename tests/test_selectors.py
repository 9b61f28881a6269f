"""Unit tests for fusionforge.core.selectors module."""

from unittest.mock import MagicMock

import pytest

from fusionforge.core.models import Transcript
from fusionforge.core.selectors import (
    BackgroundSelector,
    GeneSelector,
    StaticSelector,
    TranscriptFilter,
)
from fusionforge.core.depth import ReadDepthEstimator
from fusionforge.errors import GeneModelError, InputDataError
from fusionforge.io.refflat import format_refflat_line, read_refflat_lines


class TestTranscriptFilter:
    """Tests for TranscriptFilter."""

    def test_matches_any_identifier(self, chr1_transcripts: list[Transcript]) -> None:
        """Test gene id, transcript id and chromosome matching."""
        tx = chr1_transcripts[0]
        assert TranscriptFilter(["GENE0"]).matches(tx)
        assert TranscriptFilter(["NM_000"]).matches(tx)
        assert TranscriptFilter.for_chromosome("chr1").matches(tx)
        assert not TranscriptFilter(["GENE1", "chr2"]).matches(tx)

    def test_apply_keeps_order(self, chr1_transcripts: list[Transcript]) -> None:
        """Test filtered order follows input order."""
        selected = TranscriptFilter(["GENE5", "NM_002"]).apply(chr1_transcripts)
        assert [t.transcript_id for t in selected] == ["NM_002", "NM_005"]


class TestStaticSelector:
    """Tests for StaticSelector."""

    def test_select_all(self, chr1_transcripts: list[Transcript]) -> None:
        """Test unfiltered selection returns everything."""
        selector = StaticSelector(iter(chr1_transcripts))
        assert len(selector.select()) == 10
        # the source iterator is consumed once and cached
        assert len(selector.select()) == 10

    def test_protocol(self, chr1_transcripts: list[Transcript]) -> None:
        """Test selectors satisfy the GeneSelector protocol."""
        assert isinstance(StaticSelector(chr1_transcripts), GeneSelector)

    def test_filter(self, chr1_transcripts: list[Transcript]) -> None:
        """Test filtered selection."""
        selector = StaticSelector(chr1_transcripts)
        assert [t.gene_id for t in selector.select(TranscriptFilter(["GENE3"]))] == ["GENE3"]

    def test_filter_without_match(self, chr1_transcripts: list[Transcript]) -> None:
        """Test an empty filter result is an input error."""
        selector = StaticSelector(chr1_transcripts)
        with pytest.raises(InputDataError, match="No transcripts match"):
            selector.select(TranscriptFilter(["MISSING"]))

    def test_scores_untouched(self, chr1_transcripts: list[Transcript]) -> None:
        """Test static selection leaves transcripts unscored."""
        assert all(t.depth_score == 0.0 for t in StaticSelector(chr1_transcripts).select())


class TestBackgroundSelector:
    """Tests for BackgroundSelector."""

    def test_runs_estimator_once(self, chr1_transcripts: list[Transcript]) -> None:
        """Test the estimator is invoked once and results are cached."""
        estimator = MagicMock()
        estimator.estimate.return_value = [
            chr1_transcripts[4].with_depth_score(2.0),
            chr1_transcripts[1].with_depth_score(5.0),
        ]
        selector = BackgroundSelector(chr1_transcripts, estimator)

        first = selector.select()
        second = selector.select()

        estimator.estimate.assert_called_once()
        assert [t.transcript_id for t in first] == ["NM_001", "NM_004"]
        assert first == second

    def test_filter_may_be_empty(self, chr1_transcripts: list[Transcript]) -> None:
        """Test filtered background selection can be empty."""
        estimator = MagicMock()
        estimator.estimate.return_value = [chr1_transcripts[0].with_depth_score(1.0)]
        selector = BackgroundSelector(chr1_transcripts, estimator)
        assert selector.select(TranscriptFilter(["GENE9"])) == []

    def test_malformed_gene_model(self, chr1_transcripts: list[Transcript]) -> None:
        """Test a malformed gene model line is reported as a gene model error."""
        source = MagicMock()
        source.total_mapped_reads.return_value = 1000
        source.count_transcript.return_value = 0
        estimator = ReadDepthEstimator(source_factory=lambda: source, poll_timeout=0.01)
        lines = [format_refflat_line(chr1_transcripts[0]), "GENE1\tNM_001"]
        selector = BackgroundSelector(read_refflat_lines(lines), estimator)
        with pytest.raises(GeneModelError, match="Line 2"):
            selector.select()
