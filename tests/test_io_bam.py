"""Unit tests for fusionforge.io.bam module.

Note: These tests use mocking since creating real BAM files requires
complex setup.
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from fusionforge.core.models import Transcript
from fusionforge.errors import ResourceError
from fusionforge.io.bam import AlignmentSource, find_index


def _read(unmapped: bool = False, mate_unmapped: bool = False) -> MagicMock:
    read = MagicMock()
    read.is_unmapped = unmapped
    read.mate_is_unmapped = mate_unmapped
    return read


@pytest.fixture
def bam_path(tmp_path: Path) -> Path:
    """Empty BAM file with an index next to it."""
    path = tmp_path / "test.bam"
    path.touch()
    (tmp_path / "test.bam.bai").touch()
    return path


# =============================================================================
# Initialization Tests
# =============================================================================


class TestAlignmentSourceInit:
    """Tests for AlignmentSource initialization."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test missing BAM files."""
        with pytest.raises(ResourceError, match="BAM file not found"):
            AlignmentSource(tmp_path / "missing.bam")

    def test_missing_index(self, tmp_path: Path) -> None:
        """Test BAM files without an index."""
        path = tmp_path / "test.bam"
        path.touch()
        with pytest.raises(ResourceError, match="BAM index not found"):
            AlignmentSource(path)

    def test_find_index_variants(self, tmp_path: Path) -> None:
        """Test .bam.bai, .bai and .csi indexes."""
        path = tmp_path / "reads.bam"
        assert find_index(path) is None
        (tmp_path / "reads.bai").touch()
        assert find_index(path) == tmp_path / "reads.bai"

    @patch("fusionforge.io.bam.pysam.AlignmentFile")
    def test_open_failure(self, mock_alignment_file: MagicMock, bam_path: Path) -> None:
        """Test pysam errors become resource errors."""
        mock_alignment_file.side_effect = ValueError("file has no sequences defined")
        with pytest.raises(ResourceError, match="Cannot open BAM file"):
            AlignmentSource(bam_path)

    @patch("fusionforge.io.bam.pysam.AlignmentFile")
    def test_context_manager(self, mock_alignment_file: MagicMock, bam_path: Path) -> None:
        """Test the handle is closed on exit."""
        mock_file = MagicMock()
        mock_file.references = ["chr1"]
        mock_alignment_file.return_value = mock_file

        with AlignmentSource(bam_path) as source:
            assert source.references == ["chr1"]
        mock_file.close.assert_called_once()
        with pytest.raises(RuntimeError, match="not open"):
            source.total_mapped_reads()


# =============================================================================
# Counting Tests
# =============================================================================


class TestCounting:
    """Tests for read counting."""

    @pytest.fixture
    def mock_source(self, bam_path: Path):
        """AlignmentSource over a mocked BAM file."""
        with patch("fusionforge.io.bam.pysam.AlignmentFile") as mock_alignment_file:
            mock_file = MagicMock()
            mock_file.references = ["chr1", "chr2"]
            mock_alignment_file.return_value = mock_file
            source = AlignmentSource(bam_path)
            yield source, mock_file
            source.close()

    def test_total_mapped_reads(self, mock_source) -> None:
        """Test index statistics are summed."""
        source, mock_file = mock_source
        mock_file.get_index_statistics.return_value = [
            MagicMock(mapped=600),
            MagicMock(mapped=400),
        ]
        assert source.total_mapped_reads() == 1000

    def test_unmapped_pairs_excluded(self, mock_source) -> None:
        """Test reads count unless both mates are unmapped."""
        source, mock_file = mock_source
        mock_file.fetch.return_value = [
            _read(),
            _read(unmapped=True),
            _read(mate_unmapped=True),
            _read(unmapped=True, mate_unmapped=True),
        ]
        assert source.count_overlapping("chr1", 100, 200) == 3
        mock_file.fetch.assert_called_once_with("chr1", 100, 200)

    def test_unknown_chromosome(self, mock_source) -> None:
        """Test chromosomes absent from the header have no reads."""
        source, mock_file = mock_source
        assert source.count_overlapping("chrUn", 0, 10) == 0
        mock_file.fetch.assert_not_called()

    def test_count_transcript(self, mock_source, forward_transcript: Transcript) -> None:
        """Test counts are summed over exons."""
        source, mock_file = mock_source
        mock_file.fetch.side_effect = lambda chrom, start, end: [_read()] * (start // 100)
        # exons start at 100, 200, 300 and 400
        assert source.count_transcript(forward_transcript) == 1 + 2 + 3 + 4
