"""Unit tests for fusionforge.io.fasta module."""

from pathlib import Path

import pytest

from fusionforge.errors import InputDataError, ResourceError
from fusionforge.io.fasta import GenomeAccessor


def _read_sequence(path: Path, chrom: str) -> str:
    sequences: dict[str, list[str]] = {}
    current = None
    for line in path.read_text().splitlines():
        if line.startswith(">"):
            current = line[1:]
            sequences[current] = []
        else:
            sequences[current].append(line)
    return "".join(sequences[chrom])


class TestGenomeAccessor:
    """Tests for GenomeAccessor."""

    def test_fetch_one_based_inclusive(self, synthetic_fasta: Path) -> None:
        """Test coordinates are 1-based and inclusive."""
        expected = _read_sequence(synthetic_fasta, "chr1")
        with GenomeAccessor(synthetic_fasta) as genome:
            assert genome.fetch("chr1", 1, 10) == expected[:10]
            assert genome.fetch("chr1", 79, 82) == expected[78:82]
            assert genome.fetch("chr1", 2000, 2000) == expected[-1]

    def test_unknown_chromosome(self, synthetic_fasta: Path) -> None:
        """Test unknown chromosomes."""
        with GenomeAccessor(synthetic_fasta) as genome:
            with pytest.raises(InputDataError, match="not found"):
                genome.fetch("chr3", 1, 10)

    @pytest.mark.parametrize("start, end", [(0, 10), (990, 1001), (20, 10)])
    def test_out_of_range(self, synthetic_fasta: Path, start: int, end: int) -> None:
        """Test regions outside the sequence."""
        with GenomeAccessor(synthetic_fasta) as genome:
            with pytest.raises(InputDataError, match="outside sequence"):
                genome.fetch("chr2", start, end)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test missing FASTA files."""
        with pytest.raises(ResourceError, match="not found"):
            GenomeAccessor(tmp_path / "missing.fa")

    def test_closed(self, synthetic_fasta: Path) -> None:
        """Test fetching after close."""
        genome = GenomeAccessor(synthetic_fasta)
        genome.close()
        with pytest.raises(RuntimeError):
            genome.fetch("chr1", 1, 10)
