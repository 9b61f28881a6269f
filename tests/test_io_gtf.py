"""Unit tests for fusionforge.io.gtf module."""

from pathlib import Path

import pytest

from fusionforge.core.models import Strand
from fusionforge.errors import GeneModelError, ResourceError
from fusionforge.io.gtf import (
    iter_gtf_transcripts,
    parse_feature_line,
    parse_gff3_attributes,
    parse_gtf_attributes,
)

# =============================================================================
# Attribute Tests
# =============================================================================


class TestAttributes:
    """Tests for attribute parsing."""

    def test_gtf(self) -> None:
        """Test quoted GTF attributes."""
        attributes = parse_gtf_attributes(
            'gene_id "G1"; transcript_id "TX1"; tag "basic"; tag "CCDS"; level 2;'
        )
        assert attributes["gene_id"] == "G1"
        assert attributes["transcript_id"] == "TX1"
        assert attributes["tag"] == "basic"
        assert attributes["level"] == "2"

    def test_gff3(self) -> None:
        """Test key=value attributes with escapes."""
        attributes = parse_gff3_attributes("ID=mRNA1;Parent=gene1;Note=a%3Bb")
        assert attributes == {"ID": "mRNA1", "Parent": "gene1", "Note": "a;b"}

    def test_gff3_empty(self) -> None:
        """Test placeholder attribute column."""
        assert parse_gff3_attributes(".") == {}


class TestParseFeatureLine:
    """Tests for parse_feature_line."""

    def test_zero_based(self) -> None:
        """Test coordinates become 0-based half-open."""
        feature = parse_feature_line('chr1\tsrc\texon\t101\t200\t.\t+\t.\tgene_id "G";')
        assert feature is not None
        assert (feature.start, feature.end) == (100, 200)

    def test_comment(self) -> None:
        """Test comment lines are skipped."""
        assert parse_feature_line("##gff-version 3", "gff3") is None

    def test_malformed(self) -> None:
        """Test short and non-numeric lines."""
        with pytest.raises(GeneModelError, match="expected 9 columns"):
            parse_feature_line("chr1\tsrc\texon")
        with pytest.raises(GeneModelError, match="Invalid coordinate"):
            parse_feature_line("chr1\tsrc\texon\tx\t200\t.\t+\t.\t.")


# =============================================================================
# Conversion Tests
# =============================================================================


class TestIterGtfTranscripts:
    """Tests for GTF conversion."""

    def test_coding_transcript(self, synthetic_gtf: Path) -> None:
        """Test exons, CDS with stop codon and gene name."""
        transcripts = {t.transcript_id: t for t in iter_gtf_transcripts(synthetic_gtf)}
        tx = transcripts["TX1"]
        assert tx.gene_id == "ALPHA"
        assert tx.strand is Strand.FORWARD
        assert tx.exons == ((100, 200), (300, 400))
        assert (tx.tx_start, tx.tx_end) == (100, 400)
        assert (tx.cds_start, tx.cds_end) == (150, 353)

    def test_noncoding_transcript(self, synthetic_gtf: Path) -> None:
        """Test transcripts without CDS get an empty CDS at txEnd."""
        transcripts = {t.transcript_id: t for t in iter_gtf_transcripts(synthetic_gtf)}
        tx = transcripts["TX2"]
        assert tx.gene_id == "G2"
        assert tx.strand is Strand.REVERSE
        assert tx.cds_start == tx.cds_end == 600
        assert tx.coding_exons == ()

    def test_reverse_stop_codon(self, tmp_path: Path) -> None:
        """Test reverse-strand stop codons extend the CDS start."""
        attrs = 'gene_id "G3"; transcript_id "TX3";'
        path = tmp_path / "rev.gtf"
        path.write_text(
            f"chr1\tt\texon\t101\t300\t.\t-\t.\t{attrs}\n"
            f"chr1\tt\tCDS\t131\t250\t.\t-\t0\t{attrs}\n"
            f"chr1\tt\tstop_codon\t128\t130\t.\t-\t0\t{attrs}\n"
        )
        tx = next(iter_gtf_transcripts(path))
        assert (tx.cds_start, tx.cds_end) == (127, 250)

    def test_gff3(self, tmp_path: Path) -> None:
        """Test GFF3 parent links and gene names."""
        path = tmp_path / "genes.gff3"
        path.write_text(
            "##gff-version 3\n"
            "chr1\tt\tgene\t101\t400\t.\t+\t.\tID=gene1;Name=BETA\n"
            "chr1\tt\tmRNA\t101\t400\t.\t+\t.\tID=mRNA1;Parent=gene1\n"
            "chr1\tt\texon\t101\t200\t.\t+\t.\tParent=mRNA1\n"
            "chr1\tt\texon\t301\t400\t.\t+\t.\tParent=mRNA1\n"
            "chr1\tt\tCDS\t151\t200\t.\t+\t0\tParent=mRNA1\n"
            "chr1\tt\tCDS\t301\t350\t.\t+\t1\tParent=mRNA1\n"
        )
        transcripts = list(iter_gtf_transcripts(path, fmt="gff3"))
        assert len(transcripts) == 1
        tx = transcripts[0]
        assert tx.transcript_id == "mRNA1"
        assert tx.gene_id == "BETA"
        assert tx.exons == ((100, 200), (300, 400))
        assert (tx.cds_start, tx.cds_end) == (150, 350)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test missing files are resource errors."""
        with pytest.raises(ResourceError, match="not found"):
            list(iter_gtf_transcripts(tmp_path / "missing.gtf"))
