"""Unit tests for fusionforge.core.models module.

Tests cover:
- Strand and enum parsing
- Coding exon derivation (all four overlap cases)
- Transcript derived lengths and logical order
- FusionGene naming and sequence assembly
"""

import attrs
import pytest

from fusionforge.core.models import (
    FusionGene,
    FusionOption,
    FusionType,
    Strand,
    Transcript,
    compute_coding_exons,
)

# =============================================================================
# Enum Tests
# =============================================================================


class TestStrand:
    """Tests for Strand enum."""

    def test_from_string(self) -> None:
        """Test parsing strand symbols."""
        assert Strand.from_string("+") is Strand.FORWARD
        assert Strand.from_string("-") is Strand.REVERSE
        assert Strand.from_string(Strand.REVERSE) is Strand.REVERSE

    def test_invalid(self) -> None:
        """Test invalid strand symbol."""
        with pytest.raises(ValueError, match="Invalid strand"):
            Strand.from_string(".")

    def test_str(self) -> None:
        """Test string form is the symbol."""
        assert str(Strand.REVERSE) == "-"


class TestFusionType:
    """Tests for FusionType enum."""

    @pytest.mark.parametrize(
        "fusion_type, expected",
        [
            (FusionType.HYBRID, 2),
            (FusionType.SELF_FUSION, 1),
            (FusionType.TRI_FUSION, 3),
            (FusionType.INTRA_CHROMOSOME, 2),
            (FusionType.READ_THROUGH, 2),
        ],
    )
    def test_genes_per_fusion(self, fusion_type: FusionType, expected: int) -> None:
        """Test slot count per type."""
        assert fusion_type.genes_per_fusion == expected

    def test_values(self) -> None:
        """Test output names."""
        assert str(FusionType.SELF_FUSION) == "self_fusion"
        assert str(FusionOption.KEEP_EXON_BOUNDARY) == "keep_exon_boundary"


# =============================================================================
# Transcript Tests
# =============================================================================


class TestCodingExons:
    """Tests for coding exon derivation."""

    def test_cds_inside_exons(self) -> None:
        """Test left-clipped, inner and right-clipped exons."""
        coding = compute_coding_exons([(0, 100), (200, 300), (400, 500)], 50, 450)
        assert coding == ((50, 100), (200, 300), (400, 450))

    def test_cds_within_single_exon(self) -> None:
        """Test CDS contained in one exon."""
        coding = compute_coding_exons([(0, 100), (200, 300)], 220, 280)
        assert coding == ((220, 280),)

    def test_utr_exons_dropped(self) -> None:
        """Test exons outside the CDS are dropped."""
        coding = compute_coding_exons([(0, 100), (200, 300), (400, 500)], 200, 300)
        assert coding == ((200, 300),)

    def test_noncoding(self) -> None:
        """Test empty CDS gives no coding exons."""
        assert compute_coding_exons([(0, 100)], 100, 100) == ()


class TestTranscript:
    """Tests for Transcript."""

    def test_exon_bases(self, reverse_transcript: Transcript) -> None:
        """Test exon and coding lengths."""
        assert reverse_transcript.exon_bases == 31 + 30 + 32 + 30
        assert reverse_transcript.cds_exon_bases == 21 + 30 + 32 + 20
        assert reverse_transcript.exon_bases == sum(e - s for s, e in reverse_transcript.exons)

    def test_coding_exons_within_cds(self, chr1_transcripts: list[Transcript]) -> None:
        """Test every coding exon lies within the CDS."""
        for tx in chr1_transcripts:
            for start, end in tx.coding_exons:
                assert tx.cds_start <= start < end <= tx.cds_end

    def test_exons_sorted(self) -> None:
        """Test exons are coordinate-sorted regardless of input order."""
        tx = Transcript(
            transcript_id="T",
            gene_id="G",
            chrom="chr1",
            strand="-",
            tx_start=0,
            tx_end=300,
            cds_start=0,
            cds_end=300,
            exons=[(200, 300), (0, 100)],
        )
        assert tx.exons == ((0, 100), (200, 300))

    def test_logical_order(self, forward_transcript: Transcript, reverse_transcript: Transcript) -> None:
        """Test reverse strand reads exons back to front."""
        assert forward_transcript.logical_order() == [0, 1, 2, 3]
        assert reverse_transcript.logical_order() == [3, 2, 1, 0]

    def test_get_exons(self, reverse_transcript: Transcript) -> None:
        """Test exon set selection."""
        assert reverse_transcript.get_exons() == reverse_transcript.exons
        assert reverse_transcript.get_exons(cds_only=True) == reverse_transcript.coding_exons

    def test_immutable(self, forward_transcript: Transcript) -> None:
        """Test transcripts are frozen."""
        with pytest.raises(attrs.exceptions.FrozenInstanceError):
            forward_transcript.depth_score = 1.0  # type: ignore[misc]

    def test_with_depth_score(self, forward_transcript: Transcript) -> None:
        """Test scoring returns a copy."""
        scored = forward_transcript.with_depth_score(3.5)
        assert scored.depth_score == 3.5
        assert forward_transcript.depth_score == 0.0

    def test_with_exon_recomputes_coding(self, reverse_transcript: Transcript) -> None:
        """Test replacing an exon updates coding exons."""
        trimmed = reverse_transcript.with_exon(0, (105, 131))
        assert trimmed.exons[0] == (105, 131)
        assert trimmed.coding_exons[0] == (110, 131)
        assert reverse_transcript.exons[0] == (100, 131)

    def test_with_coding_exon(self, reverse_transcript: Transcript) -> None:
        """Test replacing a coding exon leaves exons alone."""
        trimmed = reverse_transcript.with_exon(3, (400, 418), cds_only=True)
        assert trimmed.coding_exons[3] == (400, 418)
        assert trimmed.exons == reverse_transcript.exons


# =============================================================================
# FusionGene Tests
# =============================================================================


class TestFusionGene:
    """Tests for FusionGene."""

    def test_names(self, forward_transcript: Transcript, reverse_transcript: Transcript) -> None:
        """Test gene and transcript names."""
        fusion = FusionGene(
            transcripts=[forward_transcript, reverse_transcript],
            fusion_type=FusionType.HYBRID,
        )
        assert fusion.name == "FWD-REV"
        assert fusion.transcript_name == "NM_FWD-NM_REV"
        assert fusion.n_sides == 2

    def test_side_exons(self, forward_transcript: Transcript, reverse_transcript: Transcript) -> None:
        """Test exon intervals per side."""
        fusion = FusionGene(
            transcripts=[forward_transcript, reverse_transcript],
            fusion_type=FusionType.HYBRID,
            options=[FusionOption.CDS_ONLY],
            breaks=[(0, 1), (0,)],
        )
        assert fusion.side_exons(0) == [(100, 130), (200, 230)]
        assert fusion.side_exons(1) == [(110, 131)]
        assert fusion.side_bases(1) == 21

    def test_sequence_with_insertions(self, forward_transcript: Transcript) -> None:
        """Test insertions are placed between sides."""
        fusion = FusionGene(
            transcripts=[forward_transcript] * 3,
            fusion_type=FusionType.TRI_FUSION,
            insertions=["N", "NN"],
            sequences=["AAA", "CCC", "GGG"],
        )
        assert fusion.sequence == "AAANCCCNNGGG"
