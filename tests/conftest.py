"""Pytest configuration and shared fixtures for FusionForge tests.

This module contains fixtures that are shared across multiple test modules.
Fixtures are organized by category:

- Transcript fixtures: In-memory transcripts with known exon layouts
- File fixtures: Synthetic refFlat, GTF and FASTA files in tmp_path
"""

from pathlib import Path

import numpy as np
import pytest

from fusionforge.core.models import Transcript
from fusionforge.io.refflat import format_refflat_line

# =============================================================================
# Transcript Fixtures
# =============================================================================


def build_chr1_transcripts() -> list[Transcript]:
    """Ten three-exon transcripts on chr1, alternating strand.

    Transcript i starts at 100 + 180 * i with exons of 30 bp at offsets
    0, 60 and 120 and a CDS from offset 10 to 140.
    """
    transcripts = []
    for i in range(10):
        start = 100 + 180 * i
        transcripts.append(
            Transcript(
                transcript_id=f"NM_{i:03d}",
                gene_id=f"GENE{i}",
                chrom="chr1",
                strand="+" if i % 2 == 0 else "-",
                tx_start=start,
                tx_end=start + 150,
                cds_start=start + 10,
                cds_end=start + 140,
                exons=[(start, start + 30), (start + 60, start + 90), (start + 120, start + 150)],
            )
        )
    return transcripts


@pytest.fixture
def chr1_transcripts() -> list[Transcript]:
    """Ten transcripts of ten distinct genes on chr1."""
    return build_chr1_transcripts()


@pytest.fixture
def forward_transcript() -> Transcript:
    """Forward-strand transcript with four 30 bp exons, CDS spanning all."""
    return Transcript(
        transcript_id="NM_FWD",
        gene_id="FWD",
        chrom="chr1",
        strand="+",
        tx_start=100,
        tx_end=430,
        cds_start=100,
        cds_end=430,
        exons=[(100, 130), (200, 230), (300, 330), (400, 430)],
    )


@pytest.fixture
def reverse_transcript() -> Transcript:
    """Reverse-strand transcript with exons of 31, 30, 32 and 30 bp."""
    return Transcript(
        transcript_id="NM_REV",
        gene_id="REV",
        chrom="chr2",
        strand="-",
        tx_start=100,
        tx_end=430,
        cds_start=110,
        cds_end=420,
        exons=[(100, 131), (200, 230), (300, 332), (400, 430)],
    )


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def synthetic_fasta(tmp_path: Path) -> Path:
    """Create a synthetic FASTA file for testing.

    Creates a small genome with two chromosomes:
    - chr1: 2000 bp
    - chr2: 1000 bp
    """
    fasta_path = tmp_path / "genome.fa"

    # Generate reproducible sequences
    rng = np.random.default_rng(42)
    sequences = {
        "chr1": "".join(rng.choice(list("ACGT"), 2000)),
        "chr2": "".join(rng.choice(list("ACGT"), 1000)),
    }

    with open(fasta_path, "w") as f:
        for seqid, seq in sequences.items():
            f.write(f">{seqid}\n")
            # Write in 80-character lines
            for i in range(0, len(seq), 80):
                f.write(seq[i : i + 80] + "\n")

    return fasta_path


@pytest.fixture
def refflat_file(tmp_path: Path) -> Path:
    """Create a refFlat file.

    Holds the ten chr1 transcripts, two chr2 transcripts of the same
    gene, one haplotype-contig transcript and a comment line.
    """
    path = tmp_path / "refFlat.txt"
    extra = [
        "GENE10\tNM_010\tchr2\t+\t100\t400\t120\t380\t2\t100,300,\t200,400,",
        "GENE10\tNM_011\tchr2\t+\t100\t400\t120\t380\t2\t100,320,\t200,400,",
        "GENE11\tNM_012\tchr1_gl000191_random\t-\t10\t90\t10\t90\t1\t10,\t90,",
    ]
    with open(path, "w") as f:
        f.write("#geneName\tname\tchrom\tstrand\ttxStart\ttxEnd\tcdsStart\tcdsEnd\texonCount\texonStarts\texonEnds\n")
        for transcript in build_chr1_transcripts():
            f.write(format_refflat_line(transcript) + "\n")
        for line in extra:
            f.write(line + "\n")
    return path


@pytest.fixture
def synthetic_gtf(tmp_path: Path) -> Path:
    """Create a GTF file with one coding and one non-coding transcript.

    TX1 (+): exons 101-200 and 301-400 (1-based), CDS 151-200 and
    301-350, stop codon 351-353.
    TX2 (-): a single exon 501-600 without CDS.
    """
    path = tmp_path / "genes.gtf"
    attrs1 = 'gene_id "G1"; transcript_id "TX1"; gene_name "ALPHA";'
    attrs2 = 'gene_id "G2"; transcript_id "TX2";'
    lines = [
        f"chr1\ttest\ttranscript\t101\t400\t.\t+\t.\t{attrs1}",
        f"chr1\ttest\texon\t101\t200\t.\t+\t.\t{attrs1}",
        f"chr1\ttest\texon\t301\t400\t.\t+\t.\t{attrs1}",
        f"chr1\ttest\tCDS\t151\t200\t.\t+\t0\t{attrs1}",
        f"chr1\ttest\tCDS\t301\t350\t.\t+\t1\t{attrs1}",
        f"chr1\ttest\tstart_codon\t151\t153\t.\t+\t0\t{attrs1}",
        f"chr1\ttest\tstop_codon\t351\t353\t.\t+\t0\t{attrs1}",
        f"chr1\ttest\texon\t501\t600\t.\t-\t.\t{attrs2}",
    ]
    with open(path, "w") as f:
        f.write("##gtf test\n")
        for line in lines:
            f.write(line + "\n")
    return path
