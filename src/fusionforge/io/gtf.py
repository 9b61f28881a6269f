"""GTF/GFF3 to refFlat conversion.

Groups exon, CDS, start_codon and stop_codon features by transcript and
builds one refFlat record per transcript:

- overlapping or adjacent exon and CDS blocks are merged into exons,
- the CDS is extended to cover the stop codon on the transcript's 3'
  side (GTF keeps the stop codon outside the CDS feature),
- transcripts without a CDS get an empty CDS at txEnd.

Example:
    >>> from fusionforge.io.gtf import iter_gtf_transcripts
    >>> with open("refFlat.txt", "w") as out:
    ...     write_refflat(iter_gtf_transcripts("gencode.gtf"), out)
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Literal

import attrs

from fusionforge.core.models import Strand, Transcript
from fusionforge.errors import GeneModelError, ResourceError

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# GTF/GFF3 column indices
COL_SEQID = 0
COL_SOURCE = 1
COL_TYPE = 2
COL_START = 3
COL_END = 4
COL_SCORE = 5
COL_STRAND = 6
COL_PHASE = 7
COL_ATTRIBUTES = 8

FEATURE_EXON = "exon"
FEATURE_CDS = "CDS"
FEATURE_START_CODON = "start_codon"
FEATURE_STOP_CODON = "stop_codon"

FEATURE_TYPES_BLOCK = {FEATURE_EXON, FEATURE_CDS}
FEATURE_TYPES_USED = {FEATURE_EXON, FEATURE_CDS, FEATURE_START_CODON, FEATURE_STOP_CODON}
FEATURE_TYPES_TRANSCRIPT = {"mRNA", "transcript", "ncRNA", "lnc_RNA"}
FEATURE_TYPES_GENE = {"gene"}

GTF_ATTRIBUTE = re.compile(r'\s*([^\s";]+)\s+"?([^";]*)"?\s*')

Format = Literal["gtf", "gff3"]


# =============================================================================
# Data Models
# =============================================================================


@attrs.define(slots=True)
class Feature:
    """One GTF/GFF3 feature line (0-based, half-open)."""

    seqid: str
    feature_type: str
    start: int
    end: int
    strand: str
    attributes: dict[str, str] = attrs.Factory(dict)


@attrs.define(slots=True)
class TranscriptFeatures:
    """Features collected for one transcript."""

    transcript_id: str
    gene_id: str
    seqid: str
    strand: str
    features: list[Feature] = attrs.Factory(list)


# =============================================================================
# Attribute Parsing
# =============================================================================


def parse_gtf_attributes(attr_string: str) -> dict[str, str]:
    """Parse a GTF attribute string (key "value"; pairs).

    Args:
        attr_string: Attribute column.

    Returns:
        Dictionary of attributes; repeated keys keep the first value.
    """
    attributes: dict[str, str] = {}
    for item in attr_string.split(";"):
        match = GTF_ATTRIBUTE.fullmatch(item)
        if match is None:
            continue
        key, value = match.groups()
        attributes.setdefault(key, value)
    return attributes


def parse_gff3_attributes(attr_string: str) -> dict[str, str]:
    """Parse a GFF3 attribute string (key=value; pairs).

    Args:
        attr_string: Semicolon-separated key=value pairs.

    Returns:
        Dictionary of attribute key-value pairs.
    """
    attributes = {}
    if not attr_string or attr_string == ".":
        return attributes

    for item in attr_string.split(";"):
        item = item.strip()
        if not item or "=" not in item:
            continue
        key, value = item.split("=", 1)
        # URL decode
        value = value.replace("%3B", ";").replace("%3D", "=").replace("%26", "&")
        value = value.replace("%2C", ",")
        attributes[key] = value

    return attributes


def parse_feature_line(line: str, fmt: Format = "gtf") -> Feature | None:
    """Parse one feature line.

    Args:
        line: Raw line.
        fmt: "gtf" or "gff3".

    Returns:
        Feature, or None for comments and blank lines.

    Raises:
        GeneModelError: If the line is malformed.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return None

    parts = line.split("\t")
    if len(parts) < 9:
        raise GeneModelError(f"Malformed {fmt.upper()} line (expected 9 columns): {line[:50]}")

    try:
        # 1-based inclusive to 0-based half-open
        start = int(parts[COL_START]) - 1
        end = int(parts[COL_END])
    except ValueError as e:
        raise GeneModelError(f"Invalid coordinate in {fmt.upper()} line: {line[:50]}") from e

    parse = parse_gtf_attributes if fmt == "gtf" else parse_gff3_attributes
    return Feature(
        seqid=parts[COL_SEQID],
        feature_type=parts[COL_TYPE],
        start=start,
        end=end,
        strand=parts[COL_STRAND],
        attributes=parse(parts[COL_ATTRIBUTES]),
    )


# =============================================================================
# Grouping
# =============================================================================


def _gtf_gene_name(attributes: dict[str, str]) -> str:
    return attributes.get("gene_name") or attributes.get("gene_id", "")


def group_gtf_features(path: Path) -> dict[str, TranscriptFeatures]:
    """Group GTF features by transcript_id."""
    groups: dict[str, TranscriptFeatures] = {}
    with open(path) as f:
        for line_number, line in enumerate(f, start=1):
            try:
                feature = parse_feature_line(line, "gtf")
            except GeneModelError as e:
                raise GeneModelError(f"Line {line_number}: {e}") from e
            if feature is None or feature.feature_type not in FEATURE_TYPES_USED:
                continue
            tx_id = feature.attributes.get("transcript_id")
            if not tx_id:
                continue
            group = groups.get(tx_id)
            if group is None:
                group = TranscriptFeatures(
                    transcript_id=tx_id,
                    gene_id=_gtf_gene_name(feature.attributes),
                    seqid=feature.seqid,
                    strand=feature.strand,
                )
                groups[tx_id] = group
            group.features.append(feature)
    return groups


def group_gff3_features(path: Path) -> dict[str, TranscriptFeatures]:
    """Group GFF3 features by their parent transcript.

    The gene name is taken from the transcript's gene_name or Name of
    its parent gene, falling back to the gene ID.
    """
    gene_names: dict[str, str] = {}
    transcript_genes: dict[str, str] = {}
    block_features: list[Feature] = []

    with open(path) as f:
        for line_number, line in enumerate(f, start=1):
            if line.startswith("##FASTA"):
                break
            try:
                feature = parse_feature_line(line, "gff3")
            except GeneModelError as e:
                raise GeneModelError(f"Line {line_number}: {e}") from e
            if feature is None:
                continue

            attributes = feature.attributes
            if feature.feature_type in FEATURE_TYPES_GENE and "ID" in attributes:
                gene_names[attributes["ID"]] = attributes.get("Name", attributes["ID"])
            elif feature.feature_type in FEATURE_TYPES_TRANSCRIPT and "ID" in attributes:
                transcript_genes[attributes["ID"]] = attributes.get("gene_name") or attributes.get(
                    "Parent", attributes["ID"]
                ).split(",")[0]
            elif feature.feature_type in FEATURE_TYPES_USED:
                block_features.append(feature)

    groups: dict[str, TranscriptFeatures] = {}
    for feature in block_features:
        parent = feature.attributes.get("Parent", "")
        for tx_id in parent.split(","):
            if not tx_id:
                continue
            group = groups.get(tx_id)
            if group is None:
                gene = transcript_genes.get(tx_id, tx_id)
                group = TranscriptFeatures(
                    transcript_id=tx_id,
                    gene_id=gene_names.get(gene, gene),
                    seqid=feature.seqid,
                    strand=feature.strand,
                )
                groups[tx_id] = group
            group.features.append(feature)
    return groups


# =============================================================================
# Conversion
# =============================================================================


def build_transcript(group: TranscriptFeatures) -> Transcript | None:
    """Build a refFlat-style transcript from grouped features.

    Args:
        group: Features of one transcript.

    Returns:
        Transcript, or None when the transcript has no exon features.

    Raises:
        GeneModelError: If the strand is invalid.
    """
    features = sorted(group.features, key=lambda f: f.start)
    if not any(f.feature_type == FEATURE_EXON for f in features):
        return None

    try:
        strand = Strand.from_string(group.strand)
    except ValueError as e:
        raise GeneModelError(f"Transcript {group.transcript_id}: {e}") from e

    tx_start = min(f.start for f in features)
    tx_end = max(f.end for f in features)

    cds = [f for f in features if f.feature_type == FEATURE_CDS]
    stops = [f for f in features if f.feature_type == FEATURE_STOP_CODON]
    stop_start = min((f.start for f in stops), default=None)
    stop_end = max((f.end for f in stops), default=None)

    if cds:
        cds_start = min(f.start for f in cds)
        cds_end = max(f.end for f in cds)
        # Stop codons may be split; extend to their outer bound
        if stops:
            if strand is Strand.FORWARD:
                cds_end = max(cds_end, stop_end)
            else:
                cds_start = min(cds_start, stop_start)

    if stops:
        if strand is Strand.FORWARD and tx_end == stop_start:
            tx_end = stop_end
        elif strand is Strand.REVERSE and tx_start == stop_end:
            tx_start = stop_start
    if not cds:
        cds_start = cds_end = tx_end

    # Merge overlapping and adjacent exon/CDS blocks
    exons: list[list[int]] = []
    for f in features:
        if f.feature_type not in FEATURE_TYPES_BLOCK:
            continue
        if not exons or f.start > exons[-1][1]:
            exons.append([f.start, f.end])
        elif f.end > exons[-1][1]:
            exons[-1][1] = f.end

    return Transcript(
        transcript_id=group.transcript_id,
        gene_id=group.gene_id,
        chrom=group.seqid,
        strand=strand,
        tx_start=tx_start,
        tx_end=tx_end,
        cds_start=cds_start,
        cds_end=cds_end,
        exons=[tuple(e) for e in exons],
    )


def iter_gtf_transcripts(path: Path | str, fmt: Format = "gtf") -> Iterator[Transcript]:
    """Convert a GTF or GFF3 file into transcripts.

    Args:
        path: Annotation file path.
        fmt: "gtf" or "gff3".

    Yields:
        Transcripts in order of first appearance.

    Raises:
        ResourceError: If the file does not exist.
        GeneModelError: If the file is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise ResourceError(f"{fmt.upper()} file not found: {path}")

    groups = group_gtf_features(path) if fmt == "gtf" else group_gff3_features(path)
    n_built = 0
    for group in groups.values():
        transcript = build_transcript(group)
        if transcript is None:
            logger.debug(f"Skipping {group.transcript_id}: no exon features")
            continue
        n_built += 1
        yield transcript
    logger.info(f"Converted {n_built} transcripts from {path.name}")

