"""Command-line interface for FusionForge.

This module provides the main entry point for the fusionforge CLI tool.
It uses Click to define the commands.

Commands:
    simulate: Generate simulated fusion genes
    depth: Score transcripts by background read depth (RPKM)
    convert: Convert GTF/GFF3 annotations to refFlat

Example:
    $ fusionforge --help
    $ fusionforge simulate -g refFlat.txt -r hg19.fa -n 10 -o fusions.txt -f fusions.fa
    $ fusionforge simulate -g refFlat.txt -b background.bam -t 8 --gene-selection-method binned -o fusions.txt
    $ fusionforge depth -g refFlat.txt -b background.bam -o rpkm.tsv
    $ fusionforge convert -i gencode.gtf -o refFlat.txt
"""

from __future__ import annotations

import functools
import sys
from pathlib import Path
from typing import Iterator

import click
import numpy as np
from rich.console import Console

from fusionforge import __version__
from fusionforge.config import Config
from fusionforge.core.assemble import FusionAssembler, FusionSimulator, SimulationResult
from fusionforge.core.depth import ReadDepthEstimator
from fusionforge.core.models import Transcript
from fusionforge.core.sampling import SelectionMethod, SelectionSampler
from fusionforge.core.selectors import BackgroundSelector, StaticSelector, TranscriptFilter
from fusionforge.errors import ConfigurationError, FusionForgeError
from fusionforge.io.bam import AlignmentSource
from fusionforge.io.fasta import GenomeAccessor
from fusionforge.io.fusions import FusionWriter
from fusionforge.io.gtf import iter_gtf_transcripts
from fusionforge.io.refflat import is_haplotype_chrom, iter_refflat, write_refflat
from fusionforge.utils.logging import Timer, setup_logging

# Initialize rich console for pretty output
console = Console(stderr=True)

GENE_MODEL_FORMATS = ("refflat", "gtf", "gff3")


# =============================================================================
# Helpers
# =============================================================================


def parse_identifiers(value: str | None) -> list[str]:
    """Parse identifiers from a comma-separated list or a file.

    A value naming an existing file is read one identifier per line
    (first whitespace-delimited token, blank lines and # comments
    skipped).
    """
    if not value:
        return []
    path = Path(value)
    if path.is_file():
        identifiers = []
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#"):
                    identifiers.append(line.split()[0])
        return identifiers
    return [item.strip() for item in value.split(",") if item.strip()]


def load_transcripts(
    gene_model: Path,
    fmt: str,
    skip_haplotype_chroms: bool,
) -> Iterator[Transcript]:
    """Stream transcripts from a refFlat, GTF or GFF3 gene model."""
    if fmt == "refflat":
        yield from iter_refflat(gene_model, skip_haplotype_chroms=skip_haplotype_chroms)
        return
    for transcript in iter_gtf_transcripts(gene_model, fmt):
        if skip_haplotype_chroms and is_haplotype_chrom(transcript.chrom):
            continue
        yield transcript


def _report_error(e: Exception, verbose: bool) -> None:
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="fusionforge")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Also write debug-level logs to this file.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, quiet: bool, log_file: Path | None) -> None:
    """FusionForge: Simulate fusion gene transcripts.

    FusionForge builds artificial fusion transcripts from a gene model,
    optionally weighting gene selection by expression in a background
    RNA-seq alignment, for benchmarking fusion detection tools.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    verbosity = 0 if quiet else (2 if verbose else 1)
    setup_logging(verbosity=verbosity, log_file=log_file)


# =============================================================================
# simulate command
# =============================================================================


@main.command()
@click.option(
    "-g",
    "--gene-model",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Gene model file (refFlat, GTF or GFF3).",
)
@click.option(
    "--format",
    "model_format",
    type=click.Choice(GENE_MODEL_FORMATS),
    default="refflat",
    show_default=True,
    help="Gene model file format.",
)
@click.option(
    "-r",
    "--reference",
    type=click.Path(exists=True, path_type=Path),
    help="Indexed reference genome FASTA (required for FASTA output).",
)
@click.option(
    "-b",
    "--background-bam",
    type=click.Path(exists=True, path_type=Path),
    help="Indexed background RNA-seq BAM for expression-based selection.",
)
@click.option("--rpkm-cutoff", type=float, help="Minimum RPKM for background genes [0.2].")
@click.option("-t", "--threads", type=int, help="Threads for background read depth [1].")
@click.option("-n", "--hybrid", type=int, help="Number of hybrid fusions [5].")
@click.option("-s", "--self-fusions", type=int, help="Number of self fusions [0].")
@click.option("--tri-fusions", type=int, help="Number of tri-fusions [0].")
@click.option("--intra-chromosome", type=int, help="Number of intra-chromosome fusions [0].")
@click.option("--read-through", type=int, help="Number of read-through fusions [0].")
@click.option(
    "-m",
    "--gene-selection-method",
    type=click.Choice([m.value for m in SelectionMethod]),
    help="Gene selection method [uniform].",
)
@click.option("--cds-only", is_flag=True, help="Only break within coding exons.")
@click.option(
    "-a",
    "--auto-correct-orientation",
    is_flag=True,
    help="Reverse-complement genes on the opposite strand of gene 1.",
)
@click.option("-e", "--keep-exon-boundary", is_flag=True, help="Break on in-frame exon boundaries.")
@click.option("--symmetrical-exons", is_flag=True, help="Only split next to exons of whole codons.")
@click.option("--out-of-frame", is_flag=True, help="Allow frame-shifting fusion junctions.")
@click.option(
    "--frame-split",
    type=click.Choice(["random", "half"]),
    help="Where to trim the last exon when restoring the frame [random].",
)
@click.option(
    "--foreign-insertion-perc",
    type=float,
    help="Fraction of fusions with foreign sequence at the junction [0].",
)
@click.option(
    "--foreign-insertion-len",
    type=int,
    help="Maximum foreign insertion length [10].",
)
@click.option("-1", "--gene1", help="Gene 1 filter: comma-separated ids or a file of ids.")
@click.option("-2", "--gene2", help="Gene 2 filter: comma-separated ids or a file of ids.")
@click.option("-3", "--gene3", help="Gene 3 filter: comma-separated ids or a file of ids.")
@click.option("-l", "--limit", help="Restrict all genes: comma-separated ids or a file of ids.")
@click.option(
    "--keep-haplotype-chroms",
    is_flag=True,
    help="Keep chromosomes whose names contain '_'.",
)
@click.option(
    "-o",
    "--text-output",
    type=click.Path(path_type=Path),
    help="Output fusions as tab-delimited text.",
)
@click.option(
    "-f",
    "--fasta-output",
    type=click.Path(path_type=Path),
    help="Output fusion sequences as FASTA.",
)
@click.option("--seed", type=int, help="Random seed for reproducible runs.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="TOML configuration file; command-line options take precedence.",
)
@click.pass_context
def simulate(
    ctx: click.Context,
    gene_model: Path,
    model_format: str,
    reference: Path | None,
    background_bam: Path | None,
    rpkm_cutoff: float | None,
    threads: int | None,
    hybrid: int | None,
    self_fusions: int | None,
    tri_fusions: int | None,
    intra_chromosome: int | None,
    read_through: int | None,
    gene_selection_method: str | None,
    cds_only: bool,
    auto_correct_orientation: bool,
    keep_exon_boundary: bool,
    symmetrical_exons: bool,
    out_of_frame: bool,
    frame_split: str | None,
    foreign_insertion_perc: float | None,
    foreign_insertion_len: int | None,
    gene1: str | None,
    gene2: str | None,
    gene3: str | None,
    limit: str | None,
    keep_haplotype_chroms: bool,
    text_output: Path | None,
    fasta_output: Path | None,
    seed: int | None,
    config_path: Path | None,
) -> None:
    """Simulate fusion genes.

    Transcripts are drawn from the gene model, uniformly or weighted by
    expression in a background BAM, broken at exon-level breakpoints and
    joined into fusion transcripts.

    \b
    Examples:
        # Five hybrid fusions as text and FASTA
        $ fusionforge simulate -g refFlat.txt -r hg19.fa -o fusions.txt -f fusions.fa

    \b
        # Expression-binned selection with in-frame exon boundaries
        $ fusionforge simulate -g refFlat.txt -r hg19.fa -b background.bam -t 8 \\
            -m binned -e --cds-only -n 20 -f fusions.fa
    """
    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    try:
        config = Config.load(config_path)
        overrides = {
            "rpkm_cutoff": (config.depth, rpkm_cutoff),
            "threads": (config.depth, threads),
            "method": (config.selection, gene_selection_method),
            "hybrid": (config.fusion, hybrid),
            "self_fusions": (config.fusion, self_fusions),
            "tri_fusions": (config.fusion, tri_fusions),
            "intra_chromosome": (config.fusion, intra_chromosome),
            "read_through": (config.fusion, read_through),
            "frame_split": (config.fusion, frame_split),
            "foreign_insertion_fraction": (config.fusion, foreign_insertion_perc),
            "foreign_insertion_max_length": (config.fusion, foreign_insertion_len),
            "seed": (config, seed),
        }
        for name, (section, value) in overrides.items():
            if value is not None:
                setattr(section, name, value)
        flags = {
            "cds_only": cds_only,
            "auto_correct_orientation": auto_correct_orientation,
            "keep_exon_boundary": keep_exon_boundary,
            "symmetrical_exons": symmetrical_exons,
            "out_of_frame": out_of_frame,
        }
        for name, enabled in flags.items():
            if enabled:
                setattr(config.fusion, name, True)
        if keep_haplotype_chroms:
            config.fusion.skip_haplotype_chroms = False
        if limit:
            config.selection.limit = parse_identifiers(limit)
        if gene1 or gene2 or gene3:
            config.selection.slot_filters = [parse_identifiers(g) for g in (gene1, gene2, gene3)]

        config.validate()
        if fasta_output is not None and reference is None:
            raise ConfigurationError("FASTA output requires a reference genome (--reference)")

        result = run_simulation(config, gene_model, model_format, reference, background_bam)

        if text_output is None and fasta_output is None:
            with FusionWriter(None, fmt="txt") as writer:
                writer.write_fusions(result.fusions)
        if text_output is not None:
            with FusionWriter(text_output, fmt="txt") as writer:
                writer.write_fusions(result.fusions)
        if fasta_output is not None:
            with FusionWriter(fasta_output, fmt="fasta") as writer:
                writer.write_fusions(result.fusions)

        if not quiet:
            print_summary(result)
            if text_output is not None:
                console.print(f"[green]Wrote text output:[/green] {text_output}")
            if fasta_output is not None:
                console.print(f"[green]Wrote FASTA output:[/green] {fasta_output}")

    except FusionForgeError as e:
        _report_error(e, verbose)


def run_simulation(
    config: Config,
    gene_model: Path,
    model_format: str,
    reference: Path | None,
    background_bam: Path | None,
) -> SimulationResult:
    """Wire selectors, sampler and assembler from a configuration and run."""
    rng = np.random.default_rng(config.seed)
    transcripts = load_transcripts(gene_model, model_format, config.fusion.skip_haplotype_chroms)

    if background_bam is not None:
        estimator = ReadDepthEstimator(
            source_factory=functools.partial(AlignmentSource, background_bam),
            threads=config.depth.threads,
            cutoff=config.depth.rpkm_cutoff,
            queue_size=config.depth.queue_size,
            poll_timeout=config.depth.poll_timeout,
        )
        selector: StaticSelector | BackgroundSelector = BackgroundSelector(transcripts, estimator)
        with Timer("Background read depth"):
            selector.select()
    else:
        selector = StaticSelector(transcripts)
        with Timer("Gene model parsing"):
            selector.select()

    genome = GenomeAccessor(reference) if reference is not None else None
    try:
        fusion = config.fusion
        assembler = FusionAssembler(
            genome=genome,
            cds_only=fusion.cds_only,
            auto_correct_orientation=fusion.auto_correct_orientation,
            keep_exon_boundary=fusion.keep_exon_boundary,
            symmetrical_exons=fusion.symmetrical_exons,
            out_of_frame=fusion.out_of_frame,
            frame_split=fusion.frame_split,
            foreign_insertion_fraction=fusion.foreign_insertion_fraction,
            foreign_insertion_max_length=fusion.foreign_insertion_max_length,
            rng=rng,
        )
        slot_filters = [
            TranscriptFilter(ids) if ids else None for ids in config.selection.slot_filters
        ]
        simulator = FusionSimulator(
            selector,
            assembler=assembler,
            sampler=SelectionSampler(config.selection.method, rng=rng),
            counts=fusion.counts(),
            limit=TranscriptFilter(config.selection.limit) if config.selection.limit else None,
            slot_filters=slot_filters,
        )
        with Timer("Fusion generation"):
            return simulator.run()
    finally:
        if genome is not None:
            genome.close()


def print_summary(result: SimulationResult) -> None:
    """Print per-type fusion counts."""
    produced = result.counts()
    skipped = result.skipped_counts()
    console.print("")
    console.print("[bold]Simulation Summary:[/bold]")
    for fusion_type in sorted(set(produced) | set(skipped), key=lambda t: t.value):
        console.print(
            f"  {str(fusion_type):<18} {produced.get(fusion_type, 0):>6,} produced"
            f"  {skipped.get(fusion_type, 0):>6,} skipped"
        )
    if result.is_partial:
        console.print("[yellow]Warning:[/yellow] some requested fusions were skipped")
    console.print("")


# =============================================================================
# depth command
# =============================================================================


@main.command()
@click.option(
    "-g",
    "--gene-model",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Gene model file (refFlat, GTF or GFF3).",
)
@click.option(
    "--format",
    "model_format",
    type=click.Choice(GENE_MODEL_FORMATS),
    default="refflat",
    show_default=True,
    help="Gene model file format.",
)
@click.option(
    "-b",
    "--background-bam",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Indexed background RNA-seq BAM.",
)
@click.option(
    "--rpkm-cutoff",
    type=float,
    default=0.0,
    show_default=True,
    help="Only report transcripts above this RPKM.",
)
@click.option("-t", "--threads", type=int, default=1, show_default=True, help="Threads.")
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    help="Output table (default: stdout).",
)
@click.pass_context
def depth(
    ctx: click.Context,
    gene_model: Path,
    model_format: str,
    background_bam: Path,
    rpkm_cutoff: float,
    threads: int,
    output: Path | None,
) -> None:
    """Score transcripts by background read depth.

    Writes a tab-delimited table of transcript, gene, chromosome and RPKM
    for every transcript above the cutoff.

    \b
    Example:
        $ fusionforge depth -g refFlat.txt -b background.bam -t 4 -o rpkm.tsv
    """
    verbose = ctx.obj.get("verbose", False)

    try:
        estimator = ReadDepthEstimator(
            source_factory=functools.partial(AlignmentSource, background_bam),
            threads=threads,
            cutoff=rpkm_cutoff,
        )
        with Timer("Background read depth"):
            scored = estimator.estimate(load_transcripts(gene_model, model_format, True))
        scored.sort(key=lambda t: (t.chrom, t.tx_start, t.transcript_id))

        handle = open(output, "w") if output is not None else sys.stdout
        try:
            handle.write("transcript\tgene\tchrom\trpkm\n")
            for transcript in scored:
                handle.write(
                    f"{transcript.transcript_id}\t{transcript.gene_id}\t"
                    f"{transcript.chrom}\t{transcript.depth_score:.4f}\n"
                )
        finally:
            if output is not None:
                handle.close()

        if output is not None and not ctx.obj.get("quiet", False):
            console.print(f"[green]Wrote {len(scored):,} transcripts:[/green] {output}")

    except FusionForgeError as e:
        _report_error(e, verbose)


# =============================================================================
# convert command
# =============================================================================


@main.command()
@click.option(
    "-i",
    "--input",
    "input_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF or GFF3 annotation file.",
)
@click.option(
    "--format",
    "model_format",
    type=click.Choice(["gtf", "gff3"]),
    help="Input format (default: from the file extension).",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output refFlat file.",
)
@click.pass_context
def convert(
    ctx: click.Context,
    input_path: Path,
    model_format: str | None,
    output: Path,
) -> None:
    """Convert a GTF or GFF3 annotation to refFlat.

    \b
    Example:
        $ fusionforge convert -i gencode.v19.gtf -o gencode.refFlat.txt
    """
    verbose = ctx.obj.get("verbose", False)
    if model_format is None:
        suffixes = [s.lower() for s in input_path.suffixes]
        model_format = "gff3" if any(s in (".gff", ".gff3") for s in suffixes) else "gtf"

    try:
        with Timer("Conversion"), open(output, "w") as handle:
            n_written = write_refflat(iter_gtf_transcripts(input_path, model_format), handle)
        if not ctx.obj.get("quiet", False):
            console.print(f"[green]Wrote {n_written:,} transcripts:[/green] {output}")
    except FusionForgeError as e:
        _report_error(e, verbose)


if __name__ == "__main__":
    main()
