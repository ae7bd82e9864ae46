import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional


def _artifacts_enabled() -> bool:
    value = os.getenv("EHHSCAN_SAVE_VCFS", "0")
    return value.lower() in ("1", "true", "yes", "on")


def _project_root() -> Path:
    # helpers.py resides in tests/, go one level up
    return Path(__file__).resolve().parents[1]


def save_artifact(src: Path, subdir: str = ""):
    if not _artifacts_enabled():
        return
    src = Path(src)
    dst_dir = _project_root() / "saved_vcfs" / subdir
    dst_dir.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src, dst_dir / src.name)


def write_vcf(
    path: Path,
    samples: List[str],
    variants: List[Dict],
    contigs: Optional[List[str]] = None,
    fmt: str = "GT",
):
    """
    Write a minimal VCF with provided variants.

    Each variant dict may contain keys:
      - chrom (str, default "1")
      - pos (int)
      - ref (str) / alt (str)
      - genotypes (List[str]) aligned to samples order; each entry is the
        whole sample column, so multi-field FORMATs pass "0|1:0,3,30"
      - format (str) overriding ``fmt`` for this record
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if contigs is None:
        contigs = sorted({v.get("chrom", "1") for v in variants}) or ["1"]
    with open(path, "w") as f:
        f.write("##fileformat=VCFv4.2\n")
        f.write("##source=ehhscan-tests\n")
        for contig in contigs:
            f.write(f"##contig=<ID={contig},length=100000000>\n")
        f.write('##FORMAT=<ID=GT,Number=1,Type=String,Description="Genotype">\n')
        f.write('##FORMAT=<ID=PL,Number=.,Type=Integer,Description="Phred-scaled likelihoods">\n')
        f.write('##FORMAT=<ID=GL,Number=.,Type=Float,Description="Log10 likelihoods">\n')
        f.write('##FORMAT=<ID=GP,Number=.,Type=Float,Description="Genotype probabilities">\n')
        f.write(
            "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\t"
            + "\t".join(samples)
            + "\n"
        )
        for i, v in enumerate(variants):
            line = [
                v.get("chrom", "1"),
                str(v.get("pos", i + 1)),
                v.get("id", "."),
                v.get("ref", "A"),
                v.get("alt", "T"),
                ".",
                "PASS",
                ".",
                v.get("format", fmt),
            ]
            line += v["genotypes"]
            f.write("\t".join(line) + "\n")
    save_artifact(path)
    return path


def phased_columns(copies: List[str]) -> List[List[str]]:
    """Turn haplotype strings (two per sample) into per-site GT columns.

    ``copies`` are ordered ``[s0.first, s0.second, s1.first, ...]``.
    """
    n_sites = len(copies[0])
    sites = []
    for site in range(n_sites):
        sites.append(
            [
                f"{copies[2 * s][site]}|{copies[2 * s + 1][site]}"
                for s in range(len(copies) // 2)
            ]
        )
    return sites


def variants_from_haplotypes(
    copies: List[str], positions: List[int], chrom: str = "1"
) -> List[Dict]:
    return [
        {"chrom": chrom, "pos": pos, "genotypes": gts}
        for pos, gts in zip(positions, phased_columns(copies))
    ]


def run_ehhscan(args: List[str], check: bool = False) -> subprocess.CompletedProcess:
    """Run ``python -m ehhscan`` from the project root and capture output."""
    return subprocess.run(
        [sys.executable, "-m", "ehhscan", *[str(a) for a in args]],
        cwd=_project_root(),
        check=check,
        capture_output=True,
        text=True,
    )


def parse_rows(stdout: str) -> List[List[str]]:
    return [line.split("\t") for line in stdout.splitlines() if line]


def random_haplotypes(n_samples: int, n_sites: int, seed: int) -> List[str]:
    """Random haplotype copies where every site keeps two copies of each allele.

    Copies 0 and 1 always carry "0" and copies 2 and 3 always carry "1", so
    each site passes the usual allele-count filters.
    """
    import numpy as np

    rng = np.random.default_rng(seed)
    bits = rng.integers(0, 2, size=(2 * n_samples, n_sites))
    bits[0:2, :] = 0
    bits[2:4, :] = 1
    return ["".join(str(b) for b in row) for row in bits]
