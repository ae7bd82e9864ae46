"""End-to-end tests of ScanApp on small generated VCFs."""

import io
from pathlib import Path

import pytest

from ehhscan.app import GroupLayout, ScanApp, ScanConfig
from ehhscan.core.errors import ConfigurationError, UnphasedGenotypeError

from .helpers import parse_rows, random_haplotypes, variants_from_haplotypes, write_vcf

SAMPLES = [f"S{i}" for i in range(6)]


def _vcf(tmp_path: Path, n_sites: int, seed: int = 7, chroms=("1",), name="in.vcf") -> Path:
    variants = []
    for k, chrom in enumerate(chroms):
        haps = random_haplotypes(len(SAMPLES), n_sites, seed + k)
        positions = [100 * (i + 1) for i in range(n_sites)]
        variants += variants_from_haplotypes(haps, positions, chrom=chrom)
    return write_vcf(tmp_path / name, SAMPLES, variants)


def _run(config: ScanConfig):
    out = io.StringIO()
    status = ScanApp(config, stdout=out).run()
    return status, parse_rows(out.getvalue())


def _config(statistic: str, vcf: Path, **kwargs) -> ScanConfig:
    kwargs.setdefault("target", tuple(range(len(SAMPLES))))
    kwargs.setdefault("verbose", False)
    return ScanConfig(statistic=statistic, encoding="GT", input_vcf=vcf, **kwargs)


class TestGroupLayout:
    def test_single_group_uses_sorted_targets(self):
        layout = GroupLayout.build(_config("ihs", Path("x"), target=(4, 1, 2)), 6)
        assert layout.members == [1, 2, 4]
        assert layout.target == [0, 1, 2]
        assert layout.background == []

    def test_shared_sample_appears_in_both_groups(self):
        cfg = _config("hap-lrt", Path("x"), target=(0, 1), background=(1, 2))
        layout = GroupLayout.build(cfg, 3)
        assert layout.members == [0, 1, 1, 2]
        assert layout.target == [0, 1]
        assert layout.background == [2, 3]

    def test_out_of_range_index_is_fatal(self):
        with pytest.raises(ConfigurationError, match="out of range"):
            GroupLayout.build(_config("ihs", Path("x"), target=(0, 6)), 6)


class TestIHSRun:
    def test_rows_have_eight_columns(self, tmp_path):
        status, rows = _run(_config("ihs", _vcf(tmp_path, 40)))
        assert status == 0
        assert rows
        for row in rows:
            assert len(row) == 8
            assert row[0] == "1"
            assert row[6] in {"0", "1", "2"} and row[7] in {"0", "1", "2"}

    def test_threads_do_not_change_the_set_of_rows(self, tmp_path):
        vcf = _vcf(tmp_path, 60, seed=3)
        _, single = _run(_config("ihs", vcf, threads=1))
        _, multi = _run(_config("ihs", vcf, threads=4))
        assert sorted(map(tuple, multi)) == sorted(map(tuple, single))

    def test_repeated_single_thread_runs_are_identical(self, tmp_path):
        vcf = _vcf(tmp_path, 30, seed=5)
        assert _run(_config("ihs", vcf)) == _run(_config("ihs", vcf))

    def test_each_sequence_is_scored_separately(self, tmp_path):
        vcf = _vcf(tmp_path, 25, chroms=("1", "2"))
        _, rows = _run(_config("ihs", vcf))
        assert {row[0] for row in rows} == {"1", "2"}

    def test_region_restricts_sites(self, tmp_path):
        vcf = _vcf(tmp_path, 40)
        _, rows = _run(_config("ihs", vcf, region="1:1000-2000"))
        assert rows
        assert all(1000 <= int(row[1]) <= 2000 for row in rows)

    def test_genetic_map_is_used(self, tmp_path):
        vcf = _vcf(tmp_path, 30)
        gmap = tmp_path / "map.txt"
        gmap.write_text("1\tx\t0.0\t1\n1\tx\t30.0\t3001\n")
        _, with_map = _run(_config("ihs", vcf, genetic_map=gmap))
        _, without_map = _run(_config("ihs", vcf))
        # 0.01 cM per bp against the constant 0.001 per step
        ref_with = {row[1]: float(row[3]) for row in with_map}
        ref_without = {row[1]: float(row[3]) for row in without_map}
        shared = set(ref_with) & set(ref_without)
        assert shared
        for pos in shared:
            assert ref_with[pos] == pytest.approx(ref_without[pos] * 1000, rel=1e-3)

    def test_unphased_variant_aborts_without_rows(self, tmp_path):
        haps = random_haplotypes(len(SAMPLES), 20, 1)
        variants = variants_from_haplotypes(haps, [100 * (i + 1) for i in range(20)])
        variants[12]["genotypes"][3] = variants[12]["genotypes"][3].replace("|", "/")
        vcf = write_vcf(tmp_path / "unphased.vcf", SAMPLES, variants)
        out = io.StringIO()
        with pytest.raises(UnphasedGenotypeError, match="position=1300"):
            ScanApp(_config("ihs", vcf), stdout=out).run()
        assert out.getvalue() == ""

    def test_multiallelic_records_are_skipped(self, tmp_path):
        haps = random_haplotypes(len(SAMPLES), 20, 2)
        variants = variants_from_haplotypes(haps, [100 * (i + 1) for i in range(20)])
        variants.insert(5, {"pos": 550, "alt": "T,G", "genotypes": ["0|2"] * len(SAMPLES)})
        vcf = write_vcf(tmp_path / "multi.vcf", SAMPLES, variants)
        status, rows = _run(_config("ihs", vcf))
        assert status == 0
        assert "550" not in {row[1] for row in rows}

    def test_empty_region_succeeds_without_rows(self, tmp_path):
        status, rows = _run(_config("ihs", _vcf(tmp_path, 20), region="1:900000-900100"))
        assert status == 0
        assert rows == []


class TestHapLRTRun:
    def test_rows_for_long_sequence(self, tmp_path):
        vcf = _vcf(tmp_path, 12)
        status, rows = _run(_config("hap-lrt", vcf, target=(0, 1, 4), background=(2, 3, 5)))
        assert status == 0
        assert rows
        for row in rows:
            assert len(row) == 6
            assert 0.0 <= float(row[4]) <= 1.0
            assert row[5] in {"1", "-1"}

    def test_short_sequence_skipped_on_sequence_change(self, tmp_path):
        variants = variants_from_haplotypes(
            random_haplotypes(len(SAMPLES), 10, 3), [100 * (i + 1) for i in range(10)], chrom="1"
        )
        variants += variants_from_haplotypes(
            random_haplotypes(len(SAMPLES), 12, 4), [100 * (i + 1) for i in range(12)], chrom="2"
        )
        vcf = write_vcf(tmp_path / "two.vcf", SAMPLES, variants)
        _, rows = _run(_config("hap-lrt", vcf, target=(0, 1, 4), background=(2, 3, 5)))
        assert rows
        assert {row[0] for row in rows} == {"2"}

    def test_short_last_sequence_still_evaluated(self, tmp_path):
        vcf = _vcf(tmp_path, 10)
        _, rows = _run(_config("hap-lrt", vcf, target=(0, 1, 4), background=(2, 3, 5)))
        assert rows
        assert {row[0] for row in rows} == {"1"}


class TestMeltRun:
    def test_trace_starts_with_anchor(self, tmp_path):
        vcf = _vcf(tmp_path, 20)
        status, rows = _run(_config("melt-ehh", vcf, focal_position=1000))
        assert status == 0
        assert rows[0] == ["1000", "1", "0", "0"]
        for row in rows[1:]:
            assert 0.0 < float(row[1]) <= 1.0
            assert row[2] in {"0", "1"}
            assert row[3] in {"0", "1"}

    def test_unretained_position_emits_nothing(self, tmp_path):
        vcf = _vcf(tmp_path, 20)
        status, rows = _run(_config("melt-ehh", vcf, focal_position=1050))
        assert status == 0
        assert rows == []

    def test_focal_position_required(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ScanApp(_config("melt-ehh", _vcf(tmp_path, 5)))
