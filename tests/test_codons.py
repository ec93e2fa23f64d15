#
# Copyright (C) 2023-2024 polystat developers
#
# This file is part of polystat.
#
# polystat is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# polystat is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with polystat.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Tests for genetic codes and codon site statistics.
"""
import itertools

import pytest

import polystat
from polystat import codons


class TestGeneticCode:
    def test_standard(self):
        code = codons.STANDARD
        assert code.translate("ATG") == "M"
        assert code.translate("TGG") == "W"
        assert code.translate("GGC") == "G"
        for stop in ["TAA", "TAG", "TGA"]:
            assert code.is_stop(stop)
        num_stops = sum(
            code.is_stop("".join(c)) for c in itertools.product("ACGT", repeat=3)
        )
        assert num_stops == 3

    def test_mitochondrial(self):
        code = codons.VERTEBRATE_MITOCHONDRIAL
        assert code.translate("TGA") == "W"
        assert code.translate("ATA") == "M"
        assert code.is_stop("AGA")
        assert code.is_stop("AGG")
        assert codons.STANDARD.translate("AGA") == "R"

    def test_synonymous(self):
        assert codons.STANDARD.are_synonymous("CTT", "TTA")
        assert not codons.STANDARD.are_synonymous("CTT", "ATT")

    def test_unresolved(self):
        with pytest.raises(ValueError, match="unresolved"):
            codons.STANDARD.translate("ANG")

    def test_incomplete_table(self):
        with pytest.raises(ValueError, match="64"):
            codons.GeneticCode({"ATG": "M"})


class TestDifferences:
    def test_number_of_differences(self):
        assert codons.number_of_differences("ATG", "ATG") == 0
        assert codons.number_of_differences("ATG", "CTA") == 2

    @pytest.mark.parametrize(
        ["c1", "c2", "expected"],
        [
            ("CTT", "CTT", 0),
            ("CTT", "CTC", 1),
            ("CTT", "ATT", 0),
            ("TTA", "CTG", 2),
        ],
    )
    def test_synonymous_differences(self, c1, c2, expected):
        code = codons.STANDARD
        assert codons.number_of_synonymous_differences(c1, c2, code) == expected

    def test_paths_averaged(self):
        # AGA -> CGA -> CGT is fully synonymous, AGA -> AGT -> CGT is not.
        code = codons.STANDARD
        assert codons.number_of_synonymous_differences("AGA", "CGT", code) == 1
        assert (
            codons.number_of_synonymous_differences("AGA", "CGT", code, True) == 2
        )

    def test_stop_paths_skipped(self):
        # CGA -> TGA goes through a stop codon.
        code = codons.STANDARD
        assert codons.number_of_synonymous_differences("CGA", "TGG", code) == 1

    @pytest.mark.parametrize(
        ["codon", "expected"],
        [("ATG", 0), ("GGG", 1), ("CTG", 4 / 3), ("TAA", 0)],
    )
    def test_synonymous_positions(self, codon, expected):
        value = codons.number_of_synonymous_positions(codon, codons.STANDARD)
        assert value == pytest.approx(expected)

    def test_synonymous_positions_ratio(self):
        # GGG: one transition (GGA) and two transversions (GGC, GGT).
        value = codons.number_of_synonymous_positions("GGG", codons.STANDARD, 2)
        assert value == pytest.approx(2 / 4 + 2 * 1 / 4)
        value = codons.number_of_synonymous_positions("TTG", codons.STANDARD, 4)
        # TTA (transition) and CTG (transition) are synonymous.
        assert value == pytest.approx(2 * 4 / 6)


class TestSites:
    def test_polymorphism_classes(self):
        code = codons.STANDARD
        assert codons.is_synonymous_polymorphic(["CTT", "CTC"], code)
        assert not codons.is_synonymous_polymorphic(["CTT", "CTT"], code)
        assert not codons.is_synonymous_polymorphic(["CTT", "ATT"], code)
        assert codons.is_mono_site_polymorphic(["CTT", "ATT"])
        assert not codons.is_mono_site_polymorphic(["CTT", "ATC"])
        assert not codons.is_mono_site_polymorphic(["CTT", "CTT"])

    def test_pi(self):
        code = codons.STANDARD
        site = ["CTT", "CTC", "CTT", "CTC"]
        assert codons.pi_synonymous(site, code) == pytest.approx(2 / 3)
        assert codons.pi_non_synonymous(site, code) == 0
        site = ["CTT", "ATT", "CTT", "ATT"]
        assert codons.pi_synonymous(site, code) == 0
        assert codons.pi_non_synonymous(site, code) == pytest.approx(2 / 3)

    def test_mean_synonymous_positions(self):
        site = ["CTT", "CTT", "ATG", "ATG"]
        value = codons.mean_number_of_synonymous_positions(site, codons.STANDARD)
        assert value == pytest.approx(0.5)

    def test_substitutions(self):
        code = codons.STANDARD
        site = ["CTT", "CTC", "ATT"]
        assert codons.number_of_substitutions(site, code) == 2
        assert codons.number_of_non_synonymous_substitutions(site, code) == 1
        assert codons.number_of_substitutions(["CTT"] * 3, code) == 0
        assert codons.number_of_non_synonymous_substitutions(["CTT"] * 3, code) == 0

    def test_rare_variants(self):
        code = codons.STANDARD
        site = ["CTT"] * 9 + ["ATT"]
        assert codons.site_without_rare_variants(site, 0.2) == ["CTT"] * 10
        assert codons.number_of_substitutions(site, code) == 1
        assert codons.number_of_substitutions(site, code, 0.2) == 0
        assert codons.number_of_non_synonymous_substitutions(site, code, 0.2) == 0
        # A threshold at or below 1/n keeps every variant.
        assert codons.number_of_non_synonymous_substitutions(site, code, 0.1) == 1

    def test_consensus(self):
        assert codons.consensus(["ATG", "CTT", "CTT"]) == "CTT"
        assert codons.consensus(["CTT", "ATG"]) == "CTT"

    @pytest.mark.parametrize(
        ["site_in", "site_out", "expected"],
        [
            (["CTT", "CTT"], ["CTC", "CTC"], (1, 0)),
            (["CTT", "CTT"], ["ATT", "ATT"], (0, 1)),
            (["CTT", "CTC"], ["CTC", "CTC"], (0, 0)),
            (["CTT", "CTT"], ["CTT", "CTT"], (0, 0)),
            (["AAA", "AAA"], ["GAG", "GAG"], (1, 1)),
        ],
    )
    def test_fixed_differences(self, site_in, site_out, expected):
        assert (
            codons.fixed_differences(site_in, site_out, codons.STANDARD) == expected
        )


class TestCodonSites:
    def test_codon_array(self):
        aln = polystat.SequenceAlignment(["ATGCTT", "ATGCTC"])
        array = codons.codon_array(aln)
        assert array.shape == (2, 2)
        assert list(array[1]) == ["ATG", "CTC"]

    def test_not_multiple_of_three(self):
        aln = polystat.SequenceAlignment(["ATGC"])
        with pytest.raises(polystat.DimensionError, match="multiple of 3"):
            codons.codon_array(aln)

    def test_no_sequences(self):
        aln = polystat.SequenceAlignment([])
        with pytest.raises(polystat.DimensionError, match="Too few sequences"):
            codons.codon_array(aln)
        with pytest.raises(polystat.DimensionError):
            codons.codon_sites(aln, codons.STANDARD)
        with pytest.raises(polystat.DimensionError):
            polystat.mono_site_polymorphic_codon_number(aln)

    def test_filters(self):
        aln = polystat.SequenceAlignment(
            ["ATGTAACTTA-GANT", "ATGCAACTTA-GAAT"]
        )
        code = codons.STANDARD
        assert codons.codon_sites(aln, code) == [["ATG", "ATG"], ["CTT", "CTT"]]
        sites = codons.codon_sites(aln, code, stopflag=False)
        assert sites == [
            ["ATG", "ATG"],
            ["TAA", "CAA"],
            ["CTT", "CTT"],
            ["ANT", "AAT"],
        ]
        sites = codons.codon_sites(aln, code, stopflag=False, gapflag=False)
        assert len(sites) == 5
