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
Tests for the permutation of group labels, genotypes and alleles.
"""
import collections

import numpy as np
import pytest

import polystat
from polystat import genotypes as gt


def ploidies(collection):
    return [
        tuple(g.ploidy for g in record.genotypes) for record in collection
    ]


def genotype_multiset(records, locus):
    return collections.Counter(record.genotypes[locus] for record in records)


def allele_multiset(records, locus):
    return collections.Counter(
        allele for record in records for allele in record.genotypes[locus].alleles
    )


def random_collection(num_records=40, num_loci=5, num_groups=4, seed=1):
    rng = np.random.default_rng(seed)
    collection = polystat.GenotypeCollection(num_loci)
    for group in range(num_groups):
        collection.add_group(group, f"group_{group}")
    for _ in range(num_records):
        genotypes = []
        for _ in range(num_loci):
            ploidy = rng.choice([0, 1, 2, 2])
            genotypes.append(tuple(rng.integers(0, 4, size=ploidy)))
        collection.add_record(genotypes, group=int(rng.integers(0, num_groups)))
    return collection


class TestLabelPermutation:
    def test_multiset_preserved(self):
        collection = random_collection()
        permuted = polystat.permute_labels(collection, random_seed=2)
        before = collections.Counter(record.group for record in collection)
        after = collections.Counter(record.group for record in permuted)
        assert before == after
        assert permuted.num_records == collection.num_records

    def test_genotypes_in_order(self):
        collection = random_collection()
        permuted = polystat.permute_labels(collection, random_seed=2)
        for r1, r2 in zip(collection, permuted):
            assert r1.genotypes == r2.genotypes

    def test_labels_move(self):
        collection = random_collection()
        permuted = polystat.permute_labels(collection, random_seed=3)
        assert [r.group for r in collection] != [r.group for r in permuted]

    def test_group_names(self):
        collection = random_collection()
        permuted = polystat.permute_labels(collection, random_seed=2)
        for group in collection.group_ids:
            assert permuted.get_group_name(group) == f"group_{group}"


class TestGenotypePermutation:
    def test_all_groups(self):
        collection = random_collection()
        permuted = polystat.permute_genotypes(collection, random_seed=5)
        assert [r.group for r in collection] == [r.group for r in permuted]
        for locus in range(collection.num_loci):
            assert genotype_multiset(collection, locus) == genotype_multiset(
                permuted, locus
            )
        assert permuted != collection

    def test_unselected_groups_unchanged(self):
        collection = random_collection()
        permuted = polystat.permute_genotypes(collection, [0, 2], random_seed=5)
        for r1, r2 in zip(collection, permuted):
            assert r1.group == r2.group
            if r1.group not in (0, 2):
                assert r1 == r2

    def test_selected_pool(self):
        collection = random_collection()
        selected = [0, 2]
        permuted = polystat.permute_genotypes(collection, selected, random_seed=5)
        for locus in range(collection.num_loci):
            assert genotype_multiset(
                collection.records_in_groups(selected), locus
            ) == genotype_multiset(permuted.records_in_groups(selected), locus)

    def test_genotypes_cross_groups(self):
        collection = polystat.GenotypeCollection(1)
        for _ in range(20):
            collection.add_record([(0, 0)], group=0)
        for _ in range(20):
            collection.add_record([(1, 1)], group=1)
        permuted = polystat.permute_genotypes(collection, random_seed=10)
        group0 = genotype_multiset(permuted.records_in_groups([0]), 0)
        assert gt.Diploid(1, 1) in group0

    def test_within_groups(self):
        collection = random_collection()
        permuted = polystat.permute_genotypes_within_groups(
            collection, random_seed=6
        )
        for group in collection.group_ids:
            for locus in range(collection.num_loci):
                assert genotype_multiset(
                    collection.records_in_groups([group]), locus
                ) == genotype_multiset(permuted.records_in_groups([group]), locus)

    def test_within_groups_subset(self):
        collection = random_collection()
        permuted = polystat.permute_genotypes_within_groups(
            collection, [1], random_seed=6
        )
        for r1, r2 in zip(collection, permuted):
            if r1.group != 1:
                assert r1 == r2

    def test_loci_independent(self):
        collection = polystat.GenotypeCollection(2)
        for j in range(30):
            collection.add_record([j, j])
        permuted = polystat.permute_genotypes(collection, random_seed=1)
        first = [record.genotypes[0] for record in permuted]
        second = [record.genotypes[1] for record in permuted]
        assert first != second

    @pytest.mark.parametrize(
        "func",
        [polystat.permute_genotypes, polystat.permute_genotypes_within_groups],
    )
    @pytest.mark.parametrize("seed", range(5))
    def test_ploidy_preserved(self, func, seed):
        collection = random_collection(seed=seed + 1)
        permuted = func(collection, random_seed=seed)
        assert ploidies(collection) == ploidies(permuted)

    @pytest.mark.parametrize(
        "func",
        [polystat.permute_genotypes, polystat.permute_genotypes_within_groups],
    )
    @pytest.mark.parametrize("seed", range(20))
    def test_missing_stays_in_place(self, func, seed):
        collection = polystat.GenotypeCollection(1)
        collection.add_record([()])
        for j in range(9):
            collection.add_record([(j, j + 1)])
        permuted = func(collection, random_seed=seed)
        assert permuted[0].genotypes[0] == gt.MISSING
        assert ploidies(collection) == ploidies(permuted)
        assert genotype_multiset(collection, 0) == genotype_multiset(permuted, 0)

    def test_shuffled_within_ploidy_class(self):
        collection = polystat.GenotypeCollection(1)
        for j in range(20):
            collection.add_record([(j,)])
            collection.add_record([(j, j)])
        permuted = polystat.permute_genotypes(collection, random_seed=4)
        haploid = [r.genotypes[0] for r in permuted if r.genotypes[0].ploidy == 1]
        diploid = [r.genotypes[0] for r in permuted if r.genotypes[0].ploidy == 2]
        assert sorted(g.alleles for g in haploid) == [(j,) for j in range(20)]
        assert sorted(g.alleles for g in diploid) == [(j, j) for j in range(20)]
        assert [g.alleles for g in haploid] != [(j,) for j in range(20)]


class TestAllelePermutation:
    def test_ploidy_preserved(self):
        collection = random_collection()
        permuted = polystat.permute_alleles(collection, random_seed=7)
        assert ploidies(collection) == ploidies(permuted)

    def test_alleles_preserved(self):
        collection = random_collection()
        permuted = polystat.permute_alleles(collection, random_seed=7)
        for locus in range(collection.num_loci):
            assert allele_multiset(collection, locus) == allele_multiset(
                permuted, locus
            )

    def test_breaks_genotypes(self):
        collection = polystat.GenotypeCollection(1)
        for _ in range(20):
            collection.add_record([(0, 0)])
            collection.add_record([(1, 1)])
        permuted = polystat.permute_alleles(collection, random_seed=8)
        assert any(
            not record.genotypes[0].is_homozygous() for record in permuted
        )

    def test_heterogeneous_missingness(self):
        collection = polystat.GenotypeCollection(1)
        collection.add_record([(0, 1)], group=0)
        collection.add_record([None], group=0)
        collection.add_record([2], group=1)
        collection.add_record([(3, 3)], group=1)
        permuted = polystat.permute_alleles(collection, random_seed=9)
        assert ploidies(collection) == ploidies(permuted)
        assert permuted[1].genotypes[0] == gt.MISSING

    def test_unselected_groups_unchanged(self):
        collection = random_collection()
        permuted = polystat.permute_alleles(collection, [3], random_seed=7)
        for r1, r2 in zip(collection, permuted):
            if r1.group != 3:
                assert r1 == r2

    def test_within_groups(self):
        collection = random_collection()
        permuted = polystat.permute_alleles_within_groups(collection, random_seed=4)
        assert ploidies(collection) == ploidies(permuted)
        for group in collection.group_ids:
            for locus in range(collection.num_loci):
                assert allele_multiset(
                    collection.records_in_groups([group]), locus
                ) == allele_multiset(permuted.records_in_groups([group]), locus)


class TestDeterminism:
    @pytest.mark.parametrize(
        "func",
        [
            polystat.permute_genotypes,
            polystat.permute_genotypes_within_groups,
            polystat.permute_alleles,
            polystat.permute_alleles_within_groups,
        ],
    )
    def test_same_seed(self, func):
        collection = random_collection()
        assert func(collection, random_seed=11) == func(collection, random_seed=11)

    def test_injected_rng(self):
        collection = random_collection()
        p1 = polystat.permute_labels(collection, rng=np.random.default_rng(3))
        p2 = polystat.permute_labels(collection, rng=np.random.default_rng(3))
        assert p1 == p2

    def test_input_unchanged(self, diploid_collection_fixture):
        copy = diploid_collection_fixture.copy()
        polystat.permute_alleles(diploid_collection_fixture, random_seed=1)
        polystat.permute_genotypes(diploid_collection_fixture, random_seed=1)
        polystat.permute_labels(diploid_collection_fixture, random_seed=1)
        assert copy == diploid_collection_fixture


class TestExtractGroups:
    def test_subset(self, diploid_collection_fixture):
        sub = polystat.extract_groups(diploid_collection_fixture, [0, 2])
        assert all(record.group in (0, 2) for record in sub)
        sizes = diploid_collection_fixture.group_sizes()
        assert sub.num_records == sizes[0] + sizes[2]
        assert sub.group_ids == [0, 2]

    def test_order_and_genotypes(self, diploid_collection_fixture):
        sub = polystat.extract_groups(diploid_collection_fixture, [2, 0])
        expected = diploid_collection_fixture.records_in_groups([0, 2])
        assert sub.records == expected

    def test_names(self, diploid_collection_fixture):
        sub = polystat.extract_groups(diploid_collection_fixture, [1, 2])
        assert sub.get_group_name(2) == "south"
        assert sub.get_group_name(1) == "1"
        with pytest.raises(polystat.GroupNotFoundError):
            sub.get_group_name(0)

    def test_unknown_group(self, diploid_collection_fixture):
        sub = polystat.extract_groups(diploid_collection_fixture, [8])
        assert sub.num_records == 0
