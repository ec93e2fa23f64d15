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
Permutation of group labels, genotypes and alleles in genotype collections.

Every function returns a new :class:`.GenotypeCollection` and leaves its
input untouched. All functions assume that every record carries exactly
``num_loci`` genotypes, which :meth:`.GenotypeCollection.add_record`
guarantees.
"""
from __future__ import annotations

import collections
import logging

import numpy as np

from . import core
from . import genotypes as gt

logger = logging.getLogger(__name__)


def _shuffled(items, rng):
    return [items[j] for j in rng.permutation(len(items))]


def _selected_groups(collection, groups):
    if groups is None:
        return set(collection.group_ids)
    return {int(group) for group in groups}


def permute_labels(collection, *, random_seed=None, rng=None):
    """
    Returns a copy of the specified collection in which the group ids of the
    records have been randomly permuted. Each record keeps its genotypes, so
    the number of records and the multiset of group ids are unchanged, but
    the number of records in each group may vary.

    :param GenotypeCollection collection: The input collection.
    :param int random_seed: The seed for the shuffle. If None, a seed is
        drawn from the default seed generator.
    :param numpy.random.Generator rng: A generator to use instead of
        seeding a new one.
    :rtype: GenotypeCollection
    """
    rng = core.get_rng(random_seed, rng)
    labels = _shuffled([record.group for record in collection], rng)
    result = collection.empty_copy()
    for record, group in zip(collection, labels):
        result._append(
            gt.Record(group=group, genotypes=record.genotypes, name=record.name)
        )
    return result


def _permute_genotypes(collection, pools, rng):
    """
    Shuffles the genotypes of each pool of record indexes independently at
    each locus and rebuilds the collection, keeping records outside every
    pool unchanged. Within a pool, genotypes only move between records that
    have the same ploidy at the locus, so missing genotypes stay where they
    are.
    """
    num_loci = collection.num_loci
    new_genotypes = {}
    for pool in pools:
        for j in pool:
            new_genotypes[j] = list(collection[j].genotypes)
        for locus in range(num_loci):
            by_ploidy = collections.defaultdict(list)
            for j in pool:
                by_ploidy[collection[j].genotypes[locus].ploidy].append(j)
            for ploidy, indexes in sorted(by_ploidy.items()):
                if ploidy == 0 or len(indexes) < 2:
                    continue
                column = [collection[j].genotypes[locus] for j in indexes]
                for j, genotype in zip(indexes, _shuffled(column, rng)):
                    new_genotypes[j][locus] = genotype
    result = collection.empty_copy()
    for j, record in enumerate(collection):
        genotypes = tuple(new_genotypes.get(j, record.genotypes))
        result._append(
            gt.Record(group=record.group, genotypes=genotypes, name=record.name)
        )
    return result


def _permute_alleles(collection, pools, rng):
    """
    Shuffles the alleles of each pool of record indexes independently at
    each locus and deals them back out according to each record's original
    ploidy at that locus.
    """
    num_loci = collection.num_loci
    new_genotypes = {j: [None] * num_loci for pool in pools for j in pool}
    for pool in pools:
        for locus in range(num_loci):
            alleles = []
            for j in pool:
                alleles.extend(collection[j].genotypes[locus].alleles)
            # The pool is built from the same genotypes whose ploidy is
            # consumed below, so it is always exactly exhausted.
            alleles = rng.permutation(np.array(alleles, dtype=int))
            k = 0
            for j in pool:
                ploidy = collection[j].genotypes[locus].ploidy
                new_genotypes[j][locus] = gt.genotype(*alleles[k : k + ploidy])
                k += ploidy
            assert k == len(alleles)
    result = collection.empty_copy()
    for j, record in enumerate(collection):
        if j in new_genotypes:
            genotypes = tuple(new_genotypes[j])
        else:
            genotypes = record.genotypes
        result._append(
            gt.Record(group=record.group, genotypes=genotypes, name=record.name)
        )
    return result


def _pooled(collection, groups):
    groups = _selected_groups(collection, groups)
    pool = [j for j, record in enumerate(collection) if record.group in groups]
    logger.debug("Pooling %d records from groups %s", len(pool), sorted(groups))
    return [pool]


def _per_group(collection, groups):
    groups = _selected_groups(collection, groups)
    pools = {group: [] for group in sorted(groups)}
    for j, record in enumerate(collection):
        if record.group in pools:
            pools[record.group].append(j)
    logger.debug(
        "Permuting within groups: %s",
        {group: len(pool) for group, pool in pools.items()},
    )
    return list(pools.values())


def permute_genotypes(collection, groups=None, *, random_seed=None, rng=None):
    """
    Returns a copy of the specified collection in which, at each locus
    independently, the genotypes of the records belonging to ``groups``
    have been randomly permuted among those records. Genotypes can therefore
    move between the selected groups; records in other groups are copied
    unchanged. A genotype only moves to a record with the same ploidy at
    that locus, so every record keeps its ploidy and missing genotypes stay
    in place.

    :param GenotypeCollection collection: The input collection.
    :param groups: The ids of the groups whose genotypes are pooled. If
        None, all groups are pooled.
    :param int random_seed: The seed for the shuffle.
    :param numpy.random.Generator rng: A generator to use instead of
        seeding a new one.
    :rtype: GenotypeCollection
    """
    rng = core.get_rng(random_seed, rng)
    return _permute_genotypes(collection, _pooled(collection, groups), rng)


def permute_genotypes_within_groups(
    collection, groups=None, *, random_seed=None, rng=None
):
    """
    As :func:`.permute_genotypes`, except that genotypes are permuted
    separately within each of the selected groups and never cross a group
    boundary.
    """
    rng = core.get_rng(random_seed, rng)
    return _permute_genotypes(collection, _per_group(collection, groups), rng)


def permute_alleles(collection, groups=None, *, random_seed=None, rng=None):
    """
    Returns a copy of the specified collection in which, at each locus
    independently, the alleles carried by the records belonging to
    ``groups`` have been pooled, randomly permuted and dealt back out to
    those records. Each record receives as many alleles as it originally
    carried at that locus, so ploidy and missingness are unchanged while
    genotypic associations are broken. Records in other groups are copied
    unchanged.

    :param GenotypeCollection collection: The input collection.
    :param groups: The ids of the groups whose alleles are pooled. If None,
        all groups are pooled.
    :param int random_seed: The seed for the shuffle.
    :param numpy.random.Generator rng: A generator to use instead of
        seeding a new one.
    :rtype: GenotypeCollection
    """
    rng = core.get_rng(random_seed, rng)
    return _permute_alleles(collection, _pooled(collection, groups), rng)


def permute_alleles_within_groups(
    collection, groups=None, *, random_seed=None, rng=None
):
    """
    As :func:`.permute_alleles`, except that alleles are pooled and
    permuted separately within each of the selected groups.
    """
    rng = core.get_rng(random_seed, rng)
    return _permute_alleles(collection, _per_group(collection, groups), rng)


def extract_groups(collection, groups):
    """
    Returns a new collection holding, in their original order, the records
    of the specified groups. Group names are carried over for the groups
    that are extracted.

    :param GenotypeCollection collection: The input collection.
    :param groups: The ids of the groups to extract.
    :rtype: GenotypeCollection
    """
    groups = {int(group) for group in groups}
    result = collection.empty_copy(groups=groups)
    for record in collection:
        if record.group in groups:
            result._append(record)
    return result
