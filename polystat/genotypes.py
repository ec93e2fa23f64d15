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
Genotype collections: records carrying one genotype per locus, each record
belonging to a group identified by an integer id.
"""
from __future__ import annotations

import dataclasses
from typing import Dict
from typing import List
from typing import Tuple
from typing import Union

from . import core
from . import exceptions


@dataclasses.dataclass(frozen=True)
class Missing:
    """
    A genotype with no observed alleles.
    """

    @property
    def ploidy(self) -> int:
        return 0

    @property
    def alleles(self) -> Tuple[int, ...]:
        return ()


@dataclasses.dataclass(frozen=True)
class Haploid:
    """
    A genotype carrying a single allele index.
    """

    allele: int

    def __post_init__(self):
        _check_allele(self.allele)

    @property
    def ploidy(self) -> int:
        return 1

    @property
    def alleles(self) -> Tuple[int, ...]:
        return (self.allele,)


@dataclasses.dataclass(frozen=True)
class Diploid:
    """
    A genotype carrying two allele indexes, in the order given.
    """

    first: int
    second: int

    def __post_init__(self):
        _check_allele(self.first)
        _check_allele(self.second)

    @property
    def ploidy(self) -> int:
        return 2

    @property
    def alleles(self) -> Tuple[int, ...]:
        return (self.first, self.second)

    def is_homozygous(self) -> bool:
        return self.first == self.second


Genotype = Union[Missing, Haploid, Diploid]

MISSING = Missing()


def _check_allele(allele):
    if not core.isinteger(allele) or allele < 0:
        raise ValueError(f"Allele indexes must be non-negative integers; got {allele}")


def genotype(*alleles) -> Genotype:
    """
    Returns the genotype holding the specified allele indexes: no alleles
    gives :data:`MISSING`, one gives a :class:`Haploid` and two a
    :class:`Diploid`.
    """
    if len(alleles) == 0:
        return MISSING
    if len(alleles) == 1:
        return Haploid(int(alleles[0]))
    if len(alleles) == 2:
        return Diploid(int(alleles[0]), int(alleles[1]))
    raise ValueError(f"A genotype holds at most two alleles; got {len(alleles)}")


def _as_genotype(value) -> Genotype:
    if isinstance(value, (Missing, Haploid, Diploid)):
        return value
    if value is None:
        return MISSING
    if core.isinteger(value):
        return Haploid(int(value))
    return genotype(*value)


@dataclasses.dataclass(frozen=True)
class Record:
    """
    A sampled individual: its group id and one genotype per locus.
    """

    group: int
    genotypes: Tuple[Genotype, ...]
    name: Union[str, None] = None

    def ploidy(self, locus: int) -> int:
        return self.genotypes[locus].ploidy


class GenotypeCollection:
    """
    An ordered collection of :class:`Record` objects with a fixed number of
    loci, together with the table of groups the records belong to.

    Group ids are registered as records are added, or explicitly with
    :meth:`.add_group`. A group with no explicit name reports its id,
    converted to a string, as its name.

    :param int num_loci: The number of loci every record must carry.
    """

    def __init__(self, num_loci: int):
        if not core.isinteger(num_loci) or num_loci < 0:
            raise ValueError("num_loci must be a non-negative integer")
        self._num_loci = int(num_loci)
        self._records: List[Record] = []
        self._groups: Dict[int, Union[str, None]] = {}

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __getitem__(self, index):
        return self._records[index]

    def __eq__(self, other):
        return (
            isinstance(other, GenotypeCollection)
            and self._num_loci == other._num_loci
            and self._records == other._records
            and self._groups == other._groups
        )

    def __str__(self):
        rows = [
            [str(group_id), str(self.get_group_name(group_id)), str(size)]
            for group_id, size in self.group_sizes().items()
        ]
        return core.text_table(
            f"GenotypeCollection: {self.num_records} records, {self.num_loci} loci",
            ["id", "name", "records"],
            "<<>",
            rows,
        )

    @property
    def num_loci(self) -> int:
        return self._num_loci

    @property
    def num_records(self) -> int:
        return len(self._records)

    @property
    def records(self) -> List[Record]:
        return list(self._records)

    @property
    def group_ids(self) -> List[int]:
        """
        The sorted list of registered group ids.
        """
        return sorted(self._groups)

    def add_group(self, group: int, name: Union[str, None] = None):
        """
        Registers an empty group with the specified id.

        :raises BadIdentifierError: If the id is already in use.
        """
        group = _check_group_id(group)
        if group in self._groups:
            raise exceptions.BadIdentifierError(f"Group id {group} already in use")
        self._groups[group] = name

    def add_record(self, genotypes, group: int = 0, name: Union[str, None] = None):
        """
        Appends a record to the collection. Each item in ``genotypes`` may be
        a genotype instance, None (missing), an allele index or a sequence of
        zero to two allele indexes.
        """
        group = _check_group_id(group)
        genotypes = tuple(_as_genotype(value) for value in genotypes)
        if len(genotypes) != self._num_loci:
            raise ValueError(
                f"Record has {len(genotypes)} genotypes; the collection has "
                f"{self._num_loci} loci"
            )
        self._groups.setdefault(group, None)
        self._records.append(Record(group=group, genotypes=genotypes, name=name))

    def _append(self, record: Record):
        # Internal fast path; callers guarantee the record is well formed.
        self._groups.setdefault(record.group, None)
        self._records.append(record)

    def has_group(self, group: int) -> bool:
        return group in self._groups

    def get_group_name(self, group: int) -> str:
        """
        Returns the name of the specified group, or its id as a string if no
        name has been set.

        :raises GroupNotFoundError: If the group id is not registered.
        """
        if group not in self._groups:
            raise exceptions.GroupNotFoundError(group, self._groups)
        name = self._groups[group]
        return str(group) if name is None else name

    def set_group_name(self, group: int, name: str):
        if group not in self._groups:
            raise exceptions.GroupNotFoundError(group, self._groups)
        self._groups[group] = name

    def group_sizes(self) -> Dict[int, int]:
        """
        Returns a dictionary mapping each registered group id, in sorted
        order, to its number of records.
        """
        sizes = {group: 0 for group in self.group_ids}
        for record in self._records:
            sizes[record.group] += 1
        return sizes

    def group_size(self, group: int) -> int:
        if group not in self._groups:
            raise exceptions.GroupNotFoundError(group, self._groups)
        return sum(1 for record in self._records if record.group == group)

    def records_in_groups(self, groups) -> List[Record]:
        groups = set(groups)
        return [record for record in self._records if record.group in groups]

    def alleles(self, locus: int) -> List[int]:
        """
        Returns the sorted list of allele indexes in use at the specified locus.
        """
        if not 0 <= locus < self._num_loci:
            raise IndexError(
                f"Locus {locus} out of bounds; must be in [0, {self._num_loci})"
            )
        found = set()
        for record in self._records:
            found.update(record.genotypes[locus].alleles)
        return sorted(found)

    def empty_copy(self, groups=None) -> GenotypeCollection:
        """
        Returns a collection with the same number of loci and no records,
        carrying the group table entries for the specified groups (all groups
        if None).
        """
        copy = GenotypeCollection(self._num_loci)
        for group, name in self._groups.items():
            if groups is None or group in groups:
                copy._groups[group] = name
        return copy

    def copy(self) -> GenotypeCollection:
        copy = self.empty_copy()
        copy._records = list(self._records)
        return copy


def _check_group_id(group) -> int:
    if not core.isinteger(group) or group < 0:
        raise ValueError(f"Group ids must be non-negative integers; got {group}")
    return int(group)
