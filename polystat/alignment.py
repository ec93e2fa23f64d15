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
Aligned sequences partitioned into groups.
"""
from __future__ import annotations

import collections
from typing import Dict
from typing import List
from typing import Union

import numpy as np
import tskit

from . import core
from . import exceptions

GAP = "-"
DNA = "ACGT"
UNKNOWN = "N"


class SequenceAlignment:
    """
    A set of equal-length sequences, each belonging to a group identified by
    an integer id. Symbols in ``alphabet`` are resolved, ``-`` is a gap and
    any other symbol (``N``, ``?``, IUPAC ambiguity codes, ...) is unresolved.
    Sequences are upper-cased on input.

    :param list sequences: The aligned sequences, as strings.
    :param list names: Optional sequence names.
    :param list groups: The group id of each sequence; defaults to 0 for
        every sequence.
    :param dict group_names: Optional mapping of group ids to names.
    :param list positions: The position of each site, strictly increasing.
        Defaults to ``0, 1, ..., num_sites - 1``.
    :param str alphabet: The resolved symbols. Defaults to ``"ACGT"``.
    """

    def __init__(
        self,
        sequences,
        *,
        names=None,
        groups=None,
        group_names=None,
        positions=None,
        alphabet: str = DNA,
    ):
        sequences = [str(seq).upper() for seq in sequences]
        num_sites = len(sequences[0]) if len(sequences) > 0 else 0
        for j, seq in enumerate(sequences):
            if len(seq) != num_sites:
                raise ValueError(
                    f"Sequence {j} has length {len(seq)}; expected {num_sites}"
                )
        self._alphabet = alphabet.upper()
        if GAP in self._alphabet:
            raise ValueError("The gap symbol cannot be part of the alphabet")
        self._data = np.array(
            [list(seq) for seq in sequences], dtype="U1"
        ).reshape((len(sequences), num_sites))
        self._data.flags.writeable = False
        self._resolved = np.isin(self._data, list(self._alphabet))
        self._gap = self._data == GAP

        if names is None:
            names = [None] * len(sequences)
        self._names = list(names)
        if len(self._names) != len(sequences):
            raise ValueError("Must provide one name per sequence")

        if groups is None:
            groups = np.zeros(len(sequences), dtype=int)
        self._groups = np.array(groups, dtype=int).reshape(-1)
        if len(self._groups) != len(sequences):
            raise ValueError("Must provide one group id per sequence")
        if np.any(self._groups < 0):
            raise ValueError("Group ids must be non-negative")
        self._groups.flags.writeable = False
        self._group_names: Dict[int, Union[str, None]] = {
            int(group): None for group in np.unique(self._groups)
        }
        if group_names is not None:
            for group, name in group_names.items():
                self._group_names[int(group)] = name

        if positions is None:
            positions = np.arange(num_sites)
        self._positions = np.array(positions, dtype=float).reshape(-1)
        if len(self._positions) != num_sites:
            raise ValueError("Must provide one position per site")
        if np.any(np.diff(self._positions) <= 0):
            raise ValueError("Site positions must be strictly increasing")
        self._positions.flags.writeable = False

    def __str__(self):
        counts = collections.Counter(self._groups.tolist())
        rows = [
            [str(group), str(self.get_group_name(group)), str(counts[group])]
            for group in self.group_ids
        ]
        return core.text_table(
            f"SequenceAlignment: {self.num_sequences} sequences, "
            f"{self.num_sites} sites",
            ["id", "name", "sequences"],
            "<<>",
            rows,
        )

    @property
    def num_sequences(self) -> int:
        return self._data.shape[0]

    @property
    def num_sites(self) -> int:
        return self._data.shape[1]

    @property
    def alphabet(self) -> str:
        return self._alphabet

    @property
    def array(self) -> np.ndarray:
        """
        The read-only ``(num_sequences, num_sites)`` array of symbols.
        """
        return self._data

    @property
    def resolved(self) -> np.ndarray:
        """
        Boolean array marking the resolved symbols.
        """
        return self._resolved

    @property
    def gaps(self) -> np.ndarray:
        """
        Boolean array marking the gaps.
        """
        return self._gap

    @property
    def positions(self) -> np.ndarray:
        return self._positions

    @property
    def names(self) -> List[Union[str, None]]:
        return list(self._names)

    @property
    def groups(self) -> np.ndarray:
        """
        The group id of each sequence.
        """
        return self._groups

    @property
    def group_ids(self) -> List[int]:
        return sorted(self._group_names)

    def get_group_name(self, group: int) -> str:
        if group not in self._group_names:
            raise exceptions.GroupNotFoundError(group, self._group_names)
        name = self._group_names[group]
        return str(group) if name is None else name

    def sequence(self, index: int) -> str:
        return "".join(self._data[index])

    def haplotypes(self) -> List[str]:
        return ["".join(row) for row in self._data]

    def site(self, index: int) -> np.ndarray:
        """
        Returns the symbols at the specified site, one per sequence.
        """
        return self._data[:, index]

    def is_resolved(self, symbol: str) -> bool:
        return symbol in self._alphabet

    def is_gap(self, symbol: str) -> bool:
        return symbol == GAP

    def has_gap(self, site: int) -> bool:
        return bool(np.any(self._gap[:, site]))

    def complete_sites(self) -> np.ndarray:
        """
        Returns a boolean mask of the sites where every sequence carries a
        resolved symbol.
        """
        return np.all(self._resolved, axis=0)

    def site_indexes(self, gapflag: bool = True) -> np.ndarray:
        """
        Returns the indexes of the sites to consider: only the complete sites
        if ``gapflag`` is True, all sites otherwise.
        """
        if gapflag:
            return np.where(self.complete_sites())[0]
        return np.arange(self.num_sites)

    def allele_counts(
        self, index: int, resolved_only: bool = False
    ) -> collections.Counter:
        """
        Returns the count of each symbol at the specified site. Gaps and
        unresolved symbols are counted as states unless ``resolved_only``
        is True.
        """
        column = self._data[:, index]
        if resolved_only:
            column = column[self._resolved[:, index]]
        return collections.Counter(column.tolist())

    def _copy_with(self, data, rows, sites):
        names = [self._names[j] for j in rows]
        groups = self._groups[rows]
        group_names = {
            group: name
            for group, name in self._group_names.items()
            if name is not None and group in set(groups.tolist())
        }
        return SequenceAlignment(
            ["".join(row) for row in data],
            names=names,
            groups=groups,
            group_names=group_names,
            positions=self._positions[sites],
            alphabet=self._alphabet,
        )

    def select_sequences(self, indexes) -> SequenceAlignment:
        rows = np.array(indexes, dtype=int).reshape(-1)
        sites = np.arange(self.num_sites)
        return self._copy_with(self._data[rows], rows, sites)

    def select_sites(self, sites) -> SequenceAlignment:
        """
        Returns a new alignment holding only the specified sites, given
        either as indexes or as a boolean mask.
        """
        sites = np.array(sites).reshape(-1)
        if sites.dtype == bool:
            sites = np.where(sites)[0]
        sites = sites.astype(int)
        rows = np.arange(self.num_sequences)
        return self._copy_with(self._data[:, sites], rows, sites)

    def complete_alignment(self) -> SequenceAlignment:
        """
        Returns a new alignment without the sites carrying gaps or
        unresolved symbols.
        """
        return self.select_sites(self.complete_sites())

    def extract_groups(self, groups) -> SequenceAlignment:
        """
        Returns a new alignment holding the sequences of the specified groups,
        in their original order.
        """
        groups = set(groups)
        for group in groups:
            if group not in self._group_names:
                raise exceptions.GroupNotFoundError(group, self._group_names)
        rows = np.array(
            [j for j, group in enumerate(self._groups) if group in groups], dtype=int
        )
        return self.select_sequences(rows)

    def concatenate(self, other: SequenceAlignment) -> SequenceAlignment:
        """
        Returns a new alignment holding the sequences of this alignment
        followed by those of ``other``.
        """
        if other.num_sites != self.num_sites:
            raise exceptions.DimensionError(
                f"Cannot concatenate alignments of {self.num_sites} and "
                f"{other.num_sites} sites"
            )
        group_names = {
            group: name
            for source in (self, other)
            for group, name in source._group_names.items()
            if name is not None
        }
        return SequenceAlignment(
            self.haplotypes() + other.haplotypes(),
            names=self._names + other._names,
            groups=np.concatenate([self._groups, other._groups]),
            group_names=group_names,
            positions=self._positions,
            alphabet="".join(sorted(set(self._alphabet) | set(other._alphabet))),
        )

    @classmethod
    def from_tree_sequence(cls, ts: tskit.TreeSequence, *, samples=None):
        """
        Returns the alignment of the variable sites in the specified tree
        sequence. There is one sequence per sample node, named ``n{u}``
        and grouped by the population of the node; population names are
        taken from the population metadata where available. Each site
        becomes one column, using the allelic states as symbols and
        :data:`UNKNOWN` for missing data.
        """
        if samples is None:
            samples = ts.samples()
        samples = np.array(samples, dtype=np.int32)
        data = np.full((len(samples), ts.num_sites), UNKNOWN, dtype="U1")
        alphabet = set()
        for var in ts.variants(samples=samples):
            states = []
            for allele in var.alleles:
                if allele is not None and len(allele) != 1:
                    raise ValueError(
                        f"Site {var.site.id} has allele '{allele}'; only single "
                        "character alleles can be aligned"
                    )
                states.append(UNKNOWN if allele is None else allele)
            states = np.array(states + [UNKNOWN], dtype="U1")
            # Missing data is coded -1, which picks the trailing UNKNOWN.
            data[:, var.site.id] = states[var.genotypes]
            alphabet.update(a for a in var.alleles if a is not None)

        groups = []
        for u in samples:
            population = ts.node(u).population
            if population == tskit.NULL:
                raise ValueError(f"Sample {u} is not assigned to a population")
            groups.append(population)
        group_names = {}
        for population in set(groups):
            metadata = ts.population(population).metadata
            if isinstance(metadata, dict) and "name" in metadata:
                group_names[population] = metadata["name"]
        return cls(
            ["".join(row) for row in data],
            names=[f"n{u}" for u in samples],
            groups=groups,
            group_names=group_names,
            positions=ts.tables.sites.position,
            alphabet="".join(sorted(alphabet)) if len(alphabet) > 0 else DNA,
        )
