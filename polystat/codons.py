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
Genetic codes and statistics on codon sites.

A codon site is a column of codons, one per sequence, given as a sequence of
three-letter strings over ``ACGT``.
"""
from __future__ import annotations

import collections
import itertools
from typing import Dict

import numpy as np

from . import exceptions

_BASES = "TCAG"
_STANDARD_AMINO_ACIDS = (
    "FFLLSSSSYY**CC*WLLLLPPPPHHQQRRRRIIIMTTTTNNKKSSRRVVVVAAAADDEEGGGG"
)
STOP = "*"


def _is_transition(a, b):
    return {a, b} in ({"A", "G"}, {"C", "T"})


class GeneticCode:
    """
    A mapping from the 64 codons to amino acids, with ``*`` marking the stop
    codons.

    :param dict table: Mapping of each codon to a one-letter amino acid code.
    :param str name: A descriptive name for the code.
    """

    def __init__(self, table: Dict[str, str], name: str = ""):
        if len(table) != 64:
            raise ValueError("A genetic code must translate all 64 codons")
        self._table = {codon.upper(): aa for codon, aa in table.items()}
        self.name = name

    def __repr__(self):
        return f"GeneticCode(name={self.name!r})"

    def translate(self, codon: str) -> str:
        try:
            return self._table[codon]
        except KeyError:
            raise ValueError(f"Cannot translate unresolved codon '{codon}'") from None

    def is_stop(self, codon: str) -> bool:
        return self.translate(codon) == STOP

    def are_synonymous(self, codon1: str, codon2: str) -> bool:
        return self.translate(codon1) == self.translate(codon2)

    def with_changes(self, changes: Dict[str, str], name: str) -> GeneticCode:
        table = dict(self._table)
        table.update(changes)
        return GeneticCode(table, name)


STANDARD = GeneticCode(
    {
        a + b + c: aa
        for (a, b, c), aa in zip(
            itertools.product(_BASES, repeat=3), _STANDARD_AMINO_ACIDS
        )
    },
    "Standard",
)
VERTEBRATE_MITOCHONDRIAL = STANDARD.with_changes(
    {"AGA": STOP, "AGG": STOP, "ATA": "M", "TGA": "W"}, "Vertebrate mitochondrial"
)


def number_of_differences(codon1: str, codon2: str) -> int:
    return sum(1 for a, b in zip(codon1, codon2) if a != b)


def number_of_synonymous_differences(
    codon1: str, codon2: str, code: GeneticCode, minchange: bool = False
) -> float:
    """
    Returns the number of synonymous differences between two codons. When
    the codons differ at more than one position, every mutational path
    between them is considered, except paths going through a stop codon.
    The synonymous changes are averaged over these paths, or, if
    ``minchange`` is True, the path with the fewest non-synonymous changes
    is used.
    """
    positions = [k for k in range(3) if codon1[k] != codon2[k]]
    if len(positions) == 0:
        return 0.0
    if len(positions) == 1:
        return 1.0 if code.are_synonymous(codon1, codon2) else 0.0
    path_counts = []
    for order in itertools.permutations(positions):
        current = codon1
        synonymous = 0
        for step, k in enumerate(order):
            following = current[:k] + codon2[k] + current[k + 1 :]
            if step < len(order) - 1 and code.is_stop(following):
                break
            if code.are_synonymous(current, following):
                synonymous += 1
            current = following
        else:
            path_counts.append(synonymous)
    if len(path_counts) == 0:
        return 0.0
    if minchange:
        return float(max(path_counts))
    return sum(path_counts) / len(path_counts)


def number_of_synonymous_positions(
    codon: str, code: GeneticCode, ratio: float = 1.0
) -> float:
    """
    Returns the number of synonymous positions of a codon, that is the
    weighted proportion of the nine single-nucleotide mutations of the codon
    that are synonymous. Transitions are weighted by ``ratio / (ratio + 2)``
    and transversions by ``1 / (ratio + 2)``. Stop codons have no
    synonymous positions.
    """
    if code.is_stop(codon):
        return 0.0
    acid = code.translate(codon)
    value = 0.0
    for k in range(3):
        for base in "ACGT":
            if base == codon[k]:
                continue
            mutant = codon[:k] + base + codon[k + 1 :]
            if code.is_stop(mutant) or code.translate(mutant) != acid:
                continue
            if _is_transition(codon[k], base):
                value += ratio / (ratio + 2)
            else:
                value += 1 / (ratio + 2)
    return value


def _frequencies(site):
    counts = collections.Counter(site)
    n = len(site)
    return {codon: count / n for codon, count in counts.items()}


def is_constant(site) -> bool:
    return len(set(site)) < 2


def is_synonymous_polymorphic(site, code: GeneticCode) -> bool:
    """
    Returns True if the site is polymorphic and all its codons translate to
    the same amino acid.
    """
    if is_constant(site):
        return False
    return len({code.translate(codon) for codon in site}) == 1


def is_mono_site_polymorphic(site) -> bool:
    """
    Returns True if exactly one of the three codon positions is polymorphic.
    """
    polymorphic = sum(1 for k in range(3) if len({codon[k] for codon in site}) > 1)
    return polymorphic == 1


def pi_synonymous(site, code: GeneticCode, minchange: bool = False) -> float:
    """
    Returns the synonymous nucleotide diversity at a codon site.
    """
    n = len(site)
    freqs = _frequencies(site)
    pi = 0.0
    for codon1, f1 in freqs.items():
        for codon2, f2 in freqs.items():
            pi += f1 * f2 * number_of_synonymous_differences(
                codon1, codon2, code, minchange
            )
    return pi * n / (n - 1)


def pi_non_synonymous(site, code: GeneticCode, minchange: bool = False) -> float:
    """
    Returns the non-synonymous nucleotide diversity at a codon site.
    """
    if is_constant(site) or is_synonymous_polymorphic(site, code):
        return 0.0
    n = len(site)
    freqs = _frequencies(site)
    pi = 0.0
    for codon1, f1 in freqs.items():
        for codon2, f2 in freqs.items():
            differences = number_of_differences(codon1, codon2)
            synonymous = number_of_synonymous_differences(
                codon1, codon2, code, minchange
            )
            pi += f1 * f2 * (differences - synonymous)
    return pi * n / (n - 1)


def mean_number_of_synonymous_positions(
    site, code: GeneticCode, ratio: float = 1.0
) -> float:
    freqs = _frequencies(site)
    return sum(
        f * number_of_synonymous_positions(codon, code, ratio)
        for codon, f in freqs.items()
    )


def site_without_rare_variants(site, freqmin: float):
    """
    Returns a copy of the site in which the codons with a frequency strictly
    lower than ``freqmin`` are replaced by the most frequent codon.
    """
    n = len(site)
    counts = collections.Counter(site)
    major = counts.most_common(1)[0][0]
    return [codon if counts[codon] / n >= freqmin else major for codon in site]


def _filtered(site, freqmin):
    if freqmin > 1 / len(site):
        return site_without_rare_variants(site, freqmin)
    return list(site)


def number_of_substitutions(site, code: GeneticCode, freqmin: float = 0.0) -> int:
    """
    Returns the number of nucleotide substitutions at a codon site, counting
    ``k - 1`` substitutions at each codon position carrying ``k`` distinct
    nucleotides. Variants with a frequency lower than ``freqmin`` are
    ignored.
    """
    if is_constant(site):
        return 0
    site = _filtered(site, freqmin)
    return sum(len({codon[k] for codon in site}) - 1 for k in range(3))


def number_of_non_synonymous_substitutions(
    site, code: GeneticCode, freqmin: float = 0.0
) -> int:
    """
    Returns the minimum number of non-synonymous substitutions needed to
    connect the codons observed at a site. Each codon is linked to its
    nearest neighbour in terms of non-synonymous changes, along the path
    with the fewest non-synonymous changes, and the shortest of these links
    is discounted once. Variants with a frequency lower than ``freqmin`` are
    ignored.
    """
    if is_constant(site):
        return 0
    states = sorted(set(_filtered(site, freqmin)))
    if len(states) < 2:
        return 0
    total = 0
    overall_min = None
    for codon1 in states:
        nearest = min(
            number_of_differences(codon1, codon2)
            - int(number_of_synonymous_differences(codon1, codon2, code, True))
            for codon2 in states
            if codon2 != codon1
        )
        total += nearest
        if overall_min is None or nearest < overall_min:
            overall_min = nearest
    return total - overall_min


def consensus(site) -> str:
    """
    Returns the most frequent codon at a site; ties go to the codon seen
    first.
    """
    return collections.Counter(site).most_common(1)[0][0]


def fixed_differences(site_in, site_out, code: GeneticCode):
    """
    Returns the numbers of synonymous and non-synonymous fixed differences
    between an ingroup and an outgroup codon site, as a tuple ``(Ds, Da)``.
    A position carries a fixed difference when the consensus codons of the
    two groups differ there and no nucleotide is shared between the groups
    at that position. Fixed differences are classified along the path from
    the ingroup consensus with the fewest non-synonymous changes.
    """
    cons_in = consensus(site_in)
    cons_out = consensus(site_out)
    fixed = []
    for k in range(3):
        if cons_in[k] == cons_out[k]:
            continue
        shared = {codon[k] for codon in site_in} & {codon[k] for codon in site_out}
        if len(shared) == 0:
            fixed.append(k)
    if len(fixed) == 0:
        return 0, 0
    target = list(cons_in)
    for k in fixed:
        target[k] = cons_out[k]
    target = "".join(target)
    synonymous = int(number_of_synonymous_differences(cons_in, target, code, True))
    return synonymous, len(fixed) - synonymous


def codon_array(aln) -> np.ndarray:
    """
    Returns the ``(num_sequences, num_sites / 3)`` array of codons of a
    nucleotide alignment.

    :raises DimensionError: If the alignment holds no sequences or if the
        number of sites is not a multiple of 3.
    """
    if aln.num_sequences == 0:
        raise exceptions.DimensionError("Too few sequences", 0, 1)
    if aln.num_sites % 3 != 0:
        raise exceptions.DimensionError(
            f"A coding alignment needs a multiple of 3 sites; got {aln.num_sites}"
        )
    data = aln.array
    return np.array(
        [
            ["".join(row[k : k + 3]) for k in range(0, aln.num_sites, 3)]
            for row in data
        ],
        dtype="U3",
    ).reshape((aln.num_sequences, aln.num_sites // 3))


def codon_sites(aln, code: GeneticCode, *, stopflag=True, gapflag=True):
    """
    Returns the list of codon sites of an alignment, each a list of codons.
    When ``stopflag`` is True only codon sites made of resolved nucleotides
    and free of stop codons are returned; otherwise, when ``gapflag`` is
    True, the codon sites containing a gap are skipped.
    """
    codons = codon_array(aln)
    resolved = aln.resolved.reshape((aln.num_sequences, -1, 3)).all(axis=(0, 2))
    gapped = aln.gaps.reshape((aln.num_sequences, -1, 3)).any(axis=(0, 2))
    sites = []
    for j in range(codons.shape[1]):
        site = codons[:, j].tolist()
        if stopflag:
            if not resolved[j] or any(code.is_stop(codon) for codon in site):
                continue
        elif gapflag and gapped[j]:
            continue
        sites.append(site)
    return sites
