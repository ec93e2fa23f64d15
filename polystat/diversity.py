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
Estimators of nucleotide and haplotype diversity.

Every estimator takes a :class:`.SequenceAlignment` as its first argument.
When ``gapflag`` is True (the default) only the complete sites, where every
sequence carries a resolved symbol, are considered; otherwise all sites are
considered and, at each site, only the resolved symbols are counted.
"""
from __future__ import annotations

import collections
import dataclasses
import functools
import logging
import math

import numpy as np

from . import codons
from . import core
from . import exceptions

logger = logging.getLogger(__name__)

_GC = frozenset("GC")
_TRANSITIONS = (frozenset("AG"), frozenset("CT"))


@dataclasses.dataclass(frozen=True)
class UsefulValues:
    """
    The constants of the neutrality tests for a sample of ``n`` sequences,
    following Tajima (1989) and Fu and Li (1993). The ``cn`` and ``dn``
    values are only defined for ``n > 2`` and are NaN otherwise.
    """

    n: int
    a1: float
    a2: float
    a1n: float
    b1: float
    b2: float
    c1: float
    c2: float
    cn: float
    dn: float
    e1: float
    e2: float


@functools.lru_cache(maxsize=None)
def useful_values(n: int) -> UsefulValues:
    """
    Returns the :class:`.UsefulValues` for the specified sample size.

    :raises DimensionError: If ``n < 2``.
    """
    if not core.isinteger(n):
        raise TypeError("The sample size must be an integer")
    n = int(n)
    if n < 2:
        raise exceptions.DimensionError("Too few sequences", n, 2)
    a1 = sum(1 / i for i in range(1, n))
    a2 = sum(1 / i ** 2 for i in range(1, n))
    a1n = a1 + 1 / n
    b1 = (n + 1) / (3 * (n - 1))
    b2 = 2 * (n ** 2 + n + 3) / (9 * n * (n - 1))
    c1 = b1 - 1 / a1
    c2 = b2 - (n + 2) / (a1 * n) + a2 / a1 ** 2
    if n > 2:
        cn = 2 * (n * a1 - 2 * (n - 1)) / ((n - 1) * (n - 2))
        dn = (
            cn
            + (n - 2) / (n - 1) ** 2
            + 2 / (n - 1) * (1.5 - (2 * a1n - 3) / (n - 2) - 1 / n)
        )
    else:
        cn = dn = math.nan
    return UsefulValues(
        n=n,
        a1=a1,
        a2=a2,
        a1n=a1n,
        b1=b1,
        b2=b2,
        c1=c1,
        c2=c2,
        cn=cn,
        dn=dn,
        e1=c1 / a1,
        e2=c2 / (a1 ** 2 + a2),
    )


def _check_sequences(aln, minimum=2):
    if aln.num_sequences < minimum:
        raise exceptions.DimensionError(
            "Too few sequences", aln.num_sequences, minimum
        )


def _site_counts(aln, gapflag):
    gapflag = core._parse_flag(gapflag, default=True)
    for j in aln.site_indexes(gapflag):
        yield aln.allele_counts(j, resolved_only=True)


def polymorphic_site_number(aln, *, gapflag=True) -> int:
    """
    Returns the number of segregating sites, that is sites carrying at least
    two distinct resolved symbols.
    """
    return sum(1 for counts in _site_counts(aln, gapflag) if len(counts) > 1)


def parsimony_informative_site_number(aln, *, gapflag=True) -> int:
    """
    Returns the number of sites with at least two states each seen at least
    twice.
    """
    return sum(
        1
        for counts in _site_counts(aln, gapflag)
        if sum(1 for count in counts.values() if count >= 2) >= 2
    )


def count_singletons(aln, *, gapflag=True) -> int:
    """
    Returns the number of (site, symbol) pairs where the symbol occurs
    exactly once at the site.
    """
    return sum(
        sum(1 for count in counts.values() if count == 1)
        for counts in _site_counts(aln, gapflag)
    )


def triplet_number(aln, *, gapflag=True) -> int:
    """
    Returns the number of sites carrying exactly three states.
    """
    return sum(1 for counts in _site_counts(aln, gapflag) if len(counts) == 3)


def total_mutations(aln, *, gapflag=True) -> int:
    """
    Returns the minimum number of mutations under the infinite sites model,
    that is the sum over sites of the number of states minus one.
    """
    return sum(
        len(counts) - 1 for counts in _site_counts(aln, gapflag) if len(counts) > 0
    )


def external_branch_mutations(ingroup, outgroup) -> int:
    """
    Returns the number of mutations on the external branches of the
    ingroup genealogy: the ingroup singletons absent from the outgroup,
    counted over the sites that are complete in both alignments and where
    the outgroup is monomorphic.

    :raises DimensionError: If the alignments have different site counts.
    """
    if ingroup.num_sites != outgroup.num_sites:
        raise exceptions.DimensionError(
            f"Ingroup and outgroup have {ingroup.num_sites} and "
            f"{outgroup.num_sites} sites"
        )
    complete = ingroup.complete_sites() & outgroup.complete_sites()
    num_mutations = 0
    for j in np.where(complete)[0]:
        out_counts = outgroup.allele_counts(j)
        if len(out_counts) != 1:
            continue
        out_state = next(iter(out_counts))
        num_mutations += sum(
            1
            for state, count in ingroup.allele_counts(j).items()
            if count == 1 and state != out_state
        )
    return num_mutations


def _site_heterozygosities(aln, gapflag):
    for counts in _site_counts(aln, gapflag):
        n = sum(counts.values())
        if n < 2:
            continue
        yield 1 - sum(k * (k - 1) for k in counts.values()) / (n * (n - 1))


def heterozygosity(aln, *, gapflag=True) -> float:
    """
    Returns the sum over sites of the unbiased per-site heterozygosity
    ``1 - sum(k * (k - 1)) / (n * (n - 1))``, where ``k`` runs over the
    counts of the resolved symbols and ``n`` is their total.
    """
    return float(sum(_site_heterozygosities(aln, gapflag)))


def squared_heterozygosity(aln, *, gapflag=True) -> float:
    """
    Returns the sum over sites of the squared per-site heterozygosity.
    """
    return float(sum(h ** 2 for h in _site_heterozygosities(aln, gapflag)))


def gc_content(aln) -> float:
    """
    Returns the proportion of G and C among the resolved symbols.

    :raises DimensionError: If the alignment holds no resolved symbol.
    """
    resolved = aln.array[aln.resolved]
    if len(resolved) == 0:
        raise exceptions.DimensionError("No resolved symbol", 0, 1)
    return float(np.isin(resolved, list(_GC)).sum() / len(resolved))


def gc_polymorphism(aln, *, stopflag=True):
    """
    Returns the pair ``(num_sequences, num_gc)`` summed over the polymorphic
    sites where G or C is neither absent nor fixed: the number of resolved
    symbols at those sites and the number of them that are G or C. If
    ``stopflag`` is True, only the complete sites are considered.
    """
    total = 0
    total_gc = 0
    for counts in _site_counts(aln, stopflag):
        if len(counts) < 2:
            continue
        n = sum(counts.values())
        gc = sum(counts[state] for state in _GC)
        if 0 < gc < n:
            total += n
            total_gc += gc
    return total, total_gc


def _biallelic_complete_sites(aln):
    for j in np.where(aln.complete_sites())[0]:
        counts = aln.allele_counts(j)
        if len(counts) == 2:
            yield frozenset(counts)


def num_transitions(aln) -> int:
    """
    Returns the number of complete biallelic sites whose two states differ
    by a transition.
    """
    return sum(1 for pair in _biallelic_complete_sites(aln) if pair in _TRANSITIONS)


def num_transversions(aln) -> int:
    """
    Returns the number of complete biallelic sites whose two states differ
    by a transversion.
    """
    return sum(
        1 for pair in _biallelic_complete_sites(aln) if pair not in _TRANSITIONS
    )


def transition_transversion_ratio(aln) -> float:
    """
    Returns the ratio of :func:`num_transitions` to
    :func:`num_transversions`, or NaN if there is no transversion.
    """
    num_tv = num_transversions(aln)
    if num_tv == 0:
        return math.nan
    return num_transitions(aln) / num_tv


def watterson75(aln, *, gapflag=True) -> float:
    """
    Returns Watterson's (1975) estimator of theta, the number of segregating
    sites divided by ``a1``.
    """
    _check_sequences(aln)
    values = useful_values(aln.num_sequences)
    return polymorphic_site_number(aln, gapflag=gapflag) / values.a1


def tajima83(aln, *, gapflag=True) -> float:
    """
    Returns Tajima's (1983) estimator of theta, the mean number of pairwise
    differences.
    """
    _check_sequences(aln)
    return heterozygosity(aln, gapflag=gapflag)


def _haplotypes(aln, gapflag):
    _check_sequences(aln)
    if core._parse_flag(gapflag, default=True):
        aln = aln.complete_alignment()
    return collections.Counter(aln.haplotypes())


def haplotype_number(aln, *, gapflag=True) -> int:
    """
    Returns the number of distinct haplotypes (DVK).
    """
    return len(_haplotypes(aln, gapflag))


def haplotype_diversity(aln, *, gapflag=True) -> float:
    """
    Returns the unbiased haplotype diversity (DVH),
    ``n / (n - 1) * (1 - sum(p ** 2))``.
    """
    counts = _haplotypes(aln, gapflag)
    n = aln.num_sequences
    homozygosity = sum((count / n) ** 2 for count in counts.values())
    return n / (n - 1) * (1 - homozygosity)


# Codon statistics. The alignment is read as consecutive codons and, unless
# stated otherwise, only the codon sites made of resolved nucleotides and
# free of stop codons are considered.


def stop_codon_site_number(aln, code=codons.STANDARD, *, gapflag=True) -> int:
    """
    Returns the number of codon sites carrying at least one stop codon.
    Codon sites holding an unresolved nucleotide are skipped, as are those
    holding a gap when ``gapflag`` is True.
    """
    gapflag = core._parse_flag(gapflag, default=True)
    num_stop = 0
    for site in codons.codon_sites(aln, code, stopflag=False, gapflag=gapflag):
        num_stop += any(
            all(base in aln.alphabet for base in codon) and code.is_stop(codon)
            for codon in site
        )
    return num_stop


def mono_site_polymorphic_codon_number(
    aln, code=codons.STANDARD, *, stopflag=True, gapflag=True
) -> int:
    """
    Returns the number of codon sites polymorphic at exactly one of their
    three positions.
    """
    stopflag = core._parse_flag(stopflag, default=True)
    gapflag = core._parse_flag(gapflag, default=True)
    sites = codons.codon_sites(aln, code, stopflag=stopflag, gapflag=gapflag)
    return sum(1 for site in sites if codons.is_mono_site_polymorphic(site))


def synonymous_polymorphic_codon_number(aln, code=codons.STANDARD) -> int:
    """
    Returns the number of polymorphic codon sites where all codons encode
    the same amino acid.
    """
    return sum(
        1
        for site in codons.codon_sites(aln, code)
        if codons.is_synonymous_polymorphic(site, code)
    )


def pi_synonymous(aln, code=codons.STANDARD, *, minchange=False) -> float:
    """
    Returns the synonymous nucleotide diversity summed over codon sites.
    If ``minchange`` is True, the differences between two codons are
    classified along the path with the fewest non-synonymous changes;
    otherwise they are averaged over all the paths avoiding stop codons.
    """
    _check_sequences(aln)
    minchange = core._parse_flag(minchange, default=False)
    return sum(
        codons.pi_synonymous(site, code, minchange)
        for site in codons.codon_sites(aln, code)
    )


def pi_non_synonymous(aln, code=codons.STANDARD, *, minchange=False) -> float:
    """
    Returns the non-synonymous nucleotide diversity summed over codon sites.
    See :func:`pi_synonymous` for ``minchange``.
    """
    _check_sequences(aln)
    minchange = core._parse_flag(minchange, default=False)
    return sum(
        codons.pi_non_synonymous(site, code, minchange)
        for site in codons.codon_sites(aln, code)
    )


def mean_synonymous_sites_number(aln, code=codons.STANDARD, *, ratio=1.0) -> float:
    """
    Returns the number of synonymous positions, averaged over the codons of
    each codon site and summed over sites. ``ratio`` is the relative weight
    of transitions to transversions.
    """
    return sum(
        codons.mean_number_of_synonymous_positions(site, code, ratio)
        for site in codons.codon_sites(aln, code)
    )


def mean_non_synonymous_sites_number(
    aln, code=codons.STANDARD, *, ratio=1.0
) -> float:
    """
    Returns the number of non-synonymous positions, that is three times the
    number of codon sites considered minus
    :func:`mean_synonymous_sites_number`.
    """
    sites = codons.codon_sites(aln, code)
    return sum(
        3 - codons.mean_number_of_synonymous_positions(site, code, ratio)
        for site in sites
    )


def non_synonymous_substitutions_number(
    aln, code=codons.STANDARD, *, freqmin=0.0
) -> int:
    """
    Returns the minimum number of non-synonymous substitutions summed over
    codon sites, ignoring the codons with a frequency below ``freqmin``.
    """
    freqmin = core._parse_frequency(freqmin, "freqmin")
    return _non_synonymous_substitutions(codons.codon_sites(aln, code), code, freqmin)


def synonymous_substitutions_number(
    aln, code=codons.STANDARD, *, freqmin=0.0
) -> int:
    """
    Returns the number of synonymous substitutions summed over codon sites:
    the total number of substitutions minus the non-synonymous ones.
    """
    freqmin = core._parse_frequency(freqmin, "freqmin")
    return _synonymous_substitutions(codons.codon_sites(aln, code), code, freqmin)


def _non_synonymous_substitutions(sites, code, freqmin):
    return sum(
        codons.number_of_non_synonymous_substitutions(site, code, freqmin)
        for site in sites
    )


def _synonymous_substitutions(sites, code, freqmin):
    total = sum(codons.number_of_substitutions(site, code, freqmin) for site in sites)
    return total - _non_synonymous_substitutions(sites, code, freqmin)


def watterson75_synonymous(aln, code=codons.STANDARD, *, freqmin=0.0) -> float:
    """
    Returns Watterson's estimator of theta computed on the synonymous
    substitutions.
    """
    _check_sequences(aln)
    values = useful_values(aln.num_sequences)
    return synonymous_substitutions_number(aln, code, freqmin=freqmin) / values.a1


def watterson75_non_synonymous(aln, code=codons.STANDARD, *, freqmin=0.0) -> float:
    """
    Returns Watterson's estimator of theta computed on the non-synonymous
    substitutions.
    """
    _check_sequences(aln)
    values = useful_values(aln.num_sequences)
    return non_synonymous_substitutions_number(aln, code, freqmin=freqmin) / values.a1


def paired_codon_sites(ingroup, outgroup, code=codons.STANDARD):
    """
    Returns the list of ``(ingroup_site, outgroup_site)`` pairs for the codon
    sites that are resolved and free of stop codons in both alignments.

    :raises DimensionError: If the alignments have different site counts.
    """
    combined = ingroup.concatenate(outgroup)
    k = ingroup.num_sequences
    sites = [(site[:k], site[k:]) for site in codons.codon_sites(combined, code)]
    logger.debug(
        "Paired %d codon sites of %d ingroup and %d outgroup sequences",
        len(sites),
        k,
        outgroup.num_sequences,
    )
    return sites


def fixed_differences(ingroup, outgroup, code=codons.STANDARD):
    """
    Returns the numbers of synonymous and non-synonymous fixed differences
    between the ingroup and the outgroup as a tuple ``(Ds, Da)``.
    """
    return _fixed_differences(paired_codon_sites(ingroup, outgroup, code), code)


def _fixed_differences(sites, code):
    num_synonymous = 0
    num_non_synonymous = 0
    for site_in, site_out in sites:
        ds, da = codons.fixed_differences(site_in, site_out, code)
        num_synonymous += ds
        num_non_synonymous += da
    return num_synonymous, num_non_synonymous
