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
Neutrality tests: Tajima's D, Fu and Li's D, D*, F and F*, and the
McDonald-Kreitman table.

The variance-normalised statistics return NaN when their denominator is
zero, which happens for instance when there are no segregating sites.
"""
from __future__ import annotations

import collections
import logging
import math

from . import codons
from . import core
from . import diversity

logger = logging.getLogger(__name__)


MKTable = collections.namedtuple("MKTable", ["Pa", "Ps", "Da", "Ds"])
MKTable.__doc__ = """
The McDonald-Kreitman table: the numbers of non-synonymous (``Pa``) and
synonymous (``Ps``) polymorphisms within the ingroup, and of
non-synonymous (``Da``) and synonymous (``Ds``) fixed differences between
the ingroup and the outgroup.
"""


def _normalised(numerator, variance):
    if not variance > 0:
        return math.nan
    return numerator / math.sqrt(variance)


def tajima_d(aln, *, gapflag=True) -> float:
    """
    Returns Tajima's (1989) D computed from the number of segregating sites.
    """
    diversity._check_sequences(aln)
    values = diversity.useful_values(aln.num_sequences)
    S = diversity.polymorphic_site_number(aln, gapflag=gapflag)
    pi = diversity.tajima83(aln, gapflag=gapflag)
    return _normalised(
        pi - S / values.a1, values.e1 * S + values.e2 * S * (S - 1)
    )


def tajima_d_total_mutations(aln, *, gapflag=True) -> float:
    """
    Returns Tajima's D computed from the total number of mutations under the
    infinite sites model rather than from the number of segregating sites.
    """
    diversity._check_sequences(aln)
    values = diversity.useful_values(aln.num_sequences)
    eta = diversity.total_mutations(aln, gapflag=gapflag)
    pi = diversity.tajima83(aln, gapflag=gapflag)
    return _normalised(
        pi - eta / values.a1, values.e1 * eta + values.e2 * eta * (eta - 1)
    )


def _fu_li_values(ingroup):
    diversity._check_sequences(ingroup, minimum=3)
    return diversity.useful_values(ingroup.num_sequences)


def fu_li_d(ingroup, outgroup) -> float:
    """
    Returns Fu and Li's (1993) D, contrasting the total number of mutations
    in the ingroup with the number of mutations on its external branches,
    the latter being polarised with the outgroup.
    """
    v = _fu_li_values(ingroup)
    n = v.n
    eta = diversity.total_mutations(ingroup)
    eta_e = diversity.external_branch_mutations(ingroup, outgroup)
    vD = 1 + v.a1 ** 2 / (v.a2 + v.a1 ** 2) * (v.cn - (n + 1) / (n - 1))
    uD = v.a1 - 1 - vD
    return _normalised(eta - v.a1 * eta_e, uD * eta + vD * eta ** 2)


def fu_li_d_star(aln) -> float:
    """
    Returns Fu and Li's D*, which uses the number of singletons instead of
    the number of external mutations and so needs no outgroup.
    """
    v = _fu_li_values(aln)
    n = v.n
    eta = diversity.total_mutations(aln)
    eta_s = diversity.count_singletons(aln)
    vDs = (
        (n / (n - 1)) ** 2 * v.a2
        + v.a1 ** 2 * v.dn
        - 2 * n * v.a1 * (v.a1 + 1) / (n - 1) ** 2
    ) / (v.a1 ** 2 + v.a2)
    uDs = n / (n - 1) * (v.a1 - n / (n - 1)) - vDs
    return _normalised(n / (n - 1) * eta - v.a1 * eta_s, uDs * eta + vDs * eta ** 2)


def fu_li_f(ingroup, outgroup) -> float:
    """
    Returns Fu and Li's F, contrasting the mean number of pairwise
    differences in the ingroup with the number of external mutations.
    """
    v = _fu_li_values(ingroup)
    n = v.n
    eta = diversity.total_mutations(ingroup)
    eta_e = diversity.external_branch_mutations(ingroup, outgroup)
    pi = diversity.tajima83(ingroup)
    vF = (v.cn + 2 * (n ** 2 + n + 3) / (9 * n * (n - 1)) - 2 / (n - 1)) / (
        v.a1 ** 2 + v.a2
    )
    uF = (
        1
        + (n + 1) / (3 * (n - 1))
        - 4 * (n + 1) / (n - 1) ** 2 * (v.a1n - 2 * n / (n + 1))
    ) / v.a1 - vF
    return _normalised(pi - eta_e, uF * eta + vF * eta ** 2)


def fu_li_f_star(aln) -> float:
    """
    Returns Fu and Li's F*, the outgroup-free version of F using the
    number of singletons.
    """
    v = _fu_li_values(aln)
    n = v.n
    eta = diversity.total_mutations(aln)
    eta_s = diversity.count_singletons(aln)
    pi = diversity.tajima83(aln)
    vFs = (
        v.dn
        + 2 * (n ** 2 + n + 3) / (9 * n * (n - 1))
        - 2 / (n - 1) * (4 * v.a2 - 6 + 8 / n)
    ) / (v.a1 ** 2 + v.a2)
    uFs = (
        n / (n - 1)
        + (n + 1) / (3 * (n - 1))
        - 4 / (n * (n - 1))
        + 2 * (n + 1) / (n - 1) ** 2 * (v.a1n - 2 * n / (n + 1))
    ) / v.a1 - vFs
    return _normalised(pi - (n - 1) / n * eta_s, uFs * eta + vFs * eta ** 2)


def mk_table(ingroup, outgroup, code=codons.STANDARD, *, freqmin=0.0) -> MKTable:
    """
    Returns the :class:`.MKTable` of the ingroup against the outgroup,
    computed over the codon sites that are resolved and free of stop codons
    in both alignments. Polymorphisms with a frequency below ``freqmin`` in
    the ingroup are ignored.
    """
    freqmin = core._parse_frequency(freqmin, "freqmin")
    sites = diversity.paired_codon_sites(ingroup, outgroup, code)
    ingroup_sites = [site_in for site_in, _ in sites]
    Pa = diversity._non_synonymous_substitutions(ingroup_sites, code, freqmin)
    Ps = diversity._synonymous_substitutions(ingroup_sites, code, freqmin)
    Ds, Da = diversity._fixed_differences(sites, code)
    table = MKTable(Pa=Pa, Ps=Ps, Da=Da, Ds=Ds)
    logger.debug("MK table over %d codon sites: %s", len(sites), table)
    return table


def neutrality_index(ingroup, outgroup, code=codons.STANDARD, *, freqmin=0.0):
    """
    Returns the neutrality index ``(Pa / Ps) / (Da / Ds)`` of Rand and Kann
    (1996), or -1 if ``Ps`` or ``Da`` is zero.
    """
    table = mk_table(ingroup, outgroup, code, freqmin=freqmin)
    if table.Ps == 0 or table.Da == 0:
        return -1
    return (table.Pa * table.Ds) / (table.Ps * table.Da)
