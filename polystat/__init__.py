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
Polystat computes population genetics summary statistics on aligned
sequences and genotypes partitioned into groups, and permutes these data
to build null distributions for the statistics.
"""

from polystat.core import __version__

from polystat.exceptions import (
    BadIdentifierError,
    DimensionError,
    GroupNotFoundError,
    PolystatException,
)

from polystat.genotypes import (
    Diploid,
    Genotype,
    GenotypeCollection,
    Haploid,
    Missing,
    MISSING,
    Record,
    genotype,
)

from polystat.alignment import DNA, GAP, UNKNOWN, SequenceAlignment

from polystat.permutations import (
    extract_groups,
    permute_alleles,
    permute_alleles_within_groups,
    permute_genotypes,
    permute_genotypes_within_groups,
    permute_labels,
)

from polystat.codons import GeneticCode, STANDARD, VERTEBRATE_MITOCHONDRIAL

from polystat.diversity import (
    UsefulValues,
    count_singletons,
    external_branch_mutations,
    fixed_differences,
    gc_content,
    gc_polymorphism,
    haplotype_diversity,
    haplotype_number,
    heterozygosity,
    mean_non_synonymous_sites_number,
    mean_synonymous_sites_number,
    mono_site_polymorphic_codon_number,
    non_synonymous_substitutions_number,
    num_transitions,
    num_transversions,
    parsimony_informative_site_number,
    pi_non_synonymous,
    pi_synonymous,
    polymorphic_site_number,
    squared_heterozygosity,
    stop_codon_site_number,
    synonymous_polymorphic_codon_number,
    synonymous_substitutions_number,
    tajima83,
    total_mutations,
    transition_transversion_ratio,
    triplet_number,
    useful_values,
    watterson75,
    watterson75_non_synonymous,
    watterson75_synonymous,
)

from polystat.neutrality import (
    MKTable,
    fu_li_d,
    fu_li_d_star,
    fu_li_f,
    fu_li_f_star,
    mk_table,
    neutrality_index,
    tajima_d,
    tajima_d_total_mutations,
)

from polystat.ld import (
    LDView,
    hudson87,
    inverse_regression_r2,
    ld_view,
    left_hand_hudson,
    linear_regression_d,
    linear_regression_d_prime,
    linear_regression_r2,
    mean_d,
    mean_d_prime,
    mean_distance1,
    mean_distance2,
    mean_r2,
    origin_regression_d,
    origin_regression_d_prime,
    origin_regression_r2,
    pairwise_d,
    pairwise_d_prime,
    pairwise_distances1,
    pairwise_distances2,
    pairwise_r2,
    right_hand_hudson,
    solve_hudson,
)
