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
Shared helpers: default seeding of permutations, argument checks and plain
text tables.
"""
from __future__ import annotations

import numbers
import os
from typing import Any
from typing import Dict
from typing import List
from typing import Union

import numpy as np

__version__ = "0.1.0"


# Unseeded permutations draw their seeds from a generator owned by the
# current process. The table is keyed by PID because forked workers inherit
# the parent's module state and would otherwise replay its seed sequence.

_default_seed_generators: Dict[int, np.random.Generator] = {}


def _default_seed_generator() -> np.random.Generator:
    pid = os.getpid()
    if pid not in _default_seed_generators:
        # Seeded from fresh OS entropy.
        _default_seed_generators[pid] = np.random.default_rng()
    return _default_seed_generators[pid]


def get_random_seed() -> int:
    """
    Returns a seed drawn from the default seed generator of this process.
    """
    return int(_default_seed_generator().integers(1, 2 ** 32))


def reset_random_seeds(seed: Union[int, None] = None):
    """
    Restarts the default seed generator of this process from ``seed``, so
    that unseeded permutations become reproducible. With None, the generator
    is restarted from fresh entropy.
    """
    _default_seed_generators[os.getpid()] = np.random.default_rng(seed)


def get_rng(random_seed=None, rng=None) -> np.random.Generator:
    """
    Returns the generator used as the uniform shuffle primitive. An
    explicitly injected ``rng`` takes precedence; otherwise a new generator
    is seeded from ``random_seed`` or, if that is None, from the default
    per-process seed generator.
    """
    if rng is not None:
        if random_seed is not None:
            raise ValueError("Cannot specify both random_seed and rng")
        if not isinstance(rng, np.random.Generator):
            raise TypeError("rng must be a numpy.random.Generator instance")
        return rng
    if random_seed is None:
        random_seed = get_random_seed()
    if not isinteger(random_seed):
        raise TypeError("random_seed must be an integer")
    return np.random.default_rng(int(random_seed))


def isinteger(value: Any) -> bool:
    """
    Returns True for Python or numpy numbers without a fractional part.
    """
    if not isinstance(value, numbers.Real):
        return False
    return float(value).is_integer()


def _parse_flag(value: Any, *, default: bool) -> bool:
    # Only real booleans are flags; 0, [] or "False" are rejected rather
    # than read by truthiness.
    if value is None:
        return default
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    raise TypeError("Boolean flag must be True, False or None")


def _parse_frequency(value: Any, name: str) -> float:
    value = float(value)
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1; got {value}")
    return value


def text_table(
    caption: str, titles: List[str], alignments: str, rows: List[List[str]]
) -> str:
    """
    Formats ``rows`` of strings under a header of column ``titles`` as a
    box-drawn table preceded by ``caption``. Each character of
    ``alignments`` is the format alignment (``<``, ``>`` or ``^``) of the
    matching column.
    """
    num_columns = len(titles)
    if len(alignments) != num_columns:
        raise ValueError("Need one alignment per column")
    if any(len(row) != num_columns for row in rows):
        raise ValueError("Every row needs one cell per column")
    widths = [max(len(cell) for cell in column) for column in zip(titles, *rows)]
    rule = "─" * (sum(widths) + 3 * num_columns - 1)

    def line(cells):
        padded = (
            f" {cell:{align}{width}} "
            for cell, align, width in zip(cells, alignments, widths)
        )
        return "│" + "│".join(padded) + "│"

    lines = [caption, f"┌{rule}┐", line(titles), f"├{rule}┤"]
    lines.extend(line(row) for row in rows)
    lines.append(f"└{rule}┘")
    return "\n".join(lines) + "\n"
