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
Exceptions defined in polystat.
"""


class PolystatException(Exception):
    """
    Superclass of all exceptions thrown.
    """


class DimensionError(PolystatException, ValueError):
    """
    There are too few sites, sequences or groups for the requested
    statistic, or the shapes of two inputs do not match.
    """

    def __init__(self, message, value=None, minimum=None):
        if value is not None and minimum is not None:
            message = f"{message} (got {value}, need at least {minimum})"
        super().__init__(message)
        self.value = value
        self.minimum = minimum


class GroupNotFoundError(PolystatException, KeyError):
    """
    A group id was not found in a collection.
    """

    def __init__(self, group_id, known_ids=()):
        known = ", ".join(str(g) for g in sorted(known_ids))
        super().__init__(f"Group {group_id} not found; known groups: [{known}]")
        self.group_id = group_id

    def __str__(self):
        # KeyError quotes its argument; we want the plain message.
        return self.args[0]


class BadIdentifierError(PolystatException, ValueError):
    """
    An identifier is already in use.
    """
