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
Configuration and fixtures for pytest. Only put test-suite wide fixtures in here. Module
specific fixtures should live in their modules.

To use a fixture in a test simply refer to it by name as an argument. Note that all
fixtures should have the suffix "_fixture" to make it clear in test code.

For example to use the `two_group_alignment_fixture` fixture in a test:

class Something:
    def test_something(self, two_group_alignment_fixture):
        polystat.watterson75(two_group_alignment_fixture)
"""
import pytest

import polystat


def pytest_addoption(parser):
    """
    Add an option to skip tests marked with `@pytest.mark.slow`
    """
    parser.addoption(
        "--skip-slow", action="store_true", default=False, help="Skip slow tests"
    )


def pytest_configure(config):
    """
    Add docs on the "slow" marker
    """
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--skip-slow"):
        skip_slow = pytest.mark.skip(reason="--skip-slow specified")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture
def two_group_alignment_fixture():
    return polystat.SequenceAlignment(
        ["ACGTA", "ACGTT", "AGGTA", "TCG-A", "ACNTA"],
        names=["a", "b", "c", "d", "e"],
        groups=[0, 0, 0, 1, 1],
        group_names={0: "north"},
    )


@pytest.fixture
def diploid_collection_fixture():
    collection = polystat.GenotypeCollection(3)
    collection.add_group(2, "south")
    collection.add_record([(0, 1), (0, 0), None], group=0)
    collection.add_record([(1, 1), 2, (1, 2)], group=0)
    collection.add_record([(0, 0), (0, 1), (2, 2)], group=1)
    collection.add_record([None, (1, 1), 0], group=1)
    collection.add_record([(1, 0), 1, (0, 1)], group=2)
    collection.add_record([(1, 1), (2, 0), (0, 0)], group=2)
    collection.add_record([0, (0, 2), (1, 1)], group=3)
    return collection
