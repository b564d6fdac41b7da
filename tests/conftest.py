"""Shared pytest setup for the flowmatch test suite.

Graph fixtures live in `tests/algorithms/sample_graphs.py` and are loaded as a
plugin, so pytest rewrites their asserts and every test directory can use
them.
"""

pytest_plugins = ["tests.algorithms.sample_graphs"]
