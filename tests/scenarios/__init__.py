"""Scenario tests for ramen-harness.

These tests exercise the pytest plugin end to end: real workspaces, real
shell commands and real background processes. POSIX only.
"""
