"""Test utilities for the Flow Mapper test suite."""
