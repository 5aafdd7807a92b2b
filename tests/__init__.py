"""
Test package for Flow Mapper.

Run tests with:
    pytest tests/                    # All tests
    pytest tests/unit/               # Unit tests only
"""
