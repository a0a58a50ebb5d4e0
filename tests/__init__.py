"""
pydistcheck Test Suite
======================

Unit tests for the fixture loader, tolerance model, scenario generation,
checks and runner, plus integration tests that run the full battery
against scipy.stats distributions using the fixtures in resources/.

Run tests:
    python -m pytest tests/ -v
"""
