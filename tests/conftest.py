"""
pytest configuration and fixtures for the SenML codec tests.

Provides reusable fixtures for:
- Sample packs (RFC 8428 examples)
- Hypothesis property-based testing configuration
"""

import os
import sys
from pathlib import Path

import pytest

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

from senml_model import Pack, Record

# Configure Hypothesis profiles
from hypothesis import settings, Verbosity, Phase

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    suppress_health_check=[],
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def sensor_pack():
    """Two readings sharing a base name and base time (RFC 8428 Section 5.1.2)."""
    return Pack(records=[
        Record(base_name='urn:dev:ow:10e2073a01080063:', base_time=1.276020076001e9,
               base_unit='A', base_version=5, name='voltage', unit='V', value=120.1),
        Record(name='current', time=-5, value=1.2),
        Record(name='current', time=-4, value=1.3),
    ])


@pytest.fixture
def mixed_pack():
    """One record of every value kind."""
    return Pack(records=[
        Record(base_name='dev1/', name='temp', unit='Cel', value=20.6),
        Record(name='label', string_value='kitchen'),
        Record(name='blob', data_value='aGVsbG8'),
        Record(name='door', bool_value=False),
        Record(name='pos', coord_value=[47.1, 8.5, 410.0]),
        Record(name='count', long_value=-42),
        Record(name='energy', unit='J', sum=1500.5, link='http://example.com/meter'),
    ])


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "compliance: marks tests as RFC 8428 compliance tests"
    )
