"""Shared fixtures for the normalizer tests."""

import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from formats.builtin_formats import default_config
from pipeline import NormalizationPipeline


@pytest.fixture
def config():
    return default_config()


@pytest.fixture
def pipeline(config):
    return NormalizationPipeline(config)


@pytest.fixture
def sample_groups():
    return {
        'comma': [  # Fields: first name, city name, birth date
            'Mckayla, Atlanta, 5/29/1986',
            'Elliot, New York City, 4/3/1947',
        ],
        'dollar': [  # Fields: city abbreviation, birth date, last name, first name
            'LA $ 10-4-1974 $ Nolan $ Rhiannon',
            'NYC $ 12-1-1962 $ Bruen $ Rigoberto',
        ],
    }


@pytest.fixture
def expected_output():
    return [
        'Mckayla Atlanta 5/29/1986',
        'Elliot New York City 4/3/1947',
        'Rhiannon Los Angeles 10/4/1974',
        'Rigoberto New York City 12/1/1962',
    ]
