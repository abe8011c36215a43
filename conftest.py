import os
import pytest
from unittest.mock import patch
import django

# Configure Django settings before importing Django models
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tiffin_hub.test_settings')
django.setup()


@pytest.fixture(autouse=True)
def no_postal_geocoder():
    """
    Keep pgeocode from downloading GeoNames datasets during tests.
    Zones without stored coordinates simply stay un-geocoded.
    """
    with patch('location_zones.geo._get_nominatim', return_value=None) as mocked:
        yield mocked
