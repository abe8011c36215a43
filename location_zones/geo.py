import logging
from decimal import Decimal
from math import isnan
from typing import Optional, Tuple

import pgeocode
from django_countries import countries

logger = logging.getLogger(__name__)

_nom_cache = {}


def _normalize_country(country) -> str:
    if not country:
        return 'IN'
    code = getattr(country, 'code', None)
    if code:
        return code.upper()
    country_str = str(country).strip()
    if len(country_str) == 2:
        return country_str.upper()
    try:
        # django-countries raises KeyError if name not found
        mapped = countries.by_name(country_str)
        if mapped:
            return mapped.upper()
    except KeyError:
        pass
    return country_str[:2].upper()


def _get_nominatim(country_code: str) -> Optional[pgeocode.Nominatim]:
    if not country_code:
        return None
    country_code = country_code.upper()
    if country_code not in _nom_cache:
        try:
            _nom_cache[country_code] = pgeocode.Nominatim(country_code)
        except Exception as exc:
            logger.warning("Unable to load postal geocoder for %s: %s", country_code, exc)
            _nom_cache[country_code] = None
    return _nom_cache.get(country_code)


def _valid(value) -> bool:
    if value is None:
        return False
    try:
        return not isnan(float(value))
    except (TypeError, ValueError):
        return False


def geocode_pincode(pincode: str, country='IN') -> Optional[Tuple[Decimal, Decimal]]:
    """Look up the centroid of a pincode. Returns ``(lat, lng)`` or None."""
    if not pincode:
        return None
    country_code = _normalize_country(country)
    nominatim = _get_nominatim(country_code)
    if not nominatim:
        return None

    try:
        record = nominatim.query_postal_code(str(pincode).strip())
    except Exception as exc:
        logger.warning("Postal geocode lookup failed for %s %s: %s", country_code, pincode, exc)
        return None

    if record is None:
        return None
    lat = getattr(record, 'latitude', None)
    lon = getattr(record, 'longitude', None)
    if not (_valid(lat) and _valid(lon)):
        return None
    return Decimal(str(round(float(lat), 6))), Decimal(str(round(float(lon), 6)))


def ensure_zone_coordinates(zone):
    """Fill a zone's centre from its first geocodable pincode when none was given."""
    if zone.has_coordinates:
        return zone
    for pincode in zone.pincode_list:
        coords = geocode_pincode(pincode, zone.country)
        if coords:
            zone.latitude, zone.longitude = coords
            zone.save(update_fields=['latitude', 'longitude', 'updated_at'])
            logger.info(f"Geocoded zone {zone.id} from pincode {pincode}")
            break
    return zone
