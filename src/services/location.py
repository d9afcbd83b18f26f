from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

from utils.config import Settings, settings
from utils.errors import ServiceError
from utils.logger import get_logger
from utils.pure import format_address

_logger = get_logger(__name__)

AddressComponents = Dict[str, Optional[str]]


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


class LocationService(Protocol):
    async def request_permission(self) -> bool: ...

    async def get_current_position(self) -> Coordinates: ...

    async def reverse_geocode(self, coords: Coordinates) -> List[AddressComponents]: ...


class UnavailableLocationService:
    """No positioning hardware: permission is always denied."""

    async def request_permission(self) -> bool:
        return False

    async def get_current_position(self) -> Coordinates:
        raise ServiceError("Location is not available on this device.")

    async def reverse_geocode(self, coords: Coordinates) -> List[AddressComponents]:
        raise ServiceError("Location is not available on this device.")


class FixedLocationService:
    """Reports a configured position and address."""

    def __init__(self, coords: Coordinates, components: AddressComponents) -> None:
        self._coords = coords
        self._components = components

    async def request_permission(self) -> bool:
        return True

    async def get_current_position(self) -> Coordinates:
        return self._coords

    async def reverse_geocode(self, coords: Coordinates) -> List[AddressComponents]:
        return [dict(self._components)]


def location_service_from_settings(cfg: Settings = settings) -> LocationService:
    """
    STOREFRONT_LOCATION="lat,lng;Street, City, PIN, Country" gives a fixed
    location, anything else none.
    """
    if not cfg.location:
        return UnavailableLocationService()
    try:
        coords_part, _, address = cfg.location.partition(";")
        lat, lng = (float(v) for v in coords_part.split(","))
    except ValueError:
        _logger.error(f"Ignoring malformed STOREFRONT_LOCATION {cfg.location!r}")
        return UnavailableLocationService()
    return FixedLocationService(Coordinates(lat, lng), {"street": address.strip()})


async def lookup_address(service: LocationService) -> Optional[str]:
    """
    Current address as one line. None when permission was denied, "" when the
    position could not be turned into an address.
    """
    if not await service.request_permission():
        _logger.info("Location permission denied")
        return None
    coords = await service.get_current_position()
    results = await service.reverse_geocode(coords)
    if not results:
        return ""
    return format_address(results[0])
