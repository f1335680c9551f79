"""Great-circle distance and bounding-box helpers for free-agent discovery."""

from __future__ import annotations

import math
from typing import NamedTuple

from roster.teams.domain.exceptions import ValidationError

EARTH_RADIUS_KM = 6371.0


class Coordinates(NamedTuple):
	latitude: float
	longitude: float

	@classmethod
	def checked(cls, latitude: float, longitude: float) -> "Coordinates":
		"""Build coordinates from user input, rejecting out-of-range values."""
		if math.isnan(latitude) or not -90.0 <= latitude <= 90.0:
			raise ValidationError("invalid_latitude")
		if math.isnan(longitude) or not -180.0 <= longitude <= 180.0:
			raise ValidationError("invalid_longitude")
		return cls(float(latitude), float(longitude))

	@classmethod
	def maybe(cls, latitude: float | None, longitude: float | None) -> "Coordinates | None":
		if latitude is None or longitude is None:
			return None
		return cls(latitude, longitude)


class BoundingBox(NamedTuple):
	lat_min: float
	lat_max: float
	lon_min: float
	lon_max: float

	def contains(self, point: Coordinates) -> bool:
		return (
			self.lat_min <= point.latitude <= self.lat_max
			and self.lon_min <= point.longitude <= self.lon_max
		)


def distance_km(a: Coordinates, b: Coordinates) -> float:
	"""Return the haversine distance between two points in kilometres.

	NaN components propagate to a NaN result; callers guard missing coordinates.
	"""
	phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
	dphi = math.radians(b.latitude - a.latitude)
	dlambda = math.radians(b.longitude - a.longitude)
	h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
	# float error near antipodes can push h past 1
	if h > 1.0:
		h = 1.0
	return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def bounding_box(origin: Coordinates, delta_degrees: float) -> BoundingBox:
	"""Axis-aligned pre-filter box of +/- ``delta_degrees`` around ``origin``.

	The box is not clamped at the poles or the antimeridian; it is only a
	cheap approximation ahead of the exact distance check.
	"""
	return BoundingBox(
		lat_min=origin.latitude - delta_degrees,
		lat_max=origin.latitude + delta_degrees,
		lon_min=origin.longitude - delta_degrees,
		lon_max=origin.longitude + delta_degrees,
	)


__all__ = ["BoundingBox", "Coordinates", "EARTH_RADIUS_KM", "bounding_box", "distance_km"]
