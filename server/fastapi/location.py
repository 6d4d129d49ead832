"""
Location resolution

Works out which point on the map a chat turn is about. In priority order:
  1. the location sent explicitly with the request,
  2. the most recent message carrying a location, either as a structured
     `location` field or as a text annotation appended by the UI:
         Location: Paris, France (48.8566, 2.3522)
         📍 Paris, France (48.8566,2.3522)
  3. DEFAULT_LOCATION.
"""

import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from config import DEFAULT_LOCATION
from models import Location, RequestLocation

logger = logging.getLogger(__name__)

_NUMBER = r"([^,)]+)"

# Markdown bold around the label is allowed, as in the tool footer "📍 **Location:** ..."
_LABEL = r"Location:\**\s*"

# Name without commas, e.g. "Location: Bengaluru (12.97, 77.59)"
_SIMPLE_ANNOTATION = re.compile(_LABEL + r"([^,\n(]+?)\s*\(" + _NUMBER + r",\s*" + r"([^)]+)\)")
# Name with commas, e.g. "Location: Paris, France (48.85,2.35)"
_ANNOTATION = re.compile(_LABEL + r"([^(\n]+?)\s*\(" + _NUMBER + r",\s*" + r"([^)]+)\)")
_PIN_ANNOTATION = re.compile(r"📍\s*([^(\n]+?)\s*\(" + _NUMBER + r",\s*" + r"([^)]+)\)")

Matcher = Callable[[str], Location | None]


def _build_location(name: str, lat_text: str, lon_text: str) -> Location | None:
    """Turn matched text into a Location, or None if any part is unusable."""
    name = name.strip().strip("*").strip()
    if not name:
        return None
    try:
        return Location(name=name, latitude=float(lat_text), longitude=float(lon_text))
    except (ValueError, ValidationError):
        # Covers unparseable numbers, NaN/inf and out-of-range coordinates
        logger.debug("Rejected location annotation %r (%r, %r)", name, lat_text, lon_text)
        return None


def _regex_matcher(pattern: re.Pattern) -> Matcher:
    def match(text: str) -> Location | None:
        # A malformed annotation does not hide a valid one later in the text
        for found in pattern.finditer(text):
            location = _build_location(*found.groups())
            if location is not None:
                return location
        return None

    return match


match_simple_annotation = _regex_matcher(_SIMPLE_ANNOTATION)
match_annotation = _regex_matcher(_ANNOTATION)
match_pin_annotation = _regex_matcher(_PIN_ANNOTATION)

# Tried in order against each message, first hit wins
TEXT_MATCHERS: tuple[Matcher, ...] = (
    match_simple_annotation,
    match_annotation,
    match_pin_annotation,
)


def location_from_request(location: RequestLocation | Location | dict | None) -> Location | None:
    """Validate a structured location, returning None if it is missing or malformed."""
    if location is None:
        return None
    if isinstance(location, Location):
        return location
    if isinstance(location, dict):
        try:
            location = RequestLocation.model_validate(location)
        except ValidationError:
            return None
    if location.latitude is None or location.longitude is None:
        return None
    try:
        return Location(
            name=(location.location_name or "").strip() or "Selected location",
            latitude=location.latitude,
            longitude=location.longitude,
        )
    except ValidationError:
        return None


def _message_parts(message: Any) -> tuple[str, Any]:
    if isinstance(message, dict):
        return message.get("content") or "", message.get("location")
    return getattr(message, "content", "") or "", getattr(message, "location", None)


def location_from_text(text: str) -> Location | None:
    for matcher in TEXT_MATCHERS:
        location = matcher(text)
        if location is not None:
            return location
    return None


def location_from_message(message: Any) -> Location | None:
    content, structured = _message_parts(message)
    location = location_from_request(structured)
    if location is not None:
        return location
    if not isinstance(content, str):
        return None
    return location_from_text(content)


def resolve_location(
    explicit_location: RequestLocation | Location | dict | None,
    messages: Sequence[Any],
) -> Location:
    """Pick the location for this turn. Never returns a partial location."""
    location = location_from_request(explicit_location)
    if location is not None:
        logger.info("Using request location: %s", location.name)
        return location

    for message in reversed(messages):
        location = location_from_message(message)
        if location is not None:
            logger.info("Found location in conversation: %s (%s, %s)", location.name, location.latitude, location.longitude)
            return location

    logger.info("No location found, using default: %s", DEFAULT_LOCATION.name)
    return DEFAULT_LOCATION


def format_location_annotation(location: Location) -> str:
    """Render the annotation the UI appends to outgoing messages."""
    return f"Location: {location.name} ({location.latitude}, {location.longitude})"
