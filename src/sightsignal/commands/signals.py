"""
Signal Commands

Evaluate sightings, rank signals and measure polygons against a YAML
dataset.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..core.errors import DatasetError
from ..core.logging import get_logger
from ..core.result import DomainError
from ..models import LatLng, MembershipTier, Polygon, SightingId, SignalFilters, UserId
from ..models.base import utc_now
from ..repositories import InMemoryStore
from ..services.evaluator import SignalEvaluator
from ..services.geo import validate_polygon
from ..services.membership import validate_geofence_limits
from ..services.ranking import RankingEngine

logger = get_logger(__name__)


def get_utc_timestamp() -> str:
    return utc_now().isoformat(timespec="seconds")


def load_dataset(path: str | Path) -> InMemoryStore:
    """
    Load a YAML (or JSON) dataset into a fresh in-memory store.

    Raises:
        DatasetError: If the file is unreadable, not a mapping, or an entity
            fails validation
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise DatasetError(str(path), e.strerror or str(e)) from e
    except yaml.YAMLError as e:
        raise DatasetError(str(path), f"invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise DatasetError(str(path), "top level must be a mapping")

    try:
        store = InMemoryStore.from_dict(data)
    except ValidationError as e:
        raise DatasetError(str(path), f"{e.error_count()} validation error(s): {e}") from e

    logger.debug(
        "Loaded dataset %s: %d signals, %d sightings, %d users",
        path,
        len(store.signals),
        len(store.sightings),
        len(store.users),
    )
    return store


def _domain_error(error: DomainError) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error": error.code,
        "message": error.message,
        "query_timestamp": get_utc_timestamp(),
    }
    if error.field:
        payload["field"] = error.field
    if error.details:
        payload["details"] = error.details
    return payload


def parse_point(text: str) -> LatLng:
    """Parse 'LAT,LNG' into a LatLng."""
    try:
        lat_text, lng_text = text.split(",")
        return LatLng(lat=float(lat_text), lng=float(lng_text))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected LAT,LNG but got {text!r}") from e


# =============================================================================
# Command Handlers
# =============================================================================


def cmd_evaluate(args: argparse.Namespace) -> dict[str, Any]:
    """
    Find the active signals matching one sighting.

    Args:
        args: Parsed arguments with data, sighting

    Returns:
        Matched signals, or an error payload
    """
    try:
        store = load_dataset(args.data)
    except DatasetError as e:
        return e.to_dict()

    repos = store.repositories()
    evaluator = SignalEvaluator(
        repos.signals,
        repos.sightings,
        repos.geofences,
        repos.reputations,
    )
    result = asyncio.run(evaluator.evaluate(SightingId(args.sighting)))
    if not result.ok:
        return _domain_error(result.error)

    return {
        "query_timestamp": get_utc_timestamp(),
        "sighting_id": args.sighting,
        "match_count": len(result.value),
        "matches": [s.model_dump(mode="json") for s in result.value],
    }


def cmd_rank(args: argparse.Namespace) -> dict[str, Any]:
    """
    Rank the signals visible to a user.

    Args:
        args: Parsed arguments with data, user, lat, lng, include_hidden, active_only

    Returns:
        Ranked signals (pinned first), or an error payload
    """
    if (args.lat is None) != (args.lng is None):
        return {
            "error": "invalid_arguments",
            "message": "--lat and --lng must be given together",
            "query_timestamp": get_utc_timestamp(),
        }

    try:
        store = load_dataset(args.data)
    except DatasetError as e:
        return e.to_dict()

    location = None
    if args.lat is not None:
        location = LatLng(lat=args.lat, lng=args.lng)

    filters = SignalFilters(is_active=True) if args.active_only else None

    repos = store.repositories()
    engine = RankingEngine(
        repos.signals,
        repos.users,
        repos.privacy_settings,
        repos.category_interactions,
        repos.signal_preferences,
        repos.snapshots,
        repos.geofences,
    )
    result = asyncio.run(
        engine.rank(
            UserId(args.user),
            user_location=location,
            include_hidden=args.include_hidden,
            filters=filters,
        )
    )
    if not result.ok:
        return _domain_error(result.error)

    return {
        "query_timestamp": get_utc_timestamp(),
        "user_id": args.user,
        "signal_count": len(result.value),
        "signals": [
            {
                "id": s.id,
                "name": s.name,
                "classification": s.classification.value,
                "rank_score": s.rank_score,
                "distance_km": s.distance_km,
                "is_viral_boosted": s.is_viral_boosted,
                "category_boost": s.category_boost,
            }
            for s in result.value
        ],
    }


def cmd_area(args: argparse.Namespace) -> dict[str, Any]:
    """
    Measure a polygon and check it against a membership tier.

    Args:
        args: Parsed arguments with points (list of LatLng) and tier

    Returns:
        Area report with any quota failures
    """
    polygon = Polygon(points=tuple(args.points))
    valid = validate_polygon(polygon)
    if not valid.ok:
        return _domain_error(valid.error)

    report = validate_geofence_limits(polygon, MembershipTier(args.tier))
    return {
        "query_timestamp": get_utc_timestamp(),
        **report.to_dict(),
    }


# =============================================================================
# Parser Registration
# =============================================================================


def register_parsers(subparsers: argparse._SubParsersAction) -> None:
    """Register signal command parsers."""

    # Evaluate command
    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Find signals matching a sighting"
    )
    evaluate_parser.add_argument("--data", required=True, help="YAML or JSON dataset file")
    evaluate_parser.add_argument("--sighting", required=True, help="Sighting ID")
    evaluate_parser.set_defaults(func=cmd_evaluate)

    # Rank command
    rank_parser = subparsers.add_parser("rank", help="Rank signals for a user")
    rank_parser.add_argument("--data", required=True, help="YAML or JSON dataset file")
    rank_parser.add_argument("--user", required=True, help="User ID")
    rank_parser.add_argument("--lat", type=float, help="User latitude")
    rank_parser.add_argument("--lng", type=float, help="User longitude")
    rank_parser.add_argument(
        "--include-hidden",
        action="store_true",
        help="Include signals the user has hidden",
    )
    rank_parser.add_argument(
        "--active-only",
        action="store_true",
        help="Only rank active signals",
    )
    rank_parser.set_defaults(func=cmd_rank)

    # Area command
    area_parser = subparsers.add_parser(
        "area", help="Polygon area and membership quota check"
    )
    area_parser.add_argument(
        "points",
        nargs="+",
        type=parse_point,
        metavar="LAT,LNG",
        help="Polygon vertices (at least 3)",
    )
    area_parser.add_argument(
        "--tier",
        choices=[t.value for t in MembershipTier],
        default=MembershipTier.FREE.value,
        help="Membership tier (default: free)",
    )
    area_parser.set_defaults(func=cmd_area)
