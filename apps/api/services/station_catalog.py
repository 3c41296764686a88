"""
Station Catalog

The eight official Hyrox stations and their prescriptions per fitness level.
Distances are identical across levels; weights follow the official
divisions. These values are never scaled by mood or intensity - a workout
varies its volume (how many stations), not the work at each station.

The catalog is validated at import time. A missing entry is a deployment
bug, so we refuse to start rather than generate a partial workout.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional


class CatalogConfigurationError(RuntimeError):
    """Raised at import when the catalog is incomplete."""


class FitnessLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class StationName(str, Enum):
    """Canonical station names, declared in race order."""
    SKIERG = "SkiErg"
    SLED_PUSH = "Sled Push"
    SLED_PULL = "Sled Pull"
    BURPEE_BROAD_JUMPS = "Burpee Broad Jumps"
    ROWING = "Rowing"
    FARMERS_CARRY = "Farmers Carry"
    SANDBAG_LUNGES = "Sandbag Lunges"
    WALL_BALLS = "Wall Balls"


# Race order, 1-based. Enum iteration order is declaration order.
STATION_ORDER: Dict[StationName, int] = {
    station: index for index, station in enumerate(StationName, start=1)
}


@dataclass(frozen=True)
class Prescription:
    distance: Optional[str] = None
    weight: Optional[str] = None
    reps: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in (("distance", self.distance), ("weight", self.weight), ("reps", self.reps)) if v}


STATION_CATALOG: Dict[FitnessLevel, Dict[StationName, Prescription]] = {
    FitnessLevel.BEGINNER: {
        StationName.SKIERG: Prescription(distance="1000m"),
        StationName.SLED_PUSH: Prescription(distance="50m", weight="50kg"),
        StationName.SLED_PULL: Prescription(distance="50m", weight="70kg"),
        StationName.BURPEE_BROAD_JUMPS: Prescription(distance="80m"),
        StationName.ROWING: Prescription(distance="1000m"),
        StationName.FARMERS_CARRY: Prescription(distance="200m", weight="2x16kg"),
        StationName.SANDBAG_LUNGES: Prescription(distance="100m", weight="20kg"),
        StationName.WALL_BALLS: Prescription(reps="100", weight="4kg"),
    },
    FitnessLevel.INTERMEDIATE: {
        StationName.SKIERG: Prescription(distance="1000m"),
        StationName.SLED_PUSH: Prescription(distance="50m", weight="102kg"),
        StationName.SLED_PULL: Prescription(distance="50m", weight="78kg"),
        StationName.BURPEE_BROAD_JUMPS: Prescription(distance="80m"),
        StationName.ROWING: Prescription(distance="1000m"),
        StationName.FARMERS_CARRY: Prescription(distance="200m", weight="2x24kg"),
        StationName.SANDBAG_LUNGES: Prescription(distance="100m", weight="20kg"),
        StationName.WALL_BALLS: Prescription(reps="100", weight="6kg"),
    },
    FitnessLevel.ADVANCED: {
        StationName.SKIERG: Prescription(distance="1000m"),
        StationName.SLED_PUSH: Prescription(distance="50m", weight="152kg"),
        StationName.SLED_PULL: Prescription(distance="50m", weight="103kg"),
        StationName.BURPEE_BROAD_JUMPS: Prescription(distance="80m"),
        StationName.ROWING: Prescription(distance="1000m"),
        StationName.FARMERS_CARRY: Prescription(distance="200m", weight="2x32kg"),
        StationName.SANDBAG_LUNGES: Prescription(distance="100m", weight="30kg"),
        StationName.WALL_BALLS: Prescription(reps="100", weight="9kg"),
    },
}

STATION_DESCRIPTIONS: Dict[StationName, str] = {
    StationName.SKIERG: "Full-body cardio on the ski ergometer",
    StationName.SLED_PUSH: "Push weighted sled across the floor",
    StationName.SLED_PULL: "Pull weighted sled back across the floor",
    StationName.BURPEE_BROAD_JUMPS: "Burpee followed by a broad jump forward",
    StationName.ROWING: "1000m on the rowing machine",
    StationName.FARMERS_CARRY: "Carry kettlebells in each hand",
    StationName.SANDBAG_LUNGES: "Walking lunges with sandbag on shoulders",
    StationName.WALL_BALLS: "Squat and throw medicine ball to target",
}


def validate_catalog(catalog: Dict[FitnessLevel, Dict[StationName, Prescription]]) -> None:
    """Every fitness level must prescribe every station."""
    for level in FitnessLevel:
        entries = catalog.get(level)
        if entries is None:
            raise CatalogConfigurationError(f"Station catalog has no entries for level '{level.value}'")
        missing = [s.value for s in StationName if s not in entries]
        if missing:
            raise CatalogConfigurationError(
                f"Station catalog for '{level.value}' is missing: {', '.join(missing)}"
            )


def get_prescription(fitness_level: FitnessLevel, station: StationName) -> Prescription:
    return STATION_CATALOG[FitnessLevel(fitness_level)][StationName(station)]


def station_description(name: str) -> str:
    """Short description for display; unknown names get a generic line."""
    try:
        return STATION_DESCRIPTIONS[StationName(name)]
    except ValueError:
        return "Complete the prescribed distance or reps"


validate_catalog(STATION_CATALOG)
