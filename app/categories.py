"""Remote category lists mirrored into the local catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


CategoryFlag = Literal["popular", "toprated"]


@dataclass(frozen=True)
class CategoryDefinition:
    """Describes a discovery list and the movie flag it sets."""

    key: str
    flag: CategoryFlag


CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(key="popular", flag="popular"),
    CategoryDefinition(key="top_rated", flag="toprated"),
)

CATEGORY_MAP: dict[str, CategoryDefinition] = {
    definition.key: definition for definition in CATEGORIES
}


def normalize_category(value: str) -> str:
    """Return the canonical key for user supplied category names."""

    slug = value.strip().lower().replace("-", "_").replace(" ", "_")
    slug = "_".join(part for part in slug.split("_") if part)
    if slug == "toprated":
        slug = "top_rated"
    return slug


def get_category(key: str) -> CategoryDefinition:
    """Return the category definition or raise ``ValueError``."""

    definition = CATEGORY_MAP.get(normalize_category(key))
    if definition is None:
        raise ValueError(f"Unknown catalog category: {key}")
    return definition
