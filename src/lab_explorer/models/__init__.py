"""Domain records for the lab explorer."""

from .records import (
    Researcher,
    Project,
    Publication,
    PersonDetail,
    ProjectDetail,
    split_names,
)

__all__ = [
    "Researcher",
    "Project",
    "Publication",
    "PersonDetail",
    "ProjectDetail",
    "split_names",
]
