"""Domain layer definitions."""

from .census import CENSUS_ENTITY, CENSUS_LINE_ENTITY, Census, CensusLine, PendingCreate, UnitOfWork

__all__ = [
    "CENSUS_ENTITY",
    "CENSUS_LINE_ENTITY",
    "Census",
    "CensusLine",
    "PendingCreate",
    "UnitOfWork",
]
