"""Visit lifecycle orchestration — commands, queries and pagination."""

from fieldvisits.visits.queries import Page
from fieldvisits.visits.service import VisitService, visit_service

__all__ = ["Page", "VisitService", "visit_service"]
