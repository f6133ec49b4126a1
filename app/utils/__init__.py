"""Utility functions for the backend."""

from app.utils.normalizers import normalize_place_details
from app.utils.search import filter_profiles, rank_places

__all__ = ["normalize_place_details", "filter_profiles", "rank_places"]
