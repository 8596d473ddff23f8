"""Saved list views."""

from mono_core.saved_searches.service import (
    SavedSearch,
    SavedSearchList,
    SavedSearchPage,
    SavedSearchService,
    ViewState,
    resolve_inheritance,
)

__all__ = [
    "SavedSearch",
    "SavedSearchList",
    "SavedSearchPage",
    "SavedSearchService",
    "ViewState",
    "resolve_inheritance",
]
