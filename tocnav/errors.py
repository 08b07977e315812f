"""Failure conditions raised and recovered inside the navigation pipeline."""

from __future__ import annotations


class NavigationError(RuntimeError):
    """Base class for navigation failures."""


class NoMatchFound(NavigationError):
    """Raised when neither resolution nor its single retry finds the label."""

    def __init__(self, label: str) -> None:
        super().__init__(f'No matching content found for "{label}"')
        self.label = label


class SubTreeUnavailable(NavigationError):
    """Raised when no encapsulated content scope attaches in time."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"Encapsulated content scope did not attach after {attempts} attempts"
        )
        self.attempts = attempts


class ScrollTargetUnreachable(NavigationError):
    """Raised when the scrollable region cannot position a target."""
