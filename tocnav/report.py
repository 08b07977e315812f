"""Console output for notices, navigation results and traces."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console

if TYPE_CHECKING:  # pragma: no cover
    from .navigator import NavigationResult

console = Console()


def format_duration(seconds: float) -> str:
    """Format a short duration for traces.

    Examples
    --------
    >>> format_duration(0.0042)
    '4ms'
    >>> format_duration(1.5)
    '1.5s'
    """
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    return f"{seconds:.1f}s"


def show_notice(message: str) -> None:
    """Show a user-visible navigation notice."""

    console.print(f"[yellow]{message}[/]", highlight=False)


def print_result(result: "NavigationResult") -> None:
    if not result.succeeded:
        status = "aborted" if result.aborted else "failed"
        console.print(f'[red]✗[/] Navigation to "{result.label}" {status}', highlight=False)
        return

    page = f" on page {result.target_page + 1}" if result.target_page is not None else ""
    section = f" [dim](section: {result.section})[/]" if result.section else ""
    retried = " [dim]after loading more content[/]" if result.retried else ""
    console.print(
        f'[green]✓[/] Jumped to "{result.target_text}"{page}{retried}{section}',
        highlight=False,
    )


def print_trace(result: "NavigationResult") -> None:
    """Print every visited state with the time elapsed since the request began."""

    if not result.transitions:
        return
    start = result.transitions[0][1]
    for state, at in result.transitions:
        console.print(f"  [dim]{format_duration(at - start):>6}[/] {state.value}")
