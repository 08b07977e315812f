"""Command line interface for the toc-nav tool."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import requests
from rich.logging import RichHandler

from . import __version__
from .config import (
    DEFAULT_VIEWPORT_HEIGHT,
    DISCOVERY_ATTEMPTS,
    SETTLE_DELAY,
    VISIBILITY_MARGIN,
    NavigatorConfig,
)
from .navigator import NavigationContext, NavigationResult, page_index_of
from .pdf_view import PdfDocumentView
from .report import console, print_result, print_trace
from .resolver import DisambiguationPolicy
from .utils import download_to_temp, dump_json, ensure_file


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tocnav",
        description=(
            "Follow table-of-contents links in a PDF to the sections they name, "
            "through a virtualized document view."
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    parser._subparsers_action = subparsers  # type: ignore[attr-defined]

    help_parser = subparsers.add_parser(
        "help",
        help="Show help for the CLI or a specific command.",
    )
    help_parser.add_argument(
        "topic",
        type=str,
        nargs="?",
        default=None,
        help="Command name to show help for (e.g. 'jump').",
    )
    help_parser.set_defaults(func=_run_help)

    links_parser = subparsers.add_parser(
        "links",
        help="List the internal links of a PDF with their labels.",
    )
    _add_source_arguments(links_parser)
    links_parser.set_defaults(func=_run_links)

    sections_parser = subparsers.add_parser(
        "sections",
        help="List numbered section headings found in the rendered text.",
    )
    _add_source_arguments(sections_parser)
    sections_parser.set_defaults(func=_run_sections)

    jump_parser = subparsers.add_parser(
        "jump",
        help="Activate a TOC link (or a label) and scroll to the section it names.",
        description=(
            "Activate a TOC link (or a label) and scroll to the section it names. "
            "A label matching only once resolves to that single match, which is the "
            "TOC line itself when the target page is not rendered yet; use "
            "--headings-only to skip TOC lines."
        ),
    )
    _add_source_arguments(jump_parser)
    target = jump_parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--link",
        type=int,
        default=None,
        help="Index of the internal link to activate (see the 'links' command).",
    )
    target.add_argument(
        "--label",
        type=str,
        default=None,
        help="Raw link label to navigate to, e.g. 'Background ...... 2'.",
    )
    jump_parser.add_argument(
        "--policy",
        choices=[policy.value for policy in DisambiguationPolicy],
        default=DisambiguationPolicy.SECOND.value,
        help="Which of several matches to choose, ordered by position (default: second).",
    )
    jump_parser.add_argument(
        "--headings-only",
        action="store_true",
        help="Only consider numbered section headings as targets (skips the TOC line itself).",
    )
    jump_parser.add_argument(
        "--rank-partial",
        action="store_true",
        help="Rank partial-word matches by the number of shared words.",
    )
    jump_parser.add_argument(
        "--margin",
        type=float,
        default=VISIBILITY_MARGIN,
        help=f"Gap kept above the target after scrolling (default: {VISIBILITY_MARGIN:g}).",
    )
    jump_parser.add_argument(
        "--settle-delay",
        type=float,
        default=SETTLE_DELAY,
        help=f"Seconds to wait for forced content to render (default: {SETTLE_DELAY:g}).",
    )
    jump_parser.add_argument(
        "--discovery-attempts",
        type=int,
        default=DISCOVERY_ATTEMPTS,
        help=f"Polls for the encapsulated content scope (default: {DISCOVERY_ATTEMPTS}).",
    )
    jump_parser.add_argument(
        "--trace",
        action="store_true",
        help="Print the navigation state transitions with timings.",
    )
    jump_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write the navigation result as JSON to this path.",
    )
    jump_parser.set_defaults(func=_run_jump)

    return parser


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "pdf",
        type=Path,
        metavar="PDF",
        nargs="?",
        help="Path to the PDF file.",
    )
    parser.add_argument(
        "--remote-url",
        type=str,
        default=None,
        help="Remote PDF URL to download instead of a local path.",
    )
    parser.add_argument(
        "--viewport-height",
        type=float,
        default=DEFAULT_VIEWPORT_HEIGHT,
        help=f"Visible height of the document viewport (default: {DEFAULT_VIEWPORT_HEIGHT:g}).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log discovery, loading and resolution details.",
    )


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        raise SystemExit(0)

    _configure_logging(getattr(args, "verbose", False))
    args.func(args)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _config_from_args(args: argparse.Namespace) -> NavigatorConfig:
    return NavigatorConfig(
        settle_delay=max(0.0, args.settle_delay),
        margin=args.margin,
        discovery_attempts=max(1, args.discovery_attempts),
        policy=args.policy,
        headings_only=args.headings_only,
        rank_partial_matches=args.rank_partial,
    )


def _resolve_source(args: argparse.Namespace) -> tuple[Path, bool]:
    """Return the PDF to open and whether it is a temporary download."""

    sources_selected = sum(1 for option in (args.remote_url, args.pdf) if option)
    if sources_selected == 0:
        console.print("[red]Provide a PDF path or --remote-url.[/]")
        raise SystemExit(1)
    if sources_selected > 1:
        console.print("[red]Choose only one of PDF path or --remote-url.[/]")
        raise SystemExit(1)

    if args.remote_url:
        try:
            return download_to_temp(args.remote_url, prefix="tocnav-", suffix=".pdf"), True
        except requests.RequestException as exc:
            console.print(f"[red]Failed to download remote PDF: {exc}[/]")
            raise SystemExit(3) from exc

    try:
        return ensure_file(args.pdf), False
    except FileNotFoundError as err:
        console.print(f"[red]{err}[/]")
        raise SystemExit(1) from err


def _load_view(args: argparse.Namespace) -> tuple[PdfDocumentView, Path]:
    source, cleanup = _resolve_source(args)
    try:
        view = PdfDocumentView.from_pdf(source, viewport_height=args.viewport_height)
    finally:
        if cleanup:
            source.unlink(missing_ok=True)
    return view, source


def _run_links(args: argparse.Namespace) -> None:
    view, _source = _load_view(args)
    if not view.links:
        console.print("[yellow]No internal links found.[/]")
        return

    console.print(f"[b]Internal links[/] ({len(view.links)})")
    for link in view.links:
        target = f"p. {link.target_page_index + 1}" if link.target_page_index is not None else "-"
        console.print(
            f"  [{link.index}] p. {link.page_index + 1} → {target} : {link.label}",
            markup=False,
            highlight=False,
        )


async def _collect_sections(view: PdfDocumentView, config: NavigatorConfig) -> list[tuple[int | None, str]]:
    view.mount()
    view.mount_all()
    context = await NavigationContext.create(view, config)
    try:
        return [
            (page_index_of(heading), heading.text_content.strip())
            for heading in sorted(context.locator.headings(), key=lambda el: el.bounding_top)
        ]
    finally:
        await context.dispose()


def _run_sections(args: argparse.Namespace) -> None:
    view, _source = _load_view(args)
    sections = asyncio.run(_collect_sections(view, NavigatorConfig()))
    if not sections:
        console.print("[yellow]No numbered section headings found.[/]")
        return

    console.print(f"[b]Sections[/] ({len(sections)})")
    for page, title in sections:
        where = f"p. {page + 1}" if page is not None else "p. -"
        console.print(f"  - {where} : {title}", markup=False, highlight=False)


async def _navigate(
    view: PdfDocumentView,
    config: NavigatorConfig,
    *,
    link: int | None,
    label: str | None,
) -> NavigationResult:
    view.mount()
    context = await NavigationContext.create(view, config)
    try:
        if link is not None:
            view.activate_link_at(link)
            results = await context.drain()
            return results[0]
        return await context.navigate(label or "")
    finally:
        await context.dispose()


def _run_jump(args: argparse.Namespace) -> None:
    config = _config_from_args(args)
    view, source = _load_view(args)

    if args.link is not None and not 0 <= args.link < len(view.links):
        console.print(
            f"[red]Link index {args.link} out of range; the document has {len(view.links)} internal links.[/]"
        )
        raise SystemExit(1)

    result = asyncio.run(_navigate(view, config, link=args.link, label=args.label))
    print_result(result)
    if args.link is not None and result.succeeded and result.target_page == view.links[args.link].page_index:
        console.print(
            "[yellow]Resolved on the link's own page; try --headings-only.[/]",
            highlight=False,
        )
    if args.trace:
        print_trace(result)

    if args.output is not None:
        region = view.scrollable_region
        payload = {
            **result.to_dict(),
            "source": args.remote_url or str(source),
            "scroll_top": region.scroll_top if region is not None else None,
        }
        json_path = dump_json(payload, args.output)
        console.print(f"[green]Result saved to[/] {json_path}")

    if not result.succeeded:
        raise SystemExit(2)


def _run_help(args: argparse.Namespace) -> None:
    parser = build_parser()
    subparsers = getattr(parser, "_subparsers_action", None)
    topic = args.topic

    if topic and isinstance(subparsers, argparse._SubParsersAction):
        subparser = subparsers.choices.get(topic)
        if subparser:
            subparser.print_help()
            return
        console.print(f"[yellow]Unknown command '{topic}'. Showing available commands.[/]")

    parser.print_help()
    if topic is None and isinstance(subparsers, argparse._SubParsersAction):
        jump_parser = subparsers.choices.get("jump")
        if jump_parser:
            console.print("\n[b]jump command options:[/]")
            console.print(jump_parser.format_help(), markup=False, highlight=False)


if __name__ == "__main__":
    main()
