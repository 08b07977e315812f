from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from tocnav.config import TEXT_CLASS
from tocnav.navigator import NavigationContext, NavigationState
from tocnav.resolver import MatchKind
from tocnav.tree import Element

S = NavigationState


def _span(text: str, top: float) -> Element:
    return Element("span", classes=[TEXT_CLASS], text=text, top=top)


def test_link_activation_scrolls_to_second_occurrence(make_view, fast_config):
    view, region = make_view([("Background .......... 2", 5), ("2. Background", 300)])

    async def scenario():
        context = await NavigationContext.create(view, fast_config)
        event = view.activate_link("Background .......... 2")
        results = await context.drain()
        await context.dispose()
        return event, results

    event, results = asyncio.run(scenario())
    assert event.default_prevented
    [result] = results
    assert result.succeeded
    assert result.label == "Background"
    assert result.states == [S.IDLE, S.NORMALIZING, S.RESOLVING, S.FOUND, S.SCROLLING, S.IDLE]
    assert result.match_kind is MatchKind.EXACT
    assert result.target_text == "2. Background"
    assert result.section == "2. Background"
    assert not result.retried
    assert region.scroll_top == 280


def test_retry_after_forcing_trailing_content(make_view, fast_config):
    view, region = make_view([("Contents", 0)])

    def render_tail(r):
        if r.scroll_top == r.max_scroll_top and not any(c.text == "Appendix" for c in r.children):
            r.append_child(_span("Appendix", 1800))

    region.add_scroll_listener(render_tail)

    async def scenario():
        context = await NavigationContext.create(view, fast_config)
        try:
            return await context.navigate("Appendix ....... 40")
        finally:
            await context.dispose()

    result = asyncio.run(scenario())
    assert result.succeeded
    assert result.retried
    assert result.states == [
        S.IDLE,
        S.NORMALIZING,
        S.RESOLVING,
        S.NOT_FOUND,
        S.LOADING,
        S.RESOLVING,
        S.FOUND,
        S.SCROLLING,
        S.IDLE,
    ]
    # 1800 - 20, clamped to the end of the content.
    assert region.scroll_top == region.max_scroll_top == 1400


def test_failure_emits_single_notice(make_view, fast_config):
    view, region = make_view([("Contents", 0), ("1. Scope", 200)])
    region.scroll_to(50)
    notices: list[str] = []

    async def scenario():
        context = await NavigationContext.create(view, fast_config, notice=notices.append)
        try:
            return await context.navigate("Glossary ........ 12")
        finally:
            await context.dispose()

    result = asyncio.run(scenario())
    assert not result.succeeded
    assert result.retried
    assert result.states[-2:] == [S.NOT_FOUND, S.FAILED]
    assert S.SCROLLING not in result.states
    assert notices == ['No matching content found for "Glossary"']
    assert region.scroll_top == 50


def test_empty_label_fails_without_loading(make_view, fast_config):
    view, region = make_view([("3.2.1 Methods", 10)])
    notices: list[str] = []
    moves: list[float] = []
    region.add_scroll_listener(lambda r: moves.append(r.scroll_top))

    async def scenario():
        context = await NavigationContext.create(view, fast_config, notice=notices.append)
        try:
            return await context.navigate("3.2.1")
        finally:
            await context.dispose()

    result = asyncio.run(scenario())
    assert result.label == ""
    assert result.states == [S.IDLE, S.NORMALIZING, S.RESOLVING, S.NOT_FOUND, S.FAILED]
    assert notices == ['No matching content found for "3.2.1"']
    assert moves == []


def test_dispose_during_load_aborts_quietly(make_view, fast_config):
    view, region = make_view([("Contents", 0)])
    config = replace(fast_config, settle_delay=0.2)
    notices: list[str] = []

    async def scenario():
        context = await NavigationContext.create(view, config, notice=notices.append)
        task = asyncio.create_task(context.navigate("Glossary"))
        await asyncio.sleep(0.05)
        await context.dispose()
        result = await task
        after = view.activate_link("Glossary")
        return result, after

    result, after = asyncio.run(scenario())
    assert result.aborted
    assert result.state is S.FAILED
    assert S.LOADING in result.states
    assert notices == []
    assert region.scroll_top == 0
    assert not after.default_prevented


def test_navigate_before_create_is_aborted(make_view, fast_config):
    view, _region = make_view([("Scope", 10)])
    context = NavigationContext(view, fast_config)
    result = asyncio.run(context.navigate("Scope"))
    assert result.aborted
    assert result.states == [S.IDLE, S.FAILED]


def test_concurrent_activations_run_independently(make_view, fast_config):
    view, _region = make_view(
        [("Scope ..... 2", 0), ("Methods ..... 3", 20), ("1. Scope", 300), ("2. Methods", 700)]
    )

    async def scenario():
        context = await NavigationContext.create(view, fast_config)
        view.activate_link("Scope ..... 2")
        view.activate_link("Methods ..... 3")
        results = await context.drain()
        await context.dispose()
        return results

    results = asyncio.run(scenario())
    assert sorted(r.target_text for r in results) == ["1. Scope", "2. Methods"]
    assert all(r.succeeded for r in results)


def test_overlapping_loads_share_one_pass(make_view, fast_config):
    view, region = make_view([("Contents", 0)])
    config = replace(fast_config, settle_delay=0.05)
    offsets: list[float] = []

    def render_tail(r):
        offsets.append(r.scroll_top)
        if r.scroll_top == r.max_scroll_top and not any(c.text == "Appendix" for c in r.children):
            r.append_child(_span("Appendix", 900))

    region.add_scroll_listener(render_tail)
    notices: list[str] = []

    async def scenario():
        context = await NavigationContext.create(view, config, notice=notices.append)
        try:
            first = asyncio.create_task(context.navigate("Appendix ..... 9"))
            await asyncio.sleep(0.01)
            second = asyncio.create_task(context.navigate("Glossary ..... 12"))
            return await asyncio.gather(first, second)
        finally:
            await context.dispose()

    found, missing = asyncio.run(scenario())
    assert found.succeeded and found.retried
    assert not missing.succeeded and missing.retried
    assert notices == ['No matching content found for "Glossary"']
    # One forced scroll to the end, one restore, then the jump to the target.
    assert offsets == [1400, 0, 880]
    assert region.scroll_top == 880


def test_link_without_running_loop_is_left_to_the_view(make_view, fast_config, caplog):
    view, region = make_view([("Scope", 10), ("1. Scope", 300)])
    context = asyncio.run(NavigationContext.create(view, fast_config))
    assert context.live

    with caplog.at_level(logging.WARNING, logger="tocnav.navigator"):
        event = view.activate_link("Scope ..... 2")

    assert not event.default_prevented
    assert "No running event loop" in caplog.text
    assert region.scroll_top == 0


def test_feed_reports_newly_mounted_text(make_view, fast_config):
    view, region = make_view([("already there", 0)])
    seen: list[str] = []

    async def scenario():
        context = await NavigationContext.create(
            view, fast_config, on_nodes_added=lambda el: seen.append(el.text)
        )
        region.append_child(_span("one", 10))
        region.append_child(Element("div", classes=["Figure"]))
        region.append_child(_span("two", 20))
        await context.dispose()
        return context

    context = asyncio.run(scenario())
    assert seen == ["one", "two"]
    assert context.mounted_text_nodes == 2
    assert not context.live


def test_click_tracks_current_section(make_view, fast_config):
    view, region = make_view(
        [("Preface", 0), ("1. Alpha", 100), ("alpha body", 140), ("2. Beta", 400), ("beta body", 460)]
    )
    beta_body = next(c for c in region.children if c.text == "beta body")
    inline = beta_body.append_child(Element("em", text="emphasis"))
    preface = region.children[0]

    async def scenario():
        context = await NavigationContext.create(view, fast_config)
        view.click(inline)
        section = context.current_section
        view.click(preface)
        await context.dispose()
        return section, context.current_section

    assert asyncio.run(scenario()) == ("2. Beta", None)


def test_region_found_inside_scope_when_view_hides_it(make_view, fast_config):
    view, region = make_view([("Scope", 10), ("1. Scope", 300)], expose_region=False)

    async def scenario():
        context = await NavigationContext.create(view, fast_config)
        try:
            found = context.scrollable_region
            result = await context.navigate("Scope ... 4")
        finally:
            await context.dispose()
        return found, result

    found, result = asyncio.run(scenario())
    assert found is region
    assert result.succeeded
    assert region.scroll_top == 280
