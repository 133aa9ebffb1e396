"""Redirect resolution and guards."""

import pytest

from smartnav import Continue, RedirectLoopError, RedirectRule, RedirectTo, RouteTarget, Stop
from smartnav.core.guard import evaluate_guard
from smartnav.core.redirect import resolve_redirect


class Page(RouteTarget):
    pass


@pytest.mark.asyncio
async def test_route_without_redirect_is_returned():
    route = Page("/a")
    assert await resolve_redirect(route) is route


@pytest.mark.asyncio
async def test_simple_redirect_is_single_hop():
    final = Page("/final")
    middle = Page("/middle", redirect=lambda coordinator: final)
    start = Page("/start", redirect=lambda coordinator: middle)
    assert await resolve_redirect(start) is middle
    assert start.is_completed
    assert not middle.is_completed


@pytest.mark.asyncio
async def test_redirect_to_equal_route_keeps_original():
    start = Page("/same", redirect=lambda coordinator: Page("/same"))
    assert await resolve_redirect(start) is start
    assert not start.is_completed


@pytest.mark.asyncio
async def test_async_redirect_receives_coordinator():
    seen = []
    login = Page("/login")

    async def to_login(coordinator):
        seen.append(coordinator)
        return login

    marker = object()
    assert await resolve_redirect(Page("/admin", redirect=to_login), marker) is login
    assert seen == [marker]


@pytest.mark.asyncio
async def test_redirect_abort_discards_unless_told_otherwise():
    dropped = Page("/x", redirect=lambda coordinator: None)
    kept = Page("/y", redirect=lambda coordinator: None)
    assert await resolve_redirect(dropped) is None
    assert await resolve_redirect(kept, discard=False) is None
    assert dropped.is_completed
    assert not kept.is_completed


class RequireLogin(RedirectRule):
    def __init__(self, logged_in):
        self.logged_in = logged_in

    def redirect_result(self, coordinator, route):
        if self.logged_in:
            return Continue()
        return RedirectTo(Page("/login"))


@pytest.mark.asyncio
async def test_rules_continue_then_pass_through():
    route = Page("/account", redirect_rules=[RequireLogin(True), lambda c, r: Continue()])
    assert await resolve_redirect(route) is route


@pytest.mark.asyncio
async def test_rules_redirect_and_stop():
    redirected = await resolve_redirect(Page("/account", redirect_rules=[RequireLogin(False)]))
    assert redirected == Page("/login")
    stopped = Page("/account", redirect_rules=[lambda c, r: Stop(), RequireLogin(False)])
    assert await resolve_redirect(stopped) is None


@pytest.mark.asyncio
async def test_rule_chains_resolve_again():
    final = Page("/final")
    middle = Page("/middle", redirect_rules=[lambda c, r: RedirectTo(final)])
    start = Page("/start", redirect_rules=[lambda c, r: RedirectTo(middle)])
    assert await resolve_redirect(start) is final


@pytest.mark.asyncio
async def test_rule_cycle_is_bounded():
    first = Page("/first")
    second = Page("/second", redirect_rules=[lambda c, r: RedirectTo(first)])
    first.redirect_rules = [lambda c, r: RedirectTo(second)]
    with pytest.raises(RedirectLoopError) as excinfo:
        await resolve_redirect(first, max_hops=5)
    assert excinfo.value.max_hops == 5
    assert isinstance(excinfo.value, RuntimeError)


@pytest.mark.asyncio
@pytest.mark.parametrize("max_hops", [0, None])
async def test_zero_or_none_hop_limit_is_unbounded(max_hops):
    final = Page("/final")
    route = final
    for step in range(40):
        route = Page(f"/step{step}", redirect_rules=[lambda c, r, nxt=route: RedirectTo(nxt)])
    assert await resolve_redirect(route, max_hops=max_hops) is final


@pytest.mark.asyncio
async def test_rule_with_bad_result_raises():
    with pytest.raises(TypeError):
        await resolve_redirect(Page("/x", redirect_rules=[lambda c, r: "nope"]))


@pytest.mark.asyncio
async def test_evaluate_guard_sync_and_async():
    async def deny(coordinator):
        return False

    assert await evaluate_guard(Page("/free")) is True
    assert await evaluate_guard(Page("/sync", guard=lambda coordinator: 1)) is True
    assert await evaluate_guard(Page("/async", guard=deny)) is False
