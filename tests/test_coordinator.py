"""Coordinator operations, resync signal and restoration ids."""

import asyncio

import pytest

from smartnav import (
    Coordinator,
    DeeplinkStrategy,
    DuplicateRestorationIdError,
    IndexedStackPath,
    NavigationPath,
    RedirectLoopError,
    RedirectTo,
    RouteLayout,
    RouteTarget,
)


class Page(RouteTarget):
    pass


class Locked(RouteTarget):
    def guard(self, coordinator):
        return False


class SlowGuard(RouteTarget):
    async def guard(self, coordinator):
        await asyncio.sleep(0)
        return True


class SlowRedirect(RouteTarget):
    def __init__(self, identifier, ticks):
        super().__init__(identifier)
        self.ticks = ticks

    async def redirect(self, coordinator):
        for _ in range(self.ticks):
            await asyncio.sleep(0)
        return self


class Shell(RouteLayout):
    shell_key = "shell"


class AppCoordinator(Coordinator):
    def define_paths(self):
        self.tabs = IndexedStackPath(
            [Page("/t0"), Page("/t1"), Page("/t2")], label="tabs", coordinator=self
        )
        self.shell_path = NavigationPath(label="shell", coordinator=self)
        return [self.tabs, self.shell_path]

    def define_layouts(self):
        self.define_layout("shell", Shell)

    def parse_location(self, location):
        if location == "/unknown":
            return None
        if location == "/locked":
            return Locked(location)
        return Page(location)


def make_coordinator(**options):
    coordinator = AppCoordinator(**options)
    resyncs = []
    coordinator.add_resync_listener(resyncs.append)
    return coordinator, resyncs


@pytest.mark.asyncio
async def test_replace_resets_every_path():
    coordinator, _ = make_coordinator()
    first, second = Page("/a"), Page("/b")
    await coordinator.push(first)
    await coordinator.push(second)
    await coordinator.tabs.go_to_indexed(1)
    pending = second.on_result
    fresh = Page("/new")
    await coordinator.replace(fresh)
    assert coordinator.root.stack == (fresh,)
    assert coordinator.tabs.active_index == 0
    assert await pending is None


@pytest.mark.asyncio
async def test_listeners_fire_on_path_changes():
    coordinator, _ = make_coordinator()
    events = []
    coordinator.add_listener(lambda: events.append("changed"))
    await coordinator.push(Page("/a"))
    await coordinator.tabs.go_to_indexed(2)
    assert events == ["changed", "changed"]
    coordinator.dispose()
    await coordinator.push(Page("/b"))
    assert events == ["changed", "changed"]


@pytest.mark.asyncio
async def test_pop_needs_two_routes():
    coordinator, resyncs = make_coordinator()
    assert await coordinator.pop() is None
    await coordinator.push(Page("/home"))
    assert await coordinator.pop() is None
    assert len(coordinator.root) == 1
    assert resyncs == []


@pytest.mark.asyncio
async def test_pop_delivers_result():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/home"))
    pending = await coordinator.push(Page("/picker"))
    assert await coordinator.pop("blue") is True
    assert await pending == "blue"
    assert coordinator.current_location == "/home"


@pytest.mark.asyncio
async def test_try_pop_rejected_without_resync():
    coordinator, resyncs = make_coordinator()
    home, locked = Page("/home"), Locked("/locked")
    await coordinator.push(home)
    await coordinator.push(locked)
    assert await coordinator.try_pop() is False
    assert coordinator.root.stack == (home, locked)
    assert resyncs == []


@pytest.mark.asyncio
async def test_pop_rejected_requests_resync():
    coordinator, resyncs = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(Locked("/locked"))
    assert await coordinator.pop() is False
    assert resyncs == ["/locked"]


@pytest.mark.asyncio
async def test_pop_uses_innermost_path():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(Page("/a", layout_key="shell"))
    await coordinator.push(Page("/b", layout_key="shell"))
    assert await coordinator.pop() is True
    assert [route.identifier for route in coordinator.shell_path.stack] == ["/a"]
    assert len(coordinator.root) == 2


@pytest.mark.asyncio
async def test_redirect_abort_leaves_state_untouched():
    coordinator, _ = make_coordinator()
    events = []
    await coordinator.push(Page("/home"))
    coordinator.add_listener(lambda: events.append(1))
    blocked = Page("/admin", redirect=lambda c: None)
    assert await coordinator.push(blocked) is None
    assert await coordinator.navigate(Page("/x", redirect=lambda c: None)) is None
    assert await coordinator.replace(Page("/y", redirect=lambda c: None)) is None
    assert [route.identifier for route in coordinator.root.stack] == ["/home"]
    assert events == []
    assert blocked.is_completed


@pytest.mark.asyncio
async def test_redirect_receives_root_coordinator():
    coordinator, _ = make_coordinator()
    seen = []
    login = Page("/login")

    def to_login(c):
        seen.append(c)
        return login

    await coordinator.push(Page("/account", redirect=to_login))
    assert seen == [coordinator]
    assert coordinator.root.stack == (login,)


@pytest.mark.asyncio
async def test_redirect_hop_limit_is_configurable():
    coordinator, _ = make_coordinator(max_redirect_hops=2)
    first = Page("/first")
    second = Page("/second", redirect_rules=[lambda c, r: RedirectTo(first)])
    first.redirect_rules = [lambda c, r: RedirectTo(second)]
    with pytest.raises(RedirectLoopError):
        await coordinator.push(first)
    assert len(coordinator.root) == 0


@pytest.mark.asyncio
async def test_navigate_pops_back_or_pushes():
    coordinator, _ = make_coordinator()
    home = Page("/home")
    await coordinator.push(home)
    await coordinator.push(Page("/list"))
    assert await coordinator.navigate(Page("/home")) is True
    assert coordinator.root.stack == (home,)
    assert await coordinator.navigate(Page("/other")) is True
    assert coordinator.current_location == "/other"


@pytest.mark.asyncio
async def test_push_or_move_to_top_through_coordinator():
    coordinator, _ = make_coordinator()
    home, settings = Page("/home"), Page("/settings")
    await coordinator.push(home)
    await coordinator.push(settings)
    await coordinator.push_or_move_to_top(Page("/home"))
    assert coordinator.root.stack == (settings, home)


@pytest.mark.asyncio
async def test_push_replacement_swaps_active_route():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/home"))
    detail = Page("/detail")
    pending = await coordinator.push(detail)
    await coordinator.push_replacement(Page("/edit"), "swapped")
    assert [route.identifier for route in coordinator.root.stack] == ["/home", "/edit"]
    assert await pending == "swapped"


@pytest.mark.asyncio
async def test_push_replacement_blocked_by_guard():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(Locked("/locked"))
    assert await coordinator.push_replacement(Page("/edit")) is None
    assert coordinator.current_location == "/locked"


@pytest.mark.asyncio
async def test_sync_location_navigates():
    coordinator, resyncs = make_coordinator()
    assert await coordinator.sync_location("/a") is True
    assert await coordinator.sync_location("/b") is True
    assert await coordinator.sync_location("/a") is True
    assert [route.identifier for route in coordinator.root.stack] == ["/a"]
    assert resyncs == []


@pytest.mark.asyncio
async def test_sync_location_unparsed_requests_resync():
    coordinator, resyncs = make_coordinator()
    await coordinator.push(Page("/home"))
    assert await coordinator.sync_location("/unknown") is None
    assert resyncs == ["/home"]


@pytest.mark.asyncio
async def test_sync_location_guard_rejection_requests_resync():
    coordinator, resyncs = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(Locked("/locked"))
    assert await coordinator.sync_location("/home") is False
    assert resyncs == ["/locked"]


@pytest.mark.asyncio
async def test_recover_strategies():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(Page("/list"))

    await coordinator.recover(Page("/pushed", deeplink_strategy=DeeplinkStrategy.PUSH))
    assert len(coordinator.root) == 3

    await coordinator.recover(Page("/home", deeplink_strategy="navigate"))
    assert [route.identifier for route in coordinator.root.stack] == ["/home"]

    await coordinator.push(Page("/extra"))
    await coordinator.recover(Page("/fresh"))
    assert [route.identifier for route in coordinator.root.stack] == ["/fresh"]


@pytest.mark.asyncio
async def test_recover_custom_strategy_calls_handler():
    coordinator, _ = make_coordinator()
    calls = []

    async def handler(c, location):
        calls.append((c, location))

    route = Page("/custom", deeplink_strategy="custom", deeplink_handler=handler)
    await coordinator.recover(route, "/custom?x=1")
    assert calls == [(coordinator, "/custom?x=1")]
    assert len(coordinator.root) == 0

    with pytest.raises(TypeError):
        await coordinator.recover(Page("/broken", deeplink_strategy="custom"))


@pytest.mark.asyncio
async def test_sync_location_uses_deeplink_strategy():
    class DeepCoordinator(AppCoordinator):
        def parse_location(self, location):
            return Page(location, deeplink_strategy="push")

    coordinator = DeepCoordinator()
    await coordinator.push(Page("/home"))
    assert await coordinator.sync_location("/home") is True
    assert [route.identifier for route in coordinator.root.stack] == ["/home", "/home"]


@pytest.mark.asyncio
async def test_recover_from_location():
    coordinator, _ = make_coordinator()
    await coordinator.recover_from_location("/start")
    assert coordinator.current_location == "/start"
    with pytest.raises(LookupError):
        await coordinator.recover_from_location("/unknown")


def test_parse_location_must_be_implemented():
    with pytest.raises(NotImplementedError):
        Coordinator().parse_location("/x")


@pytest.mark.asyncio
async def test_restoration_ids():
    coordinator, _ = make_coordinator(root_label="app")
    await coordinator.push(Page("/home"))
    await coordinator.push(Page("/item", props={"id": 3, "a": "x"}))
    await coordinator.push(Page("/mail", layout_key="shell"))
    ids = coordinator.restoration_ids()
    assert "app_/home" in ids
    assert "app_/item?a=x&id=3" in ids
    assert "app_shell" in ids
    assert "app_shell_/mail" in ids
    assert "app_tabs_/t1" in ids
    assert coordinator.resolve_route_id(coordinator.shell_path.active_route) == "app_shell_/mail"


@pytest.mark.asyncio
async def test_duplicate_restoration_ids_raise():
    coordinator, _ = make_coordinator()
    await coordinator.push(Page("/a", restoration_id="same"))
    await coordinator.push(Page("/b", restoration_id="same"))
    with pytest.raises(DuplicateRestorationIdError) as excinfo:
        coordinator.restoration_ids()
    assert excinfo.value.restoration_id == "root_same"


@pytest.mark.asyncio
async def test_start_recovers_initial_location():
    coordinator = AppCoordinator(initial_location="/welcome")
    assert len(coordinator.root) == 0
    await coordinator.start()
    assert coordinator.current_location == "/welcome"

    idle = AppCoordinator()
    await idle.start()
    assert len(idle.root) == 0


@pytest.mark.asyncio
async def test_sync_location_deeplink_guard_rejection_requests_resync():
    class DeepCoordinator(AppCoordinator):
        def parse_location(self, location):
            return Page(location, deeplink_strategy="navigate")

    coordinator = DeepCoordinator()
    resyncs = []
    coordinator.add_resync_listener(resyncs.append)
    await coordinator.push(Page("/a"))
    await coordinator.push(Locked("/locked"))
    assert await coordinator.sync_location("/a") is False
    assert resyncs == ["/locked"]
    assert [route.identifier for route in coordinator.root.stack] == ["/a", "/locked"]
    assert await coordinator.recover(Page("/a", deeplink_strategy="navigate")) is False


@pytest.mark.asyncio
async def test_concurrent_pops_keep_the_root_route():
    coordinator, resyncs = make_coordinator()
    await coordinator.push(Page("/home"))
    await coordinator.push(SlowGuard("/slow"))
    results = await asyncio.gather(coordinator.pop(), coordinator.pop())
    assert results == [True, None]
    assert [route.identifier for route in coordinator.root.stack] == ["/home"]
    assert resyncs == []


@pytest.mark.asyncio
async def test_concurrent_pushes_land_in_redirect_completion_order():
    coordinator, _ = make_coordinator()
    slow, fast = SlowRedirect("/slow", 3), SlowRedirect("/fast", 1)
    await asyncio.gather(coordinator.push(slow), coordinator.push(fast))
    assert coordinator.root.stack == (fast, slow)
