"""Indexed (tab-like) path behaviour."""

import pytest

from smartnav import IndexedStackPath, NavigationPath, RouteTarget


class Tab(RouteTarget):
    pass


def make_tabs(*routes):
    routes = routes or (Tab("/feed"), Tab("/search"), Tab("/profile"))
    path = IndexedStackPath(routes, label="tabs")
    events = []
    path.add_listener(lambda: events.append(path.active_index))
    return path, events


def test_empty_indexed_path_is_rejected():
    with pytest.raises(ValueError):
        IndexedStackPath([], label="tabs")


def test_entries_are_bound_and_first_is_active():
    path, _ = make_tabs()
    assert path.active_index == 0
    assert path.active_route.identifier == "/feed"
    assert all(route.stack_path is path for route in path.stack)
    assert all(route.is_completed for route in path.stack)


@pytest.mark.asyncio
async def test_activate_route_selects_matching_entry():
    path, events = make_tabs()
    profile = path.stack[2]
    assert await path.activate_route(profile) is True
    assert path.active_index == 2
    assert len(path) == 3
    assert events == [2]


@pytest.mark.asyncio
async def test_activate_route_with_equal_instance_merges_params():
    path, _ = make_tabs()
    incoming = Tab("/search", params={"q": "cats"})
    assert await path.activate_route(incoming) is True
    assert path.active_index == 1
    assert path.stack[1].params == {"q": "cats"}
    assert path.stack[1] is not incoming


@pytest.mark.asyncio
async def test_activate_route_outside_the_list_raises():
    path, _ = make_tabs()
    with pytest.raises(LookupError):
        await path.activate_route(Tab("/settings"))


@pytest.mark.asyncio
async def test_go_to_indexed_bounds_and_same_index():
    path, events = make_tabs()
    with pytest.raises(IndexError):
        await path.go_to_indexed(3)
    assert await path.go_to_indexed(0) is True
    assert events == []


@pytest.mark.asyncio
async def test_guard_on_active_entry_blocks_switch():
    locked = Tab("/editor", guard=lambda coordinator: False)
    path, events = make_tabs(locked, Tab("/other"))
    assert await path.go_to_indexed(1) is False
    assert path.active_index == 0
    assert events == []


@pytest.mark.asyncio
async def test_destination_redirect_within_the_list():
    feed, profile = Tab("/feed"), Tab("/profile")
    gated = Tab("/search", redirect=lambda coordinator: profile)
    path, _ = make_tabs(feed, gated, profile)
    assert await path.go_to_indexed(1) is True
    assert path.active_index == 2


@pytest.mark.asyncio
async def test_destination_redirect_abort_or_escape():
    feed = Tab("/feed")
    aborted = Tab("/blocked", redirect=lambda coordinator: None)
    escaping = Tab("/away", redirect=lambda coordinator: Tab("/elsewhere"))
    path, events = make_tabs(feed, aborted, escaping)
    assert await path.go_to_indexed(1) is None
    assert await path.go_to_indexed(2) is None
    assert path.active_index == 0
    assert events == []


@pytest.mark.asyncio
async def test_fixed_entries_cannot_move_or_clear():
    path, _ = make_tabs()
    other = NavigationPath(label="other")
    with pytest.raises(ValueError):
        await other.push(path.stack[1])
    with pytest.raises(TypeError):
        path.clear()
    assert len(path) == 3


@pytest.mark.asyncio
async def test_navigate_absent_route_notifies_and_fails():
    path, events = make_tabs()
    assert await path.navigate(Tab("/unknown")) is False
    assert events == [0]


@pytest.mark.asyncio
async def test_reset_returns_to_first_entry():
    path, events = make_tabs()
    await path.go_to_indexed(2)
    path.reset()
    assert path.active_index == 0
    path.reset()
    assert events == [2, 0]
