"""Logging and pydantic plugins on the navigation dispatcher."""

import pytest
from pydantic import ValidationError

from smartnav import Coordinator, CoordinatorModular, RouteTarget


class Page(RouteTarget):
    pass


class DummyLogger:
    def __init__(self):
        self.records = []

    def hasHandlers(self):  # noqa: N802 - mirrors logging.Logger
        return True

    def info(self, message):
        self.records.append(message)


def logged_coordinator(**config):
    coordinator = Coordinator().plug("logging", **config)
    logger = DummyLogger()
    coordinator.navigation.logging._logger = logger  # type: ignore[attr-defined]
    return coordinator, logger.records


@pytest.mark.asyncio
async def test_logging_plugin_logs_operations():
    coordinator, records = logged_coordinator()
    await coordinator.push(Page("/a"))
    assert records[0] == "push start"
    assert records[1].startswith("push end (")
    assert records[1].endswith(" ms)")


@pytest.mark.asyncio
async def test_logging_outcome_flag_reports_result():
    coordinator, records = logged_coordinator()
    coordinator.configure("navigation:logging/try_pop", outcome=True, before=False)
    await coordinator.try_pop()
    assert len(records) == 1
    assert records[0].endswith("-> None")


@pytest.mark.asyncio
async def test_logging_respects_enable_switches():
    coordinator, records = logged_coordinator()
    coordinator.navigation.set_plugin_enabled("push", "logging", False)
    await coordinator.push(Page("/a"))
    assert records == []
    coordinator.configure("navigation:logging", flags="enabled:off")
    await coordinator.replace(Page("/b"))
    assert records == []


@pytest.mark.asyncio
async def test_logging_print_sink(capsys):
    coordinator, records = logged_coordinator(flags="print,before:off")
    await coordinator.replace(Page("/a"))
    assert records == []
    assert "replace end" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_logging_skips_end_message_on_error():
    coordinator, records = logged_coordinator()
    with pytest.raises(TypeError):
        await coordinator.recover(Page("/x", deeplink_strategy="custom"))
    assert records == ["recover start"]


@pytest.mark.asyncio
async def test_parent_plugins_wrap_module_operations():
    class Blog(Coordinator):
        pass

    class App(CoordinatorModular):
        def define_modules(self):
            return [Blog(self)]

        def not_found(self, location):
            return Page("/404")

    app = App()
    app.plug("logging")
    logger = DummyLogger()
    app.navigation.logging._logger = logger  # type: ignore[attr-defined]
    blog = app.get_module(Blog)
    await blog.push(Page("/post"))
    assert logger.records[0] == "push start"
    assert [route.identifier for route in app.root.stack] == ["/post"]

    app.configure("navigation:logging/push", before=False)
    await blog.push(Page("/other"))
    assert logger.records[-1].startswith("push end")
    assert len(logger.records) == 3


@pytest.mark.asyncio
async def test_pydantic_rejects_invalid_routes():
    coordinator = Coordinator().plug("pydantic")
    with pytest.raises(ValidationError):
        await coordinator.push("/not-a-route")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        await coordinator.sync_location(None)  # type: ignore[arg-type]
    route = Page("/a")
    await coordinator.push(route)
    assert coordinator.root.stack == (route,)


def test_pydantic_model_metadata_and_disable():
    coordinator = Coordinator().plug("pydantic")
    navigation = coordinator.navigation
    entry = navigation._entries["push"]
    kind, model = navigation.pydantic.get_model(entry)
    assert kind == "pydantic_model"
    assert "route" in model.model_fields

    described = navigation.members()["entries"]["push"]["plugins"]["pydantic"]
    assert described["metadata"]["model"] is model

    coordinator.configure("navigation:pydantic/push", disabled=True)
    assert navigation.pydantic.get_model(entry) is None
    assert navigation.pydantic.get_model(navigation._entries["navigate"]) is not None


@pytest.mark.asyncio
async def test_plugins_stack_in_attachment_order():
    coordinator = Coordinator().plug("logging").plug("pydantic")
    logger = DummyLogger()
    coordinator.navigation.logging._logger = logger  # type: ignore[attr-defined]
    with pytest.raises(ValidationError):
        await coordinator.push(42)  # type: ignore[arg-type]
    assert logger.records == ["push start"]
