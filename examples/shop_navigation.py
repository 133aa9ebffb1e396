"""
Example showing a modular coordinator with a tab shell, guards and redirects.
"""

from __future__ import annotations

import asyncio
import logging

from smartnav import (
    CoordinatorModular,
    IndexedStackPath,
    NavigationPath,
    RouteLayout,
    RouteModule,
    RouteTarget,
)


class Page(RouteTarget):
    pass


class Tabs(RouteLayout):
    shell_key = "tabs"


class Checkout(RouteTarget):
    identifier = "/checkout"

    def __init__(self, session):
        super().__init__()
        self.session = session

    def redirect(self, coordinator):
        return self if self.session["user"] else Page("/login")

    def guard(self, coordinator):
        return not self.session["paying"]


class ShopModule(RouteModule):
    def define_paths(self):
        self.tabs = IndexedStackPath(
            [Page("/shop", layout_key="tabs"), Page("/cart", layout_key="tabs")],
            label="tabs",
            coordinator=self.coordinator,
        )
        return [self.tabs]

    def define_layouts(self):
        self.define_layout("tabs", Tabs)

    def parse_location(self, location):
        if location in ("/shop", "/cart"):
            return Page(location, layout_key="tabs")
        return None


class AccountModule(RouteModule):
    def parse_location(self, location):
        if location == "/login":
            return Page(location)
        return None


class ShopApp(CoordinatorModular):
    def define_modules(self):
        return [ShopModule(self), AccountModule(self)]

    def not_found(self, location):
        return Page("/404")


async def main():
    logging.basicConfig(level=logging.INFO)
    app = ShopApp().plug("logging")
    app.add_resync_listener(lambda location: print("browser back to", location))

    await app.sync_location("/cart")
    print("current:", app.current_location)

    session = {"user": None, "paying": False}
    await app.push(Checkout(session))
    print("anonymous checkout lands on:", app.current_location)

    session["user"] = "ada"
    await app.push(Checkout(session))
    session["paying"] = True
    print("pop while paying:", await app.pop())

    await app.sync_location("/nowhere")
    print("current:", app.current_location)


if __name__ == "__main__":
    asyncio.run(main())
