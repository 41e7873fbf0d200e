"""Shared layout components for Taskboard.

Provides consistent header, navigation drawer, and page structure.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from nicegui import ui

from taskboard.pages.registry import get_visible_pages

if TYPE_CHECKING:
    from collections.abc import Iterator


def _nav_item(label: str, route: str, icon: str | None = None) -> None:
    """Create a navigation item in the drawer."""
    with ui.item(on_click=lambda: ui.navigate.to(route)).classes("w-full"):
        if icon:
            with ui.item_section().props("avatar"):
                ui.icon(icon)
        with ui.item_section():
            ui.item_label(label)


@contextmanager
def page_layout(title: str = "Taskboard") -> Iterator[None]:
    """Context manager for consistent page layout with header and nav drawer.

    Usage:
        @page_route("/my-page", title="My Page", icon="star")
        async def my_page():
            with page_layout("My Page"):
                ui.label("Page content here")
    """
    with ui.header().classes("bg-primary items-center q-py-xs"):
        menu_btn = ui.button(icon="menu").props("flat color=white")
        ui.label(title).classes("text-h6 text-white q-ml-sm")

    with ui.left_drawer(value=False).classes("bg-grey-2") as drawer:
        ui.label("Navigation").classes("text-h6 q-pa-md")
        ui.separator()
        with ui.list().props("padding"):
            for page in get_visible_pages():
                _nav_item(page.title, page.route, page.icon)

    menu_btn.on("click", drawer.toggle)

    with ui.element("div").classes("q-pa-md w-full"):
        yield
