"""Tests for the console front end and its text view."""

import io

import httpx
import pytest

from routine_advisor.catalog import CatalogLoader
from routine_advisor.console import handle_line, resolve_product_id
from routine_advisor.controller import AppController
from routine_advisor.relay_client import RelayClient
from routine_advisor.store import LocalStore
from routine_advisor.views import ConsoleView


@pytest.fixture
def console(catalog_file):
    stream = io.StringIO()
    relay = httpx.MockTransport(lambda request: httpx.Response(200, json={"reply": "Use it twice daily."}))
    controller = AppController(
        store=LocalStore(),
        catalog_loader=CatalogLoader(str(catalog_file)),
        relay_client=RelayClient("https://relay.test/", transport=relay),
        view=ConsoleView(stream),
    )
    return controller, stream


class TestConsole:
    @pytest.mark.asyncio
    async def test_select_and_routine(self, console):
        controller, stream = console
        await controller.startup()

        assert await handle_line(controller, "/select 2") is True
        assert await handle_line(controller, "/routine") is True

        assert list(controller.state.selected_ids) == [2]
        output = stream.getvalue()
        assert "[x] 2: Vitamin C Serum (La Roche-Posay) <skincare>" in output
        assert "assistant> Use it twice daily." in output

    @pytest.mark.asyncio
    async def test_unknown_product_is_not_selected(self, console):
        controller, stream = console
        await controller.startup()

        await handle_line(controller, "/select 999")

        assert controller.state.selected_ids == {}
        assert "! Unknown product: 999" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_routine_without_selection_prints_notice(self, console):
        controller, stream = console
        await controller.startup()

        await handle_line(controller, "/routine")

        assert "! Please select at least one product to generate a routine." in stream.getvalue()

    @pytest.mark.asyncio
    async def test_search_and_category(self, console):
        controller, _ = console
        await controller.startup()

        await handle_line(controller, "/category skincare")
        await handle_line(controller, "/search night")

        assert [p.id for p in controller.state.visible] == [7]

        await handle_line(controller, "/category")

        assert [p.id for p in controller.state.visible] == [7]
        assert controller.state.filter.category == ""

    @pytest.mark.asyncio
    async def test_chat_message_and_quit(self, console):
        controller, stream = console
        await controller.startup()

        await handle_line(controller, "what goes first?")

        assert "you> what goes first?" in stream.getvalue()
        assert await handle_line(controller, "/quit") is False

    @pytest.mark.asyncio
    async def test_empty_catalog_view(self, tmp_path):
        stream = io.StringIO()
        controller = AppController(
            store=LocalStore(),
            catalog_loader=CatalogLoader(str(tmp_path / "missing.json")),
            relay_client=RelayClient(""),
            view=ConsoleView(stream),
        )

        await controller.startup()

        assert "No products found." in stream.getvalue()
        assert "No products selected" in stream.getvalue()


@pytest.mark.asyncio
async def test_resolve_product_id_prefers_catalog_ids(tmp_path):
    path = tmp_path / "products.json"
    path.write_text('{"products": [{"id": "sku-1"}, {"id": 2}]}', encoding="utf-8")
    controller = AppController(
        store=LocalStore(),
        catalog_loader=CatalogLoader(str(path)),
        relay_client=RelayClient(""),
    )
    await controller.load_catalog()

    assert resolve_product_id(controller, "sku-1") == "sku-1"
    assert resolve_product_id(controller, "2") == 2
    assert resolve_product_id(controller, "42") is None
