from __future__ import annotations

"""Interactive console front end for the routine advisor.

Lines starting with ``/`` are commands; anything else is sent as a chat message.
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .catalog import CatalogLoader
from .config import BASE_DIR, configure_logging, load_settings
from .controller import AppController
from .relay_client import RelayClient
from .state import ProductId
from .store import LocalStore
from .views import ConsoleView

logger = logging.getLogger("routine_advisor.console")

HELP_TEXT = """Commands:
  /search <text>     filter products by name, brand or description
  /category <name>   filter by category (no argument clears it)
  /select <id>       toggle a product in the selection
  /selected          show the current selection
  /clear             clear the selection
  /routine           ask for a routine using the selected products
  /products          show the filtered product list
  /quit              exit
Anything else is sent to the assistant."""


def build_controller(
    relay_url: str,
    catalog_source: str,
    store_path: Optional[Path],
    view: ConsoleView,
) -> AppController:
    """Wire an AppController from plain configuration values."""
    return AppController(
        store=LocalStore(store_path),
        catalog_loader=CatalogLoader(catalog_source),
        relay_client=RelayClient(relay_url, timeout=120.0),
        view=view,
    )


def resolve_product_id(controller: AppController, raw: str) -> Optional[ProductId]:
    """Match typed text to a catalog id; ids are compared by their string form."""
    for product in controller.state.products:
        if str(product.id) == raw:
            return product.id
    return None


async def handle_line(controller: AppController, line: str) -> bool:
    """Purpose: Execute one line of console input.
    Inputs/Outputs: Input is the controller and the raw line; returns False to stop.
    Side Effects / State: Calls controller operations; awaits any exchange it starts.
    Dependencies: AppController, resolve_product_id.
    Failure Modes: Unknown commands print the help text.
    If Removed: The console client cannot drive the controller.
    Testing Notes: Feed commands and assert on controller.state.
    """
    # Commands first; plain text is a chat message.
    text = line.strip()
    if not text.startswith("/"):
        task = controller.send_user_message(line)
        if task is not None:
            await task
        return True

    command, _, argument = text.partition(" ")
    argument = argument.strip()
    if command == "/quit":
        return False
    if command == "/search":
        controller.apply_filter(query=argument)
    elif command == "/category":
        controller.apply_filter(category=argument)
    elif command == "/products":
        controller.apply_filter()
    elif command == "/select" and argument:
        product_id = resolve_product_id(controller, argument)
        if product_id is None:
            controller.view.show_notice(controller.state, f"Unknown product: {argument}")
        else:
            controller.toggle_select(product_id)
    elif command == "/selected":
        controller.view.render_selection(controller.state)
    elif command == "/clear":
        controller.clear_selection()
    elif command == "/routine":
        task = controller.generate_routine()
        if task is not None:
            await task
    else:
        print(HELP_TEXT)
    return True


async def run(controller: AppController) -> None:
    await controller.startup()
    print(HELP_TEXT)
    while True:
        try:
            line = await asyncio.to_thread(input, "> ")
        except EOFError:
            break
        if not await handle_line(controller, line):
            break
    await controller.wait_idle()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Browse products and ask for a usage routine.")
    parser.add_argument("--relay-url", default=settings.relay_url, help="relay proxy endpoint")
    parser.add_argument("--catalog", default=settings.catalog_source, help="products.json path or URL")
    parser.add_argument("--store", type=Path, default=settings.store_path, help="local state file")
    parser.add_argument("--log-level", default=settings.log_level)
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    env_path = BASE_DIR / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=True)
    args = parse_args(argv)
    configure_logging(args.log_level)
    controller = build_controller(args.relay_url, args.catalog, args.store, ConsoleView())
    try:
        asyncio.run(run(controller))
    except KeyboardInterrupt:
        logger.info("interrupted")


if __name__ == "__main__":
    main()
