from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Set

from pydantic import ValidationError

from .catalog import CatalogLoader, filter_products
from .config import BASE_DIR, HISTORY_PERSIST_LIMIT
from .errors import PersistenceError, RelayHTTPError, TransportError
from .models import Citation, Message, Product
from .prompt_loader import render_prompt
from .relay_client import RelayClient
from .state import AppState, ProductId
from .store import LocalStore
from .utils import safe_json_loads, utc_now_iso
from .views import View

logger = logging.getLogger("routine_advisor.controller")

SELECTED_KEY = "lb_selected_products_v1"
MESSAGES_KEY = "lb_chat_messages_v1"
ROUTINE_PROMPT_FILE = "routine_request.md"
EMPTY_SELECTION_NOTICE = "Please select at least one product to generate a routine."
NO_REPLY_TEXT = "No response."


class AppController:
    """Single owner of AppState; every mutation goes through this class."""

    def __init__(
        self,
        store: LocalStore,
        catalog_loader: CatalogLoader,
        relay_client: RelayClient,
        view: Optional[View] = None,
        prompts_dir: Optional[Path] = None,
    ) -> None:
        """Purpose: Wire the controller to its collaborators and create empty state.
        Inputs/Outputs: Store, catalog loader, relay client, optional view and prompts dir.
        Side Effects / State: Creates AppState and the lock that serializes exchanges.
        Dependencies: LocalStore, CatalogLoader, RelayClient, View.
        Failure Modes: None at init.
        If Removed: Nothing owns the catalog, selection or conversation.
        Testing Notes: Build with a memory-only LocalStore and MockTransport-backed clients.
        """
        # Keep collaborators and start from an empty session.
        self.state = AppState()
        self.view = view or View()
        self._store = store
        self._catalog_loader = catalog_loader
        self._relay = relay_client
        self._prompts_dir = prompts_dir or (BASE_DIR / "prompts")
        self._exchange_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    async def startup(self) -> None:
        """Load the catalog, restore the previous session and draw every view."""
        self.state.products = await self._fetch_catalog()
        self.restore_session()
        self.apply_filter()
        self.view.render_selection(self.state)

    async def load_catalog(self) -> List[Product]:
        """Purpose: Load the product document and show the (possibly empty) product list.
        Inputs/Outputs: No inputs; returns the loaded products.
        Side Effects / State: Replaces state.products and state.visible; renders products.
        Dependencies: CatalogLoader, filter_products.
        Failure Modes: Fetch or parse errors leave the catalog empty; never raises.
        If Removed: The product list cannot be shown.
        Testing Notes: Point the loader at a missing file and expect an empty list.
        """
        # Fetch, then reuse the filter path so the view reflects the current filter.
        self.state.products = await self._fetch_catalog()
        self.apply_filter()
        return self.state.products

    def restore_session(self) -> None:
        """Purpose: Replace in-memory selection and conversation with persisted values.
        Inputs/Outputs: No inputs; no return value.
        Side Effects / State: Overwrites state.selected_ids and state.messages; renders chat.
        Dependencies: LocalStore, Message.
        Failure Modes: Absent or malformed data restores as empty; nothing is surfaced.
        If Removed: Every session starts blank.
        Testing Notes: Persist {2, 5} in one controller and restore it in another.
        """
        # Each key falls back to empty independently.
        self.state.selected_ids = dict.fromkeys(self._read_selection())
        self.state.messages = self._read_messages()
        self.view.render_chat(self.state)

    def toggle_select(self, product_id: ProductId) -> bool:
        """Flip membership of ``product_id``; returns True when it ends up selected."""
        if product_id in self.state.selected_ids:
            del self.state.selected_ids[product_id]
        else:
            self.state.selected_ids[product_id] = None
        self._persist_selection()
        self.view.render_selection(self.state)
        self.view.render_product_card(self.state, product_id)
        return product_id in self.state.selected_ids

    def deselect(self, product_id: ProductId) -> None:
        """Remove ``product_id`` from the selection; a no-op selection change still persists."""
        self.state.selected_ids.pop(product_id, None)
        self._persist_selection()
        self.view.render_selection(self.state)
        self.view.render_product_card(self.state, product_id)

    def clear_selection(self) -> None:
        """Empty the selection, persist it and redraw every product card."""
        self.state.selected_ids.clear()
        self._persist_selection()
        self.view.render_products(self.state)
        self.view.render_selection(self.state)

    def apply_filter(self, query: Optional[str] = None, category: Optional[str] = None) -> List[Product]:
        """Recompute the visible list; ``None`` keeps the current query or category."""
        if query is not None:
            self.state.filter.query = query
        if category is not None:
            self.state.filter.category = category
        self.state.visible = filter_products(
            self.state.products, self.state.filter.query, self.state.filter.category
        )
        self.view.render_products(self.state)
        return self.state.visible

    def send_user_message(self, text: str) -> Optional[asyncio.Task]:
        """Append a user message and start an exchange; blank text does nothing."""
        if not text or not text.strip():
            return None
        self._append_message("user", text)
        return self._schedule_exchange()

    def generate_routine(self) -> Optional[asyncio.Task]:
        """Purpose: Ask the assistant for a routine built from the selected products.
        Inputs/Outputs: No inputs; returns the exchange task, or None when nothing is selected.
        Side Effects / State: Appends the routine prompt as a user message and persists it.
        Dependencies: render_prompt, _schedule_exchange.
        Failure Modes: Empty selection shows a notice and makes no network call.
        If Removed: The routine button has no effect.
        Testing Notes: With no selection, assert a notice and that the relay is never called.
        """
        # Only products still present in the catalog can be described.
        selected = self.state.selected_products()
        if not selected:
            self._notify(EMPTY_SELECTION_NOTICE)
            return None
        summary = "\n".join(f"{p.name} ({p.brand}): {p.description}" for p in selected)
        prompt = render_prompt(self._prompts_dir / ROUTINE_PROMPT_FILE, products=summary)
        self._append_message("user", prompt)
        return self._schedule_exchange()

    async def wait_idle(self) -> None:
        """Wait for every scheduled exchange to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def _fetch_catalog(self) -> List[Product]:
        try:
            return await self._catalog_loader.load()
        except (TransportError, OSError, ValueError) as exc:
            logger.error("catalog load failed: %s", exc)
            return []

    def _schedule_exchange(self) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._run_exchange())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_exchange(self) -> None:
        """Purpose: Perform one relay exchange and apply its outcome to state.
        Inputs/Outputs: No inputs; no return value.
        Side Effects / State: Toggles the typing indicator; appends the assistant reply or
            shows a notice.
        Dependencies: RelayClient.send; the exchange lock.
        Failure Modes: Every error becomes a transient notice; none reaches the event loop.
        If Removed: Replies are never received.
        Testing Notes: Stub success, non-2xx and network failure; typing must end False.
        """
        # Exchanges run one at a time so replies land in request order.
        async with self._exchange_lock:
            self._set_typing(True)
            try:
                reply = await self._relay.send(self.state.messages, self.state.selected_products())
            except RelayHTTPError as exc:
                self._notify("API Error: " + exc.message)
                return
            except Exception as exc:
                logger.error("relay exchange failed: %s", exc)
                self._notify(f"Error: {exc}")
                return
            finally:
                self._set_typing(False)
            self._append_message("assistant", reply.reply or NO_REPLY_TEXT, reply.citations)

    def _append_message(self, role: str, content: str, citations: Sequence[Citation] = ()) -> None:
        self.state.messages.append(
            Message(role=role, content=content, time=utc_now_iso(), citations=list(citations))
        )
        self.view.render_chat(self.state)
        self._persist_messages()

    def _notify(self, text: str) -> None:
        self.state.notices.append(text)
        self.view.show_notice(self.state, text)

    def _set_typing(self, visible: bool) -> None:
        self.state.typing = visible
        self.view.show_typing(self.state, visible)

    def _persist_selection(self) -> None:
        self._write(SELECTED_KEY, list(self.state.selected_ids))

    def _persist_messages(self) -> None:
        recent = self.state.messages[-HISTORY_PERSIST_LIMIT:]
        self._write(MESSAGES_KEY, [m.to_stored() for m in recent])

    def _write(self, key: str, value: Any) -> None:
        # Store failures never reach the user.
        try:
            self._store.set_item(key, json.dumps(value, ensure_ascii=False))
        except (PersistenceError, OSError, TypeError) as exc:
            logger.debug("store write failed for %s: %s", key, exc)

    def _read(self, key: str) -> Any:
        try:
            return safe_json_loads(self._store.get_item(key))
        except (PersistenceError, OSError) as exc:
            logger.debug("store read failed for %s: %s", key, exc)
            return None

    def _read_selection(self) -> List[ProductId]:
        raw = self._read(SELECTED_KEY)
        if not isinstance(raw, list):
            return []
        return [item for item in raw if isinstance(item, (int, str)) and not isinstance(item, bool)]

    def _read_messages(self) -> List[Message]:
        raw = self._read(MESSAGES_KEY)
        if not isinstance(raw, list):
            return []
        try:
            return [Message.model_validate(item) for item in raw]
        except ValidationError as exc:
            logger.debug("discarding malformed conversation: %s", exc)
            return []
