from __future__ import annotations

"""Views over AppState.

A view never mutates state; the controller calls it after every change. The
base class renders nothing, which is what headless use and tests want.
"""

import sys
from typing import Optional, TextIO

from .models import Message, Product
from .state import AppState, ProductId


class View:
    """Render hooks invoked by AppController. All methods are no-ops here."""

    def render_products(self, state: AppState) -> None:
        pass

    def render_product_card(self, state: AppState, product_id: ProductId) -> None:
        pass

    def render_selection(self, state: AppState) -> None:
        pass

    def render_chat(self, state: AppState) -> None:
        pass

    def show_notice(self, state: AppState, text: str) -> None:
        pass

    def show_typing(self, state: AppState, visible: bool) -> None:
        pass


class ConsoleView(View):
    """Plain-text rendering for the interactive console client."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout
        self._printed_messages = 0

    def render_products(self, state: AppState) -> None:
        if not state.visible:
            self._write("No products found.")
            return
        for product in state.visible:
            self._write(_format_card(product, state.is_selected(product.id)))

    def render_product_card(self, state: AppState, product_id: ProductId) -> None:
        product = state.find_product(product_id)
        if product is not None:
            self._write(_format_card(product, state.is_selected(product_id)))

    def render_selection(self, state: AppState) -> None:
        selected = state.selected_products()
        if not selected:
            self._write("No products selected")
            return
        self._write("Selected: " + ", ".join(p.name for p in selected))

    def render_chat(self, state: AppState) -> None:
        """Print messages appended since the last render; a shorter history (restore) reprints all."""
        if len(state.messages) < self._printed_messages:
            self._printed_messages = 0
        for message in state.messages[self._printed_messages:]:
            self._write(_format_message(message))
        self._printed_messages = len(state.messages)

    def show_notice(self, state: AppState, text: str) -> None:
        self._write(f"! {text}")

    def show_typing(self, state: AppState, visible: bool) -> None:
        if visible:
            self._write("Assistant is typing…")

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()


def _format_card(product: Product, selected: bool) -> str:
    marker = "[x]" if selected else "[ ]"
    category = f" <{product.category}>" if product.category else ""
    return f"{marker} {product.id}: {product.name} ({product.brand}){category}"


def _format_message(message: Message) -> str:
    speaker = "assistant" if message.role == "assistant" else "you"
    lines = [f"{speaker}> {message.content}"]
    for citation in message.citations:
        lines.append(f"    source: {citation.title or citation.url} {citation.url}".rstrip())
    return "\n".join(lines)
