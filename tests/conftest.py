"""Pytest configuration for tests.

Sets up Python path and shared fixtures for all tests.
"""

import dataclasses
import json
import sys
from pathlib import Path
from typing import List

import pytest

# Add project root to Python path so imports work correctly
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from routine_advisor.config import load_settings  # noqa: E402
from routine_advisor.views import View  # noqa: E402

SAMPLE_PRODUCTS = [
    {
        "id": 1,
        "name": "Hydrating Cleanser",
        "brand": "CeraVe",
        "description": "Gentle cleanser with ceramides",
        "category": "cleanser",
        "image": "img/1.png",
    },
    {
        "id": 2,
        "name": "Vitamin C Serum",
        "brand": "La Roche-Posay",
        "description": "Brightening serum with pure vitamin C",
        "category": "skincare",
        "image": "img/2.png",
    },
    {
        "id": 5,
        "name": "Total Repair Shampoo",
        "brand": "L'Oreal Paris",
        "description": "Repairs damaged hair",
        "category": "haircare",
        "image": "img/5.png",
    },
    {
        "id": 7,
        "name": "Night Cream",
        "brand": "L'Oreal Paris",
        "description": "Overnight moisturizer with retinol",
        "category": "skincare",
        "image": "img/7.png",
    },
]


class RecordingView(View):
    """View that records every render call for assertions."""

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.notices: List[str] = []
        self.typing: List[bool] = []

    def render_products(self, state):
        self.calls.append("products")

    def render_product_card(self, state, product_id):
        self.calls.append(f"card:{product_id}")

    def render_selection(self, state):
        self.calls.append("selection")

    def render_chat(self, state):
        self.calls.append("chat")

    def show_notice(self, state, text):
        self.notices.append(text)

    def show_typing(self, state, visible):
        self.typing.append(visible)


@pytest.fixture
def settings():
    """Settings with a test credential and a stub upstream URL."""
    return dataclasses.replace(
        load_settings(),
        openai_api_key="test-key",
        openai_model="gpt-4o",
        upstream_url="https://upstream.test/v1/chat/completions",
        max_tokens=800,
        temperature=0.7,
        brand_name="L'Oréal",
        cors_enabled=True,
    )


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps({"products": SAMPLE_PRODUCTS}), encoding="utf-8")
    return path


@pytest.fixture
def recording_view():
    return RecordingView()
