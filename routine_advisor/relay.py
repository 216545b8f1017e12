from __future__ import annotations

"""Request shaping for the relay proxy.

The relay prepends a fixed system instruction to the caller's conversation and,
when products were sent, appends a system message summarizing them.
"""

from typing import Any, Dict, List, Sequence

from .config import Settings
from .models import ProductSummary, RelayRequest
from .prompt_loader import render_prompt

SYSTEM_INSTRUCTION_FILE = "system_instruction.md"


def load_system_instruction(settings: Settings) -> str:
    """Purpose: Render the fixed persona and citation policy for the configured brand.
    Inputs/Outputs: Input is Settings; output is the system instruction text.
    Side Effects / State: Reads the prompt file from settings.prompts_dir.
    Dependencies: Uses render_prompt.
    Failure Modes: Missing prompt file raises FileNotFoundError at app creation.
    If Removed: Upstream calls lose the advisor persona and the SOURCES requirement.
    Testing Notes: Override BRAND_NAME and check it appears in the rendered text.
    """
    # Interpolate the brand into the instruction template.
    return render_prompt(settings.prompts_dir / SYSTEM_INSTRUCTION_FILE, brand=settings.brand_name)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def summarize_products(products: Sequence[ProductSummary]) -> str:
    """Format products as the bulleted ``name (brand): description`` list; absent fields render empty."""
    return "\n".join(
        f"- {_as_text(p.name)} ({_as_text(p.brand)}): {_as_text(p.description)}" for p in products
    )


def build_outbound_messages(request: RelayRequest, system_instruction: str) -> List[Dict[str, Any]]:
    """Purpose: Build the message list forwarded to the language-model API.
    Inputs/Outputs: Inputs are the validated RelayRequest and system text; output is a list
        of {role, content} dicts.
    Side Effects / State: None; pure function.
    Dependencies: Uses summarize_products.
    Failure Modes: None; roles and contents are passed through without validation.
    If Removed: The relay cannot forward conversations upstream.
    Testing Notes: Check ordering (system, turns, product data) and that the product
        message is omitted for an empty product list.
    """
    # System instruction first, then the caller's turns verbatim.
    outbound: List[Dict[str, Any]] = [{"role": "system", "content": system_instruction}]
    outbound.extend(turn.outbound() for turn in request.messages)
    if request.products:
        outbound.append(
            {"role": "system", "content": "Product data:\n" + summarize_products(request.products)}
        )
    return outbound
