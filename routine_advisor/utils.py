import json
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now_iso() -> str:
    """Purpose: Produce the timestamp format used for messages and relay payloads.
    Inputs/Outputs: No inputs; output is an ISO-8601 UTC string with millisecond precision.
    Side Effects / State: Reads the system clock.
    Dependencies: datetime; called by the controller and the relay client.
    Failure Modes: None.
    If Removed: Messages lose their creation time and payloads their "now" field.
    Testing Notes: Parse the output with datetime.fromisoformat and check the UTC offset.
    """
    # Millisecond precision with a trailing Z, matching browser toISOString output.
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def safe_json_loads(text: Optional[str]) -> Optional[Any]:
    """Purpose: Parse a JSON document from a response body safely.
    Inputs/Outputs: Input is raw text; output is the decoded value or None if parsing fails.
    Side Effects / State: None; pure function.
    Dependencies: Uses json.loads; called by the relay client and the local store.
    Failure Modes: Returns None on JSONDecodeError or empty input.
    If Removed: Error bodies and persisted values crash the caller when malformed.
    Testing Notes: Validate valid JSON parses and malformed JSON returns None.
    """
    # Empty bodies and malformed documents both map to None.
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None
