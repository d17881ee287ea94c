from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from models import Guest
from services.domain_utils import normalize_linkedin_profile_url


KNOWN_GUEST_FIELDS = ("api_id", "name", "email", "linkedin_url")


class MalformedRequestError(ValueError):
    """The request payload is not a usable list of guests."""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def guest_from_record(record: Dict[str, Any], linkedin_column: Optional[str] = None) -> Guest:
    """Build a Guest from one input row; unknown columns are kept in ``extra``."""
    api_id = _text(record.get("api_id"))
    if not api_id:
        raise MalformedRequestError("guest record is missing api_id")

    raw_url = record.get(linkedin_column) if linkedin_column else record.get("linkedin_url")
    extra = {k: v for k, v in record.items() if k not in KNOWN_GUEST_FIELDS}
    return Guest(
        api_id=api_id,
        name=_text(record.get("name")),
        email=_text(record.get("email")),
        linkedin_url=normalize_linkedin_profile_url(raw_url) if raw_url else None,
        extra=extra,
    )


def parse_guest_list(payload: Any, linkedin_column: Optional[str] = None) -> List[Guest]:
    """Validate a request payload and return its guests in input order.

    Accepts a list of guest objects or an object with a ``guests`` list.
    Raises MalformedRequestError before any enrichment work starts.
    """
    if isinstance(payload, dict):
        payload = payload.get("guests")
    if not isinstance(payload, list):
        raise MalformedRequestError("request body must be a list of guests")

    guests: List[Guest] = []
    seen: set[str] = set()
    for idx, record in enumerate(payload):
        if not isinstance(record, dict):
            raise MalformedRequestError(f"guest #{idx} is not an object")
        guest = guest_from_record(record, linkedin_column)
        if guest.api_id in seen:
            raise MalformedRequestError(f"duplicate api_id: {guest.api_id}")
        seen.add(guest.api_id)
        guests.append(guest)
    return guests


def read_guests_csv(text: str, linkedin_column: Optional[str] = None) -> List[Guest]:
    """Parse a guest export CSV (header row required, blank lines skipped)."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), restkey="_extra_columns")
    rows = [dict(row) for row in reader]
    return parse_guest_list(rows, linkedin_column)


def load_guests_file(path: Path, linkedin_column: Optional[str] = None) -> List[Guest]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedRequestError(f"cannot read guest list {path}: {e}") from e
    if Path(path).suffix.lower() == ".csv":
        return read_guests_csv(text, linkedin_column)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedRequestError(f"invalid JSON: {e}") from e
    return parse_guest_list(payload, linkedin_column)
