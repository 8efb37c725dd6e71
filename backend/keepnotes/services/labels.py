"""
KeepNotes Backend — Label Normalizer
======================================

What:  Coerces whatever the client sent as `labels` into a clean list of strings.
Why:   Browsers send labels as comma text in forms, API clients as JSON
       arrays; storage only ever holds a list of trimmed, non-empty strings.
Who:   NoteService.create_note() (multipart text field) and NotePatch (JSON value).

Accepted shapes:
    ["ops", " release "]      → ["ops", "release"]
    '["ops", "release"]'      → ["ops", "release"]     (JSON array text)
    " ops , release "         → ["ops", "release"]     (comma text)
    None / "" / []            → []
    anything else             → []

The raw value is first classified into one of three explicit input shapes
(LabelInput) and only then normalized. Label input is advisory metadata, so
nothing here ever raises.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union


@dataclass(frozen=True)
class NoLabels:
    """Absent, empty, or an unsupported shape."""


@dataclass(frozen=True)
class LabelSequence:
    """An already-structured sequence (list/tuple, or a decoded JSON array)."""

    items: Sequence[Any]


@dataclass(frozen=True)
class CommaText:
    """Free text to be split on commas."""

    text: str


LabelInput = Union[NoLabels, LabelSequence, CommaText]


def as_text(value: Any) -> str:
    """
    Render a scalar the way it reads in JSON.

    Booleans become "true"/"false" and None becomes "null" so a JSON array
    like [true, null] keeps the spelling the client used.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _decode_json_array(text: str) -> Optional[List[Any]]:
    """Returns the decoded list if `text` is a JSON array, otherwise None."""
    try:
        decoded = json.loads(text)
    except ValueError:
        return None
    return decoded if isinstance(decoded, list) else None


def classify_labels(raw: Any) -> LabelInput:
    """Resolve a raw `labels` value into exactly one LabelInput shape."""
    if raw is None or raw == "":
        return NoLabels()
    if isinstance(raw, (list, tuple)):
        return LabelSequence(items=raw) if raw else NoLabels()
    if isinstance(raw, str):
        items = _decode_json_array(raw)
        if items is not None:
            return LabelSequence(items=items)
        return CommaText(text=raw)
    return NoLabels()


def normalize_labels(raw: Any) -> List[str]:
    """
    Normalize label input into an ordered list of trimmed, non-empty strings.

    Order is preserved and duplicates are kept.
    """
    shape = classify_labels(raw)
    if isinstance(shape, LabelSequence):
        pieces = [as_text(item) for item in shape.items]
    elif isinstance(shape, CommaText):
        pieces = shape.text.split(",")
    else:
        return []
    return [piece.strip() for piece in pieces if piece.strip()]
