from __future__ import annotations

from ..models.notes import DailyNote, NOTE_MAX_LENGTH
from ..time_utils import parse_day
from ..validation import ValidationError
from .record_store import get_record_store


def _day_key(value: str) -> str:
    try:
        day = parse_day(value)
    except ValueError:
        day = None
    if day is None:
        raise ValidationError("date must be YYYY-MM-DD")
    return day.isoformat()


def get_note(date: str) -> DailyNote | None:
    return get_record_store().get("DailyNote", _day_key(date))


def save_note(date: str, text: str) -> DailyNote:
    """Create or replace the note for a day."""
    key = _day_key(date)
    if text is not None and not isinstance(text, str):
        raise ValidationError("note_text must be a string")
    text = (text or "").strip()
    if not text:
        raise ValidationError("note_text cannot be blank")
    if len(text) > NOTE_MAX_LENGTH:
        raise ValidationError(f"note_text exceeds max length {NOTE_MAX_LENGTH}")

    store = get_record_store()
    if store.get("DailyNote", key) is None:
        return store.create("DailyNote", {"date": key, "note_text": text})
    return store.update("DailyNote", key, {"note_text": text})


def delete_note(date: str) -> bool:
    return get_record_store().delete("DailyNote", _day_key(date))
