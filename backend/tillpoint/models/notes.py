from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


NOTE_MAX_LENGTH = 200


class DailyNote(db.Model):
    """Free-text note pinned to one calendar day on the sales dashboard."""
    __tablename__ = "daily_notes"

    # YYYY-MM-DD
    date = db.Column(db.String(10), primary_key=True)
    note_text = db.Column(db.String(NOTE_MAX_LENGTH), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<DailyNote date={self.date!r}>"

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "note_text": self.note_text,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
