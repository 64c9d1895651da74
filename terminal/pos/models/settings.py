from __future__ import annotations

from ..extensions import db


class TerminalSetting(db.Model):
    """
    Key-value settings local to this POS terminal.

    Values are JSON text; the terminal currently keeps a single row under
    the "pos-settings" key holding the backend connection settings.
    """
    __tablename__ = "terminal_settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_terminal_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.Text, nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
