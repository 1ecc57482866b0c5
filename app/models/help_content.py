"""HelpContent model — admin-authored HTML help copy, one row per tab."""

from app.extensions import db


class HelpContent(db.Model):
    __tablename__ = "help_content"

    PAGE_IDS = [
        "dashboard",
        "bod_report",
        "performance",
        "recruiting",
        "prospects",
        "routes",
        "drivers",
        "documents",
        "admin",
    ]

    id = db.Column(db.Integer, primary_key=True)
    page_id = db.Column(db.String(50), unique=True, nullable=False)
    content = db.Column(db.Text, nullable=True)  # raw HTML
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<HelpContent {self.page_id}>"
