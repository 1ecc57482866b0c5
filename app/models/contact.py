"""Contact (interaction) and ContactChange models.

A Contact is one dated negotiation snapshot for a Prospect; the newest one
by contact_date is the prospect's current state. ContactChange rows are an
append-only field-level history of contact edits.
"""

from app.extensions import db


class Contact(db.Model):
    __tablename__ = "contacts"

    id = db.Column(db.Integer, primary_key=True)
    prospect_id = db.Column(
        db.Integer,
        db.ForeignKey("prospects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_name = db.Column(db.String(255), nullable=False)
    contact_date = db.Column(db.Date, nullable=True)
    source = db.Column(db.String(120), nullable=True)
    contact_via = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(120), nullable=False, default="Discovery")
    forecast = db.Column(db.Numeric(14, 2, asdecimal=False), default=0)
    actual = db.Column(db.Numeric(14, 2, asdecimal=False), nullable=True)
    probability = db.Column(db.Float, default=0)  # 0-100
    gross_margin = db.Column(db.Float, default=0)  # 0-100
    final_gross_margin = db.Column(db.Float, nullable=True)
    completed = db.Column(db.Boolean, default=False, nullable=False)

    # --- Milestones ---
    quote_due_date = db.Column(db.Date, nullable=True)
    date_quote_submitted = db.Column(db.Date, nullable=True)
    expected_closing = db.Column(db.Date, nullable=True)
    actual_close_date = db.Column(db.Date, nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    actual_start_date = db.Column(db.Date, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    prospect = db.relationship("Prospect", back_populates="contacts")

    def __repr__(self):
        return f"<Contact {self.contact_name} ({self.status})>"


class ContactChange(db.Model):
    __tablename__ = "contact_changes"

    id = db.Column(db.Integer, primary_key=True)
    prospect_id = db.Column(
        db.Integer,
        db.ForeignKey("prospects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    contact_id = db.Column(
        db.Integer,
        db.ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
    )
    field_name = db.Column(db.String(120), nullable=False)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    def __repr__(self):
        return f"<ContactChange {self.field_name} on {self.contact_id}>"
