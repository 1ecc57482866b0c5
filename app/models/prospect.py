"""Prospect model (an "opportunity").

A potential client account. Contacts, documents and routes hang off it
and are deleted with it.
"""

from app.extensions import db


class Prospect(db.Model):
    __tablename__ = "prospects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zip_code = db.Column(db.String(20), nullable=True)
    phone_number = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    contacts = db.relationship(
        "Contact",
        back_populates="prospect",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    contact_changes = db.relationship(
        "ContactChange",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    documents = db.relationship(
        "Document",
        back_populates="prospect",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )
    routes = db.relationship(
        "ProspectRoute",
        back_populates="prospect",
        cascade="all, delete-orphan",
        lazy="dynamic",
    )

    def __repr__(self):
        return f"<Prospect {self.name}>"
