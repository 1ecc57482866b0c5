"""Document model — an uploaded file attached to a prospect."""

from app.extensions import db


class Document(db.Model):
    __tablename__ = "documents"

    id = db.Column(db.Integer, primary_key=True)
    prospect_id = db.Column(
        db.Integer,
        db.ForeignKey("prospects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type_id = db.Column(
        db.Integer,
        db.ForeignKey("document_types.id"),
        nullable=False,
    )
    description = db.Column(db.String(500), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    file_name = db.Column(db.String(255), nullable=False)  # original filename
    storage_path = db.Column(db.String(500), nullable=False)  # path in bucket
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    prospect = db.relationship("Prospect", back_populates="documents")

    def __repr__(self):
        return f"<Document {self.file_name}>"
