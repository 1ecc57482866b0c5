"""User and role models.

User stores authentication credentials (Flask-Login via UserMixin).
UserRole maps a user to one of the four access roles; a user without a
row is a viewer.
"""

from flask_login import UserMixin

from app.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    role_row = db.relationship(
        "UserRole", back_populates="user", uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<User {self.email}>"


class UserRole(db.Model):
    __tablename__ = "user_roles"

    ROLES = ["admin", "editor", "dispatcher", "viewer"]

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    role = db.Column(db.String(20), nullable=False, default="viewer")

    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin', 'editor', 'viewer', 'dispatcher')",
            name="user_roles_role_check",
        ),
    )

    user = db.relationship("User", back_populates="role_row")

    def __repr__(self):
        return f"<UserRole {self.user_id}={self.role}>"
