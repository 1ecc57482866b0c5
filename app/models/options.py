"""Dropdown option taxonomies.

Eleven admin-managed, ordered lists that populate select inputs. They all
share {id, name, sort_order}; driver statuses also carry is_slot_filler.
"""

from app.extensions import db


class OptionMixin:
    """Shared columns for every option table."""

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    sort_order = db.Column(db.Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<{type(self).__name__} {self.sort_order}:{self.name}>"


class StatusOption(OptionMixin, db.Model):
    __tablename__ = "status_options"


class ContactViaOption(OptionMixin, db.Model):
    __tablename__ = "contact_via_options"


class DocumentType(OptionMixin, db.Model):
    __tablename__ = "document_types"


class SourceOption(OptionMixin, db.Model):
    __tablename__ = "source_options"


class DriverSourceOption(OptionMixin, db.Model):
    __tablename__ = "driver_source_options"


class DriverStatusOption(OptionMixin, db.Model):
    __tablename__ = "driver_status_options"

    is_slot_filler = db.Column(db.Boolean, nullable=False, default=False)


class RecruiterOption(OptionMixin, db.Model):
    __tablename__ = "recruiter_options"


class ReasonTerminatedOption(OptionMixin, db.Model):
    __tablename__ = "reason_terminated_options"


class ReasonRejectedOption(OptionMixin, db.Model):
    __tablename__ = "reason_rejected_options"


class VehicleTypeOption(OptionMixin, db.Model):
    __tablename__ = "vehicle_type_options"


class RouteEmailRecipient(OptionMixin, db.Model):
    __tablename__ = "route_email_recipients"


OPTION_MODELS = {
    model.__tablename__: model
    for model in (
        StatusOption,
        ContactViaOption,
        DocumentType,
        SourceOption,
        DriverSourceOption,
        DriverStatusOption,
        RecruiterOption,
        ReasonTerminatedOption,
        ReasonRejectedOption,
        VehicleTypeOption,
        RouteEmailRecipient,
    )
}
