# Import all models here so Alembic can discover them.

from app.models.user import User, UserRole  # noqa: F401
from app.models.prospect import Prospect  # noqa: F401
from app.models.contact import Contact, ContactChange  # noqa: F401
from app.models.document import Document  # noqa: F401
from app.models.route import ProspectRoute, ProspectRouteDriver  # noqa: F401
from app.models.options import (  # noqa: F401
    OPTION_MODELS,
    ContactViaOption,
    DocumentType,
    DriverSourceOption,
    DriverStatusOption,
    ReasonRejectedOption,
    ReasonTerminatedOption,
    RecruiterOption,
    RouteEmailRecipient,
    SourceOption,
    StatusOption,
    VehicleTypeOption,
)
from app.models.help_content import HelpContent  # noqa: F401
