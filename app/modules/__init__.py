"""Domain modules package."""

from app.modules.appointments import models as appointments_models  # noqa: F401
from app.modules.audit import models as audit_models  # noqa: F401
from app.modules.clinic import models as clinic_models  # noqa: F401
from app.modules.identity import models as identity_models  # noqa: F401
from app.modules.leaves import models as leaves_models  # noqa: F401
from app.modules.scheduling import models as scheduling_models  # noqa: F401
