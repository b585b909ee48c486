from .geography import Barangay, CityMunicipality, Province, Region  # noqa: F401
from .occupation import Occupation  # noqa: F401
from .role import Role  # noqa: F401
from .user import User  # noqa: F401
from .household import Household  # noqa: F401
from .resident import Resident, ResidentAudit, ResidentMigrationInfo  # noqa: F401
