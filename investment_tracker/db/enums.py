# investment_tracker/db/enums.py
import enum

# Project related enums
class ProjectStage(str, enum.Enum):
    INITIATION = "Initiation"
    MOU_SIGNED = "MoU Signed"
    MOVED_TO_SITE = "Moved to Site"
    COMPLETED = "Completed"


class ProjectLocation(str, enum.Enum):
    KEFFI = "Keffi"
    KARU = "Karu"
    LAFIA = "Lafia"
    DOMA = "Doma"
    AKWANGA = "Akwanga"
    AWE = "Awe"
    KOKONA = "Kokona"
    KEANA = "Keana"
    OBI = "Obi"
    WAMBA = "Wamba"
    NASARAWA = "Nasarawa"
    NASARAWA_EGGON = "Nasarawa Eggon"
    TOTO = "Toto"


class InvestmentType(str, enum.Enum):
    DDI = "DDI"      # Domestic Direct Investment
    FDI = "FDI"      # Foreign Direct Investment
    MIXED = "Mixed"

# User related enums
class UserRole(str, enum.Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

# View related enums
class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"
    NONE = "none"


class SortKey(str, enum.Enum):
    PROJECT_NAME = "projectName"
    PROJECT_STAGE = "projectStage"
    INVESTMENT_WORTH = "investmentWorth"
    JOBS_TO_BE_CREATED = "jobsToBeCreated"
    PROJECT_LOCATION = "projectLocation"
    PROJECT_SECTOR = "projectSector"
    UPDATED_AT = "updatedAt"
    CREATED_AT = "createdAt"
    ID = "id"


# lifecycle order, used by stage sorting
STAGE_ORDER = {stage: idx for idx, stage in enumerate(ProjectStage)}

# completion percentage shown on progress bars
STAGE_PROGRESS = {
    ProjectStage.INITIATION: 25,
    ProjectStage.MOU_SIGNED: 50,
    ProjectStage.MOVED_TO_SITE: 75,
    ProjectStage.COMPLETED: 100,
}

INVESTMENT_TYPE_LABELS = {
    InvestmentType.DDI: "DDI (Domestic Direct Investment)",
    InvestmentType.FDI: "FDI (Foreign Direct Investment)",
    InvestmentType.MIXED: "Mixed",
}

PREDEFINED_SECTORS = [
    "Agriculture",
    "Mining",
    "Energy",
    "ICT & Innovation",
    "Tourism",
    "Commerce & Retail",
    "Real Estate",
    "Healthcare",
    "Education",
    "Manufacturing",
    "Solid Minerals",
    "Transportation",
    "Water Resources",
]

ALL_STAGES_FILTER = "all_stages_filter_sentinel_value"
ALL_SECTORS_FILTER = "all_sectors_filter_sentinel_value"

DEFAULT_STAGE = ProjectStage.INITIATION
DEFAULT_LOCATION = ProjectLocation.KEFFI
DEFAULT_IMPORT_LOCATION = ProjectLocation.LAFIA
DEFAULT_INVESTMENT_TYPE = InvestmentType.DDI

SYSTEM_ACTOR = "system"
GUEST_ACTOR = "guest"
RESERVED_ADMIN_USERNAME = "admin"
