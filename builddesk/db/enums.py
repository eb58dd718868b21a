# builddesk/db/enums.py
import enum

# Project related enums
class ProjectStatus(enum.Enum):
    NEW = "New"
    UNDER_CONSTRUCTION = "Under Construction"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    OPPORTUNITY_LOST = "Opportunity Lost"


class TimelineEventStatus(enum.Enum):
    completed = "completed"
    in_progress = "in-progress"
    pending = "pending"


# Agreement related enums
class AgreementType(enum.Enum):
    CONSTRUCTION = "Construction"
    RENOVATION = "Renovation"
    INTERIOR = "Interior"
    MAINTENANCE = "Maintenance"
    CUSTOM = "Custom"


# Id prefixes, `<PREFIX><zero-padded-sequence>`
class IdPrefix(str, enum.Enum):
    PROJECT = "PRJ"
    TIMELINE_EVENT = "TL"
    LINE_ITEM = "LI"
    TEMPLATE = "ET"
    TEMPLATE_ITEM = "ETI"
    ESTIMATION = "PE"
    ESTIMATION_ITEM = "PEI"
    AGREEMENT = "AG"
