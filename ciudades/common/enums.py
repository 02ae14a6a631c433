import enum


class CityMode(str, enum.Enum):
    AUTO = "auto"
    LIST = "list"
    CUSTOM_FIELD = "customField"
    LABEL = "label"


class CityResolutionMode(str, enum.Enum):
    LIST = "list"
    CUSTOM_FIELD = "customField"
    LABEL = "label"


class DueCategory(str, enum.Enum):
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    NO_DUE = "noDue"
    NONE = "none"


class CreatedAtSource(str, enum.Enum):
    CARD_ID = "cardId"
    UNKNOWN = "unknown"


class QuickFilter(str, enum.Enum):
    ALL = "all"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"
    NO_DUE = "noDue"
    UNDEFINED = "undefined"
