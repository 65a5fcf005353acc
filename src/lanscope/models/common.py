from enum import Enum

from pydantic import BaseModel


class BasePydanticModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "use_enum_values": True,
    }

class RecordCategory(str, Enum):
    IDENTITY = "Identity"
    CAPABILITIES = "Capabilities"
    NETWORK = "Network & Security"
    VERSION = "Version & Firmware"
    STATUS = "Status"
    CONFIGURATION = "Configuration"
    OTHER = "Other"

class IconTag(str, Enum):
    PRINTER = "Printer"
    SPEAKER = "Speaker"
    TV = "TV"
    DESKTOP = "Desktop"
    DISK = "Disk"
    ROUTER = "Router"
    SERVER = "Server"
    CAMERA = "Camera"
    HOME = "Home"
    UNKNOWN = "Unknown"

class CoordinatorState(str, Enum):
    IDLE = "idle"
    META_DISCOVERING = "meta-discovering"
    CATEGORY_BROWSING = "category-browsing"
