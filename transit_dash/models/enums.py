"""
Ticketing Platform Enums

Standardized constants for ticketing API values and dashboard options.
"""

from enum import Enum
from typing import Iterable


class Role(str, Enum):
    """User role names as issued by the ticketing backend"""
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    BUS_OWNER = "Bus Owner"

    @classmethod
    def restricted_roles(cls) -> frozenset:
        """Roles that may only ever see their own company's data"""
        return frozenset({cls.BUS_OWNER})

    @classmethod
    def parse_many(cls, names: Iterable[str]) -> set:
        """Parse role names, ignoring ones this engine does not know about"""
        roles = set()
        for name in names:
            name = name.strip()
            for role in cls:
                if role.value.lower() == name.lower():
                    roles.add(role)
        return roles


class TimeFrame(str, Enum):
    """Chart granularity"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ExportFormat(str, Enum):
    """Report export formats supported by the upstream export endpoint"""
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"

    @property
    def extension(self) -> str:
        return {"csv": "csv", "excel": "xlsx", "pdf": "pdf"}[self.value]

    @property
    def media_type(self) -> str:
        return {
            "csv": "text/csv",
            "excel": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "pdf": "application/pdf",
        }[self.value]


class DatePreset(str, Enum):
    """Predefined date ranges offered by the date picker"""
    TODAY = "today"
    YESTERDAY = "yesterday"
    LAST_7 = "last_7"
    LAST_30 = "last_30"
    LAST_90 = "last_90"
    LAST_12_MONTHS = "last_12_months"

    @classmethod
    def to_label(cls, preset: "DatePreset") -> str:
        labels = {
            "today": "Today",
            "yesterday": "Yesterday",
            "last_7": "Last 7 days",
            "last_30": "Last 30 days",
            "last_90": "Last 90 days",
            "last_12_months": "Last 12 months",
        }
        return labels.get(preset.value, preset.value)
