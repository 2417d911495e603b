"""
Activity store selection

Two physically separate tables hold activities with identical shape. A
StoreHandle names exactly one of them; it is built from a StoreMode and
nothing else, so code that holds a handle can never mix the two stores.
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from journalwatch.errors import InvalidArgumentError


class StoreMode(str, Enum):
    SANDBOX = "sandbox"
    LIVE = "live"

    @classmethod
    def parse(cls, value: str) -> "StoreMode":
        """Parse a caller supplied mode flag (aggregate endpoints only)"""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(mode.value for mode in cls)
            raise InvalidArgumentError(f"Invalid mode '{value}', expected one of: {allowed}") from None


_ACTIVITY_TABLES = MappingProxyType({
    StoreMode.SANDBOX: "sandbox_tool_activity",
    StoreMode.LIVE: "tool_activity",
})


@dataclass(frozen=True)
class StoreHandle:
    """One of the two activity stores"""
    mode: StoreMode

    @classmethod
    def for_mode(cls, mode: StoreMode) -> "StoreHandle":
        return cls(StoreMode(mode))

    @property
    def table_name(self) -> str:
        return _ACTIVITY_TABLES[self.mode]

    @property
    def source_mode(self) -> str:
        return self.mode.value
