"""Control state and the channel to the external control agent."""

from .agent import BenchReport, FileAgent, SysReqReport
from .session import ControlSession
from .state import ControlState, SystemInfo

__all__ = ["BenchReport", "ControlSession", "ControlState", "FileAgent", "SysReqReport", "SystemInfo"]
