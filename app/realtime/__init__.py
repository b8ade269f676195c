"""Live attendance session: socket connections, event routing and the session coordinator."""
from app.realtime.coordinator import AttendanceCoordinator, build_coordinator

__all__ = ["AttendanceCoordinator", "build_coordinator"]
