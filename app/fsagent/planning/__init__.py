"""Plan queueing and dry-run simulation."""

from fsagent.planning.probe import DiskProbe, FilesystemProbe, MappingProbe
from fsagent.planning.queue import PlanQueue
from fsagent.planning.simulator import PlanSimulator, normalize_path, simulate

__all__ = [
    "DiskProbe",
    "FilesystemProbe",
    "MappingProbe",
    "PlanQueue",
    "PlanSimulator",
    "normalize_path",
    "simulate",
]
