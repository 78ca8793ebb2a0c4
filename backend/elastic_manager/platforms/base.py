"""
Connection handles to elastic applications running on a virtualization platform
"""

from abc import ABC, abstractmethod
from typing import List


class AppClientError(Exception):
    """Raised by platform adapters for any failure talking to the platform"""


class AppInstance(ABC):
    """One running instance of an elastic application"""

    @abstractmethod
    def get_name(self) -> str:
        ...

    @abstractmethod
    def get_cpu_load(self) -> float:
        """CPU load as a fraction of the instance's allotted CPU"""
        ...

    @abstractmethod
    def get_ram_load(self) -> float:
        """RAM load as a fraction of the instance's allotted memory"""
        ...


class AppClient(ABC):
    """Live connection to one elastic application"""

    @abstractmethod
    def get_app_instances(self) -> List[AppInstance]:
        """List running instances in the order the platform reports them"""
        ...

    @abstractmethod
    def scale_instances(self, increment_by: int) -> None:
        """Ask the platform to add (positive) or remove (negative) instances"""
        ...
