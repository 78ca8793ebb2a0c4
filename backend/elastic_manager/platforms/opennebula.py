"""
OpenNebula adapter: the VMs of one VM group role are the application instances
"""

import logging
import xmlrpc.client
from typing import Any, List, Optional

import pyone

from elastic_manager.platforms.base import AppClient, AppClientError, AppInstance

logger = logging.getLogger(__name__)

SCALE_DOWN_ACTION = "terminate-hard"

# Failures raised by the pyone/XML-RPC stack
_CLIENT_ERRORS = (pyone.OneException, xmlrpc.client.Error, OSError)


def _field(element: Any, key: str) -> Any:
    """Read ``key`` from a pyone element that is either a dict or an object"""
    if element is None:
        return None
    if isinstance(element, dict):
        return element.get(key)
    return getattr(element, key, None)


def _number(element: Any, key: str, owner: str, missing: Optional[float] = None) -> float:
    value = _field(element, key)
    if value is None and missing is not None:
        return missing
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise AppClientError(f"{owner} has no numeric {key}: {value!r}") from e


class OpenNebulaAppInstance(AppInstance):
    """
    A VM of the role; VM info is fetched once per instance object.

    A VM that has not been monitored yet (pending, booting) reports zero load.
    """

    def __init__(self, server: Any, vm_id: int):
        self._server = server
        self._vm_id = vm_id
        self._vm: Optional[Any] = None

    def get_name(self) -> str:
        name = _field(self._info(), "NAME")
        if not name:
            raise AppClientError(f"VM {self._vm_id} has no name")
        return str(name)

    def get_cpu_load(self) -> float:
        vm = self._info()
        owner = f"VM {self._vm_id}"
        used = _number(_field(vm, "MONITORING"), "CPU", owner, missing=0.0)
        cpus = _number(_field(vm, "TEMPLATE"), "CPU", owner)
        if cpus <= 0:
            raise AppClientError(f"{owner} has no CPU allotted")
        return used / (100.0 * cpus)

    def get_ram_load(self) -> float:
        vm = self._info()
        owner = f"VM {self._vm_id}"
        used_kb = _number(_field(vm, "MONITORING"), "MEMORY", owner, missing=0.0)
        allotted_mb = _number(_field(vm, "TEMPLATE"), "MEMORY", owner)
        if allotted_mb <= 0:
            raise AppClientError(f"{owner} has no memory allotted")
        return used_kb / (allotted_mb * 1024.0)

    def _info(self) -> Any:
        if self._vm is None:
            try:
                self._vm = self._server.vm.info(self._vm_id)
            except _CLIENT_ERRORS as e:
                raise AppClientError(f"Unable to read VM {self._vm_id}: {e}") from e
        return self._vm


class OpenNebulaAppClient(AppClient):
    """VM-group-role-backed elastic application"""

    def __init__(self, server: Any, vmgroup_id: int, role_id: int, template_id: int):
        self.server = server
        self.vmgroup_id = vmgroup_id
        self.role_id = role_id
        self.template_id = template_id

    @classmethod
    def connect(
        cls,
        address: str,
        login: str,
        password: str,
        vmgroup_id: int,
        role_id: int,
        template_id: int
    ) -> "OpenNebulaAppClient":
        """Open an XML-RPC session and check the VM group role exists"""
        try:
            server = pyone.OneServer(address, session=f"{login}:{password}")
        except _CLIENT_ERRORS as e:
            raise AppClientError(f"Unable to reach OpenNebula at {address}: {e}") from e

        client = cls(server, vmgroup_id, role_id, template_id)
        client.role()
        return client

    def role(self) -> Any:
        try:
            vmgroup = self.server.vmgroup.info(self.vmgroup_id)
        except _CLIENT_ERRORS as e:
            raise AppClientError(f"Unable to read VM group {self.vmgroup_id}: {e}") from e

        roles = _field(_field(vmgroup, "ROLES"), "ROLE") or []
        for role in roles:
            if str(_field(role, "ID")) == str(self.role_id):
                return role
        raise AppClientError(f"VM group {self.vmgroup_id} has no role {self.role_id}")

    def vm_ids(self) -> List[int]:
        vms = _field(self.role(), "VMS")
        if not vms:
            return []
        try:
            return [int(vm_id) for vm_id in str(vms).split(",") if vm_id.strip()]
        except ValueError as e:
            raise AppClientError(f"Malformed VM list for role {self.role_id}: {vms!r}") from e

    def get_app_instances(self) -> List[AppInstance]:
        return [OpenNebulaAppInstance(self.server, vm_id) for vm_id in self.vm_ids()]

    def scale_instances(self, increment_by: int) -> None:
        if increment_by > 0:
            role_name = _field(self.role(), "NAME")
            extra_template = f'VMGROUP=[VMGROUP_ID="{self.vmgroup_id}",ROLE="{role_name}"]'
            for _ in range(increment_by):
                try:
                    vm_id = self.server.template.instantiate(self.template_id, "", False, extra_template)
                except _CLIENT_ERRORS as e:
                    raise AppClientError(f"Unable to instantiate template {self.template_id}: {e}") from e
                logger.info(f"Instantiated VM {vm_id} in VM group {self.vmgroup_id}, role {role_name}")
        elif increment_by < 0:
            vm_ids = self.vm_ids()
            for vm_id in vm_ids[max(0, len(vm_ids) + increment_by):]:
                try:
                    self.server.vm.action(SCALE_DOWN_ACTION, vm_id)
                except _CLIENT_ERRORS as e:
                    raise AppClientError(f"Unable to terminate VM {vm_id}: {e}") from e
                logger.info(f"Terminated VM {vm_id} in VM group {self.vmgroup_id}")
