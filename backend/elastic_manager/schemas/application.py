"""
Pydantic schemas for application registration API operations
Request/Response models; JSON field names follow the public contract (camelCase)
"""

from pydantic import BaseModel, Field, ConfigDict

from elastic_manager.platforms.models import InstanceSnapshot, OpenNebulaConfig


class OpenNebulaRequest(BaseModel):
    """Body of OpenNebula create/update requests"""
    address: str = Field(..., min_length=1, description="OpenNebula XML-RPC endpoint")
    login: str = Field(..., min_length=1)
    password: str = Field(..., repr=False)
    role: int = Field(..., ge=0, description="VM group role id")
    template: int = Field(..., ge=0, description="VM template id used to scale up")
    vmgroup: int = Field(..., ge=0, description="VM group id")

    def to_config(self) -> OpenNebulaConfig:
        return OpenNebulaConfig(
            address=self.address,
            login=self.login,
            password=self.password,
            role=self.role,
            template=self.template,
            vmgroup=self.vmgroup
        )


class ScaleRequest(BaseModel):
    """Body of scale requests"""
    model_config = ConfigDict(populate_by_name=True)

    increment_by: int = Field(..., alias="incrementBy", description="Instances to add (negative to remove)")


class AppIdResponse(BaseModel):
    id: int


class AppInstanceResponse(BaseModel):
    """Snapshot of one running instance"""
    model_config = ConfigDict(populate_by_name=True)

    cpu_load: float = Field(..., alias="cpuLoad")
    ram_load: float = Field(..., alias="ramLoad")
    name: str

    @classmethod
    def from_snapshot(cls, snapshot: InstanceSnapshot) -> "AppInstanceResponse":
        return cls(cpu_load=snapshot.cpu_load, ram_load=snapshot.ram_load, name=snapshot.name)
