"""
Pydantic schemas for permission responses.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class RolePublic(BaseModel):
    """Public role information."""
    id: str
    name: str
    is_system_role: bool

    model_config = ConfigDict(from_attributes=True)


class EffectivePermissionsResponse(BaseModel):
    """The caller's effective grants and team."""
    user_id: str
    organization_id: str
    role: Optional[RolePublic] = None
    permissions: Dict[str, Dict[str, bool]] = Field(..., description="Every recognized flag per resource")
    team_ids: List[str] = Field(default_factory=list, description="Users reporting directly or indirectly to the caller, caller included")
