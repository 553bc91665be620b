from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

class KeymapSpec(BaseModel):
    type: str
    parent: str = "general"
    bindings: Dict[str, str] = Field(default_factory=dict)
    replace: bool = False  # drop the built-in bindings of this type

class DispatchConfig(BaseModel):
    keymaps: List[KeymapSpec] = Field(default_factory=list)
    allow_edit_commands: Optional[List[str]] = None
    skip_edit_commands: Optional[List[str]] = None
    setup_overrides: Dict[str, str] = Field(default_factory=dict)
    initial_views: Dict[str, Literal["list", "grid"]] = Field(default_factory=dict)
