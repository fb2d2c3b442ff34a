"""
Employee roster model

Read-only view of the employee directory used for department autofill
and report recipients
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Employee(BaseModel):
    """Employee directory entry"""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id", description="Directory document ID")
    name: str
    department: str
    email: str = ""
    receives_reports: bool = Field(
        default=False, description="Include in visit report e-mails"
    )
