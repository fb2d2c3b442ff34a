"""
Visit data model for front-desk visitor logging

Represents a visitor entry/exit record stored in the visit store
"""

from datetime import datetime as dt
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GeneralVisit(BaseModel):
    """Ordinary visitor, no vehicle data"""

    kind: Literal["general"] = "general"


class TransporterVisit(BaseModel):
    """Haulier/driver visit carrying vehicle metadata"""

    kind: Literal["transporter"] = "transporter"
    haulier_company: str = Field(..., description="Transport company")
    license_plate: str = Field(..., description="Truck license plate (upper-case)")
    trailer_license_plate: Optional[str] = Field(
        None, description="Trailer license plate (upper-case)"
    )


VisitKind = Annotated[Union[GeneralVisit, TransporterVisit], Field(discriminator="kind")]


class VisitStatus(str, Enum):
    """Derived visit status, never stored"""
    ACTIVE = "active"
    FINISHED = "finished"
    AUTO_EXIT = "auto-exit"


class VisitCreate(BaseModel):
    """Model for registering a new visitor entry"""

    model_config = ConfigDict(populate_by_name=True)

    visitor_id: str = Field(..., description="Identity document number (DNI/NIE)")
    name: str
    company: str = ""
    person_to_visit: str = ""
    department: str = ""
    reason: Optional[str] = None
    visit_kind: VisitKind = Field(default_factory=GeneralVisit)
    privacy_policy_accepted: bool = False


class VisitRecord(BaseModel):
    """Visit record model"""

    model_config = ConfigDict(populate_by_name=True)

    # Assigned by the store on append
    id: Optional[str] = Field(None, alias="_id", description="Store record ID")

    visitor_id: str = Field(..., description="Canonical (upper-case) identity number")
    name: str
    company: str = ""
    person_to_visit: str = ""
    department: str = ""
    reason: Optional[str] = None
    visit_kind: VisitKind = Field(default_factory=GeneralVisit)
    privacy_policy_accepted: bool = False

    entry_time: dt = Field(..., description="Entry timestamp, set by the manager clock")
    exit_time: Optional[dt] = Field(None, description="Exit timestamp, None while open")
    auto_exit: bool = Field(default=False, description="Closed by the stale-visit sweep")

    @property
    def is_open(self) -> bool:
        return self.exit_time is None

    @property
    def is_transporter(self) -> bool:
        return isinstance(self.visit_kind, TransporterVisit)


class VisitExitRequest(BaseModel):
    """Model for registering a visitor exit"""

    visitor_id: str
