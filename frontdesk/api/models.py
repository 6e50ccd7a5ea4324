"""
Pydantic request/response models for the API.

Request bodies use the camelCase field names the guest card pages send.
Required fields are validated in the routers so a missing field is a 400
with a readable message rather than a schema error.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ============== Guest Card Requests ==============

class CreateRequestBody(CamelModel):
    """New-format requests send first/last name, email and phone; legacy ones just a name."""
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None


class UpdateRequestBody(CamelModel):
    status: Optional[str] = None


# ============== Cards ==============

class CardActionBody(CamelModel):
    """Body for POST /api/cards?action=assign|unassign."""
    card_number: Optional[str] = Field(None, alias="cardNumber")
    user_name: Optional[str] = Field(None, alias="userName")
    request_id: Optional[str] = Field(None, alias="requestId")
    user_email: Optional[str] = Field(None, alias="userEmail")
    user_phone: Optional[str] = Field(None, alias="userPhone")
