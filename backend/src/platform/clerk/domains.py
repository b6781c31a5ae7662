from pydantic import BaseModel


class OrganizationMember(BaseModel):
    user_id: str
    email: str
    name: str | None = None
