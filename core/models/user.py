from pydantic import BaseModel


class SessionToken(BaseModel):
    user_id: str
    token: str
