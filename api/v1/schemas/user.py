from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SessionOut(BaseModel):
    user_id: str
    token: str

    model_config = ConfigDict(from_attributes=True)
