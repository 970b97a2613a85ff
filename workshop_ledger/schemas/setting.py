from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SettingIn(BaseModel):
    key: str = Field(default="", max_length=100)
    value: Any = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "key": "initial_capital",
                "value": "5000",
            }
        }
    )


class SettingOut(BaseModel):
    id: int
    key: str
    value: str
