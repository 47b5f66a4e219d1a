from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class ImageDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: Optional[str] = Field(None, alias="imageUrl")
    public_id: Optional[str] = Field(None, alias="publicId")
