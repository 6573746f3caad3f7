# compose_image_spec.py: request model for the stateless branding compositor
from pydantic import BaseModel, Field
from typing import Optional

class ComposeImageRequest(BaseModel):
	baseImage: Optional[str] = Field(None, description="Generated image as a data URI or http(s) URL")
	logo: Optional[str] = Field(None, description="Logo as a data URI or http(s) URL")
	businessName: Optional[str] = None
	price: str = ""
	productName: str = ""
