from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict

from src.specs.common.enums import GenerationPhase
from src.specs.models.listing import ProductListing

class GenerateListingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sessionId: Optional[str] = None
    image: Optional[str] = Field(None, description="Product photo as a base64 data URI")
    text: Optional[str] = Field(None, description="Free-text product description")

class GenerateImageRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sessionId: str
    editInstruction: Optional[str] = Field(None, description="Change to apply to the previous lifestyle shot")

class BrandingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sessionId: str
    businessName: Optional[str] = None
    price: Optional[str] = Field(None, description="Price override; non-numeric characters are dropped")
    logo: Optional[str] = Field(None, description="Logo as a data URI or http(s) URL")
    clearLogo: bool = False

class SessionRef(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sessionId: str

class CompositionView(BaseModel):
    hasBaseImage: bool
    hasLogo: bool
    businessName: Optional[str] = None
    price: str

class SessionSnapshot(BaseModel):
    sessionId: str
    status: GenerationPhase
    listing: Optional[ProductListing] = None
    error: Optional[str] = None
    imagePreview: Optional[str] = None
    textInput: str = ""
    isGeneratingImage: bool = False
    marketingImage: Optional[str] = None
    composition: Optional[CompositionView] = None

class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errorCode: Optional[str] = None
    details: Optional[Dict] = None
