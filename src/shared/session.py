from __future__ import annotations

import re
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional, Union

from src.agents.copywriter_agent import ContentGenerationClient
from src.agents.image_agent import ImageGenerationClient
from src.media.compositor import CompositionResult, Compositor
from src.media.image_encoding import InlineImage, require_image_type
from src.shared.logging_utils import info as log_info, warning as log_warning
from src.specs.common.enums import GenerationPhase
from src.specs.common.errors import InputValidationError, MerchantAIError, SessionBusyError
from src.specs.models.listing import ProductListing

MISSING_INPUT_MESSAGE = "Please upload an image or enter a description first."
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."
CURRENCY_SYMBOL = "₦"


@dataclass(frozen=True)
class Idle:
    phase = GenerationPhase.IDLE


@dataclass(frozen=True)
class Loading:
    phase = GenerationPhase.LOADING


@dataclass(frozen=True)
class ListingReady:
    listing: ProductListing
    phase = GenerationPhase.SUCCESS


@dataclass(frozen=True)
class ListingFailed:
    message: str
    phase = GenerationPhase.ERROR


SessionPhase = Union[Idle, Loading, ListingReady, ListingFailed]


@dataclass
class EditableImageComposition:
    """Branding the user layers over the generated image before download."""

    base_image: Optional[str] = None
    logo: Optional[InlineImage] = None
    business_name: Optional[str] = None
    price: str = ""


def normalize_price_input(raw: str) -> str:
    """Keep digits and separators, then prefix the Naira sign."""
    return CURRENCY_SYMBOL + re.sub(r"[^0-9.,]", "", raw or "")


@dataclass
class ListingSession:
    """State of one merchant's listing flow.

    Generation calls run outside the lock; the lock only guards the
    check-and-set of the phase and the image gate, so at most one listing and
    one image generation are in flight per session.
    """

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    copywriter: ContentGenerationClient = field(default_factory=ContentGenerationClient, repr=False)
    image_agent: ImageGenerationClient = field(default_factory=ImageGenerationClient, repr=False)
    compositor: Optional[Compositor] = field(default=None, repr=False)

    state: SessionPhase = field(default_factory=Idle)
    error: Optional[str] = None
    source_image: Optional[InlineImage] = None
    text_input: str = ""
    is_generating_image: bool = False
    marketing_image: Optional[str] = None
    composition: Optional[EditableImageComposition] = None

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        self._epoch = 0
        if self.compositor is None:
            self.compositor = Compositor(self.session_id)

    @property
    def phase(self) -> GenerationPhase:
        return self.state.phase

    @property
    def listing(self) -> Optional[ProductListing]:
        return self.state.listing if isinstance(self.state, ListingReady) else None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def select_image(self, image: InlineImage) -> None:
        require_image_type(image)
        with self._lock:
            self.source_image = image
            self.error = None

    def set_text(self, text: str) -> None:
        with self._lock:
            self.text_input = text or ""

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------
    def generate_listing(self) -> ProductListing:
        with self._lock:
            if isinstance(self.state, Loading):
                raise SessionBusyError("A listing is already being generated")
            if self.source_image is None and not self.text_input.strip():
                self.error = MISSING_INPUT_MESSAGE
                raise InputValidationError(MISSING_INPUT_MESSAGE)
            self.state = Loading()
            self.error = None
            self.marketing_image = None
            self.is_generating_image = False
            self.composition = None
            self._epoch += 1
            epoch = self._epoch
            image, text = self.source_image, self.text_input

        log_info(self.session_id, "session:listing_started")
        try:
            listing = self.copywriter.with_trace(self.session_id).generate(image, text)
        except Exception as exc:
            message = str(exc) if isinstance(exc, MerchantAIError) else GENERIC_FAILURE_MESSAGE
            with self._lock:
                if epoch == self._epoch:
                    self.state = ListingFailed(message)
                    self.error = message
            raise

        with self._lock:
            if epoch != self._epoch:
                log_warning(self.session_id, "session:stale_listing_discarded")
                return listing
            self.state = ListingReady(listing)
            self.composition = EditableImageComposition(price=listing.suggestedPrice)
        log_info(self.session_id, "session:listing_ready")
        return listing

    def generate_image(self, edit_instruction: str = "") -> Optional[str]:
        """Generate (or re-generate with an edit) the lifestyle image.

        Returns None when there is no listing to illustrate.
        """
        with self._lock:
            listing = self.listing
            if listing is None:
                return None
            if self.is_generating_image:
                raise SessionBusyError("An image is already being generated")
            self.is_generating_image = True
            epoch = self._epoch
            # Edits always start again from the uploaded photo
            reference = self.source_image

        try:
            data_uri = self.image_agent.with_trace(self.session_id).generate_image(
                reference,
                listing.productName,
                listing.shortDescription,
                edit_instruction,
            )
        except Exception:
            with self._lock:
                # after a reset the gate may belong to a newer request
                if epoch == self._epoch:
                    self.is_generating_image = False
            raise

        with self._lock:
            if epoch != self._epoch:
                log_warning(self.session_id, "session:stale_image_discarded")
                return data_uri
            self.is_generating_image = False
            self.marketing_image = data_uri
            self.composition = EditableImageComposition(base_image=data_uri, price=listing.suggestedPrice)
        return data_uri

    # ------------------------------------------------------------------
    # Branding and download
    # ------------------------------------------------------------------
    def update_branding(
        self,
        *,
        business_name: Optional[str] = None,
        logo: Optional[InlineImage] = None,
        price: Optional[str] = None,
        clear_logo: bool = False,
    ) -> EditableImageComposition:
        if logo is not None:
            require_image_type(logo)
        with self._lock:
            if self.composition is None:
                raise InputValidationError("Generate a listing before adding branding")
            if business_name is not None:
                self.composition.business_name = business_name
            if clear_logo:
                self.composition.logo = None
            if logo is not None:
                self.composition.logo = logo
            if price is not None:
                self.composition.price = normalize_price_input(price)
            return self.composition

    def compose(self) -> Optional[CompositionResult]:
        with self._lock:
            composition = self.composition
            listing = self.listing
            if composition is None or listing is None or not composition.base_image:
                return None
            base, logo = composition.base_image, composition.logo
            name, price = composition.business_name, composition.price
        return self.compositor.compose(base, logo, name, price, listing.productName)

    def reset(self) -> None:
        with self._lock:
            self._epoch += 1
            self.state = Idle()
            self.error = None
            self.source_image = None
            self.text_input = ""
            self.is_generating_image = False
            self.marketing_image = None
            self.composition = None


__all__ = [
    "Idle",
    "Loading",
    "ListingReady",
    "ListingFailed",
    "SessionPhase",
    "EditableImageComposition",
    "ListingSession",
    "normalize_price_input",
]
