"""
ProductForm: one create/update editing session for a product.

The form owns a FormState and moves it forward through the pure transitions
in product_form.core.transitions. Side effects (preview files, HTTP calls,
caller callbacks) happen here and nowhere else.

Usage:
    async with ProductApiClient(token=token) as api:
        form = ProductForm(api, on_submit=show_product)
        await form.load_directory()
        form.set_field("title", "Red Mug")
        form.attach([LocalFile.from_path("mug.jpg")])
        await form.submit()
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, Optional, Union

from product_form.config import get_settings
from product_form.core import transitions as t
from product_form.core.attachments import ImageAttachmentManager
from product_form.core.state_machine import SUBMITTING, SUCCEEDED
from product_form.core.validation import FormValidationError
from product_form.models.draft import ProductDraft
from product_form.models.images import LocalFile, PendingImage
from product_form.schemas.product import ProductOut
from product_form.services.api_client import GENERIC_SUBMIT_ERROR, ProductApiClient, SubmissionError
from product_form.services.directory import (
    DIRECTORY_ERROR_NOTICE, Directory, DirectoryLoadError, DirectoryLoader,
)
from product_form.services.submission import SubmissionProtocol
from product_form.utils.images import PreviewStore

logger = logging.getLogger(__name__)


class FormClosedError(Exception):
    pass


class ProductForm:
    def __init__(
        self,
        api: ProductApiClient,
        product: Optional[Union[Dict[str, Any], ProductOut]] = None,
        on_submit: Optional[Callable[[ProductOut], None]] = None,
        on_cancel: Optional[Callable[[], None]] = None,
        previews: Optional[PreviewStore] = None,
    ):
        settings = get_settings()
        if isinstance(product, ProductOut):
            product = product.to_entity()
        self.state = t.FormState.for_update(product) if product else t.FormState.for_create()
        self.directory = Directory()
        if previews is None:
            previews = PreviewStore(settings.PREVIEW_DIR, settings.PREVIEW_SIZE)
        self.previews = previews
        self.attachments = ImageAttachmentManager(self.previews)
        self._loader = DirectoryLoader(api)
        self._submission = SubmissionProtocol(api)
        self.on_submit = on_submit
        self.on_cancel = on_cancel
        self.closed = False

    # --- read side ---

    @property
    def draft(self) -> ProductDraft:
        return self.state.draft

    @property
    def errors(self) -> Dict[str, str]:
        return dict(self.state.validation.errors)

    @property
    def visible_errors(self) -> Dict[str, str]:
        return self.state.validation.visible_errors()

    @property
    def status(self) -> str:
        return self.state.submission.status

    @property
    def is_submitting(self) -> bool:
        return self.state.submission.in_flight

    def _ensure_open(self) -> None:
        if self.closed:
            raise FormClosedError("The form has been closed")

    # --- reference data ---

    async def load_directory(self) -> Directory:
        """
        Load categories and brands. A failure is not fatal: the lists stay
        empty and a persistent notice is stored on the state.
        """
        try:
            self.directory = await self._loader.load()
        except DirectoryLoadError as e:
            logger.warning("Directory load failed: %s", e)
            self.state = t.directory_failed(self.state, DIRECTORY_ERROR_NOTICE)
        return self.directory

    # --- field events ---

    def set_field(self, name: str, value: Any) -> Dict[str, str]:
        """Change a field and re-run its rule. Returns the current error mapping."""
        self._ensure_open()
        self.state = t.field_set(self.state, name, value)
        return self.errors

    def blur(self, name: str) -> Dict[str, str]:
        self._ensure_open()
        self.state = t.field_blur(self.state, name)
        return self.errors

    # --- image events ---

    def attach(self, files: Iterable[LocalFile]):
        self._ensure_open()
        files = list(files)
        if not files:
            return self.draft.images
        self.state = t.uploading_set(self.state, True)
        try:
            images = self.attachments.attach(self.draft.images, files)
            self.state = t.images_attached(self.state, images)
        finally:
            self.state = t.uploading_set(self.state, False)
        return self.draft.images

    def detach(self, image_id: str):
        self._ensure_open()
        removed = next((img for img in self.draft.images if img.id == image_id), None)
        images = self.attachments.detach(self.draft.images, image_id)
        if isinstance(removed, PendingImage) and removed.replaces:
            self.state = t.images_detached(self.state, images, old_public_id=None)
        else:
            self.state = t.images_detached(self.state, images)
        return self.draft.images

    def replace_image(self, image_id: str, file: LocalFile):
        """Replace a stored image in place; sends oldPublicId on update."""
        self._ensure_open()
        if not self.state.is_edit:
            raise ValueError("Images can only be replaced when editing a product")
        target = next((img for img in self.draft.images if img.id == image_id), None)
        images = self.attachments.replace(self.draft.images, image_id, file)
        self.state = t.image_replaced(self.state, images, target.remote_asset_id)
        return self.draft.images

    # --- whole record ---

    def validate(self, raise_on_error: bool = False) -> bool:
        self._ensure_open()
        self.state = t.form_validated(self.state)
        valid = self.state.validation.is_valid
        if not valid and raise_on_error:
            raise FormValidationError(self.state.validation.errors)
        return valid

    async def submit(self) -> Optional[ProductOut]:
        """
        Validate and send the draft. Returns the saved product, or None when
        validation failed, the request failed, or a submission is already
        in flight / done.
        """
        self._ensure_open()
        if self.status in (SUBMITTING, SUCCEEDED):
            logger.debug("Submit ignored, submission is %s", self.status)
            return None

        if not self.validate():
            logger.info("Submit blocked by validation: %s", ", ".join(self.errors))
            return None

        self.state = t.submit_started(self.state)
        try:
            product = await self._submission.send(self.state)
        except SubmissionError as e:
            self.state = t.submit_resolved(self.state, error=e.message)
            logger.info("Product %s failed: %s", self.state.mode, e.message)
            return None
        except asyncio.CancelledError:
            self.state = t.submit_resolved(self.state, error=GENERIC_SUBMIT_ERROR)
            raise
        except Exception:
            # never leave the form stuck in submitting
            self.state = t.submit_resolved(self.state, error=GENERIC_SUBMIT_ERROR)
            logger.exception("Product %s failed unexpectedly", self.state.mode)
            return None

        self.state = t.submit_resolved(self.state, entity=product.to_entity())
        logger.info("Product %s succeeded: %s", self.state.mode, product.id)
        if self.on_submit:
            self.on_submit(product)
        return product

    # --- teardown ---

    def close(self) -> None:
        """Drop the draft and release every preview it still holds."""
        if self.closed:
            return
        released = self.attachments.discard(self.draft.images)
        self.closed = True
        logger.debug("Form closed, released %d preview(s)", released)

    def cancel(self) -> None:
        self.close()
        if self.on_cancel:
            self.on_cancel()
