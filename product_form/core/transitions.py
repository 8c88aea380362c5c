"""
Form state and the pure transitions that produce a new state from an old one.

Every function here takes a FormState and returns a new FormState; nothing
is mutated and no I/O happens, so a sequence of events can be replayed in
tests without a UI or a network.
"""
from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence

from product_form.core.state_machine import (
    FAILED, IDLE, SUBMISSION_TRANSITIONS, SUBMITTING, SUCCEEDED, StateMachine,
)
from product_form.core.validation import (
    CREATE, IMAGES_REQUIRED, UPDATE, ValidationState, validate_all, validate_field,
)
from product_form.models.draft import FIELD_ORDER, ProductDraft
from product_form.models.images import ImageRef

_UNCHANGED = object()

CREATED_NOTICE = "Product created successfully!"
UPDATED_NOTICE = "Product updated successfully!"


@dataclass(frozen=True)
class SubmissionState:
    status: str = IDLE
    entity: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    notice: Optional[str] = None
    history: tuple = ()

    def _advance(self, to_state: str, **meta) -> "SubmissionState":
        sm = StateMachine(state=self.status, allowed_transitions=SUBMISSION_TRANSITIONS,
                          history=list(self.history))
        result = sm.apply(to_state, meta=meta)
        return replace(self, status=result["state"], history=tuple(result["history"]))

    @property
    def in_flight(self) -> bool:
        return self.status == SUBMITTING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "entity": self.entity,
            "message": self.message,
            "notice": self.notice,
            "history": list(self.history),
        }


@dataclass(frozen=True)
class FormState:
    mode: str = CREATE
    entity_id: Optional[str] = None
    draft: ProductDraft = field(default_factory=ProductDraft)
    validation: ValidationState = field(default_factory=ValidationState)
    submission: SubmissionState = field(default_factory=SubmissionState)
    directory_notice: Optional[str] = None
    uploading: bool = False

    @classmethod
    def for_create(cls) -> "FormState":
        return cls(mode=CREATE, draft=ProductDraft.blank())

    @classmethod
    def for_update(cls, entity: Dict[str, Any]) -> "FormState":
        entity_id = entity.get("_id") or entity.get("id")
        if not entity_id:
            raise ValueError("Cannot edit a product without an id")
        return cls(mode=UPDATE, entity_id=str(entity_id), draft=ProductDraft.from_entity(entity))

    @property
    def is_edit(self) -> bool:
        return self.mode == UPDATE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "entity_id": self.entity_id,
            "draft": self.draft.to_dict(),
            "validation": self.validation.to_dict(),
            "submission": self.submission.to_dict(),
            "directory_notice": self.directory_notice,
            "uploading": self.uploading,
        }


def field_set(state: FormState, name: str, value: Any) -> FormState:
    draft = state.draft.with_field(name, value)
    result = validate_field(name, draft.get(name), draft.scalars())
    return replace(state, draft=draft, validation=state.validation.with_field_result(name, result))


def field_blur(state: FormState, name: str) -> FormState:
    if name not in FIELD_ORDER or name == "images":
        return state
    result = validate_field(name, state.draft.get(name), state.draft.scalars())
    return replace(state, validation=state.validation.with_field_result(name, result))


def _with_images_error(validation: ValidationState, present: bool) -> ValidationState:
    errors = dict(validation.errors)
    if present:
        errors["images"] = IMAGES_REQUIRED
    else:
        errors.pop("images", None)
    return replace(validation, errors=errors)


def images_attached(state: FormState, images: Sequence[ImageRef]) -> FormState:
    if len(images) == len(state.draft.images):
        return state
    draft = replace(state.draft, images=tuple(images))
    return replace(state, draft=draft, validation=_with_images_error(state.validation, False))


def images_detached(state: FormState, images: Sequence[ImageRef], old_public_id=_UNCHANGED) -> FormState:
    changes = {"images": tuple(images)}
    if old_public_id is not _UNCHANGED:
        changes["old_public_id"] = old_public_id
    draft = replace(state.draft, **changes)
    validation = state.validation
    if not images:
        validation = _with_images_error(validation, True)
    return replace(state, draft=draft, validation=validation)


def image_replaced(state: FormState, images: Sequence[ImageRef], old_public_id: str) -> FormState:
    draft = replace(state.draft, images=tuple(images), old_public_id=old_public_id)
    return replace(state, draft=draft, validation=_with_images_error(state.validation, False))


def uploading_set(state: FormState, flag: bool) -> FormState:
    return replace(state, uploading=bool(flag))


def form_validated(state: FormState) -> FormState:
    """Whole-record validation: recompute every rule and touch every field."""
    errors = validate_all(state.draft, state.mode)
    touched = frozenset(FIELD_ORDER)
    return replace(state, validation=ValidationState(errors=errors, touched=touched))


def submit_started(state: FormState) -> FormState:
    submission = state.submission
    if submission.status in (SUBMITTING, SUCCEEDED):
        return state
    if submission.status == FAILED:
        submission = submission._advance(IDLE, reason="retry")
    submission = submission._advance(SUBMITTING, mode=state.mode)
    submission = replace(submission, message=None, notice=None)
    return replace(state, submission=submission)


def submit_resolved(state: FormState, entity: Optional[Dict[str, Any]] = None,
                    error: Optional[str] = None) -> FormState:
    if error is not None:
        submission = state.submission._advance(FAILED)
        submission = replace(submission, message=error, entity=None)
    else:
        submission = state.submission._advance(SUCCEEDED)
        notice = UPDATED_NOTICE if state.is_edit else CREATED_NOTICE
        submission = replace(submission, entity=entity, notice=notice, message=None)
    return replace(state, submission=submission)


def directory_failed(state: FormState, notice: str) -> FormState:
    return replace(state, directory_notice=notice)


__all__: List[str] = [
    "FormState", "SubmissionState", "field_set", "field_blur", "images_attached",
    "images_detached", "image_replaced", "uploading_set", "form_validated",
    "submit_started", "submit_resolved", "directory_failed",
    "CREATED_NOTICE", "UPDATED_NOTICE",
]
