"""Match a clinical note against mapped fields and synthesize a fill plan."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Callable, List, Optional, Sequence, Set

from .config import PLACEHOLDER_FALLBACK_LABEL, PLACEHOLDER_PREFIX
from .models import FieldDescriptor, FillPlan, FillStep

logger = logging.getLogger(__name__)

NoteTargetScorer = Callable[[FieldDescriptor], float]

CLINICAL_SECTION_PATTERN = re.compile(
    r"\b(notes?|assessment|plan|subjective|hpi|history\s+of\s+present\s+illness)\b",
    re.IGNORECASE,
)

MULTILINE_ROLES = frozenset({"textarea"})

_NON_ALNUM = re.compile(r"[^A-Z0-9]+")

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_WORD_SEPARATORS = re.compile(r"[^A-Za-z0-9]+")


def label_words(label: str) -> str:
    """``"progressNotes"`` and ``"assessment_plan"`` -> space-separated lower-case words."""
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", label or "")
    return _WORD_SEPARATORS.sub(" ", spaced).strip().lower()


class VocabularyScorer:
    """Score 1.0 for clinical-section labels or multi-line roles, else 0.0."""

    def __init__(
        self,
        pattern: re.Pattern = CLINICAL_SECTION_PATTERN,
        multiline_roles: Set[str] = MULTILINE_ROLES,
    ) -> None:
        self.pattern = pattern
        self.multiline_roles = frozenset(role.lower() for role in multiline_roles)

    def __call__(self, field: FieldDescriptor) -> float:
        if self.pattern.search(label_words(field.label)):
            return 1.0
        if (field.role or "").lower() in self.multiline_roles:
            return 1.0
        return 0.0


def placeholder_value(label: str, prefix: str = PLACEHOLDER_PREFIX) -> str:
    """``"Patient Name"`` -> ``"DEMO_PATIENT_NAME"``; blank labels use a generic token."""
    token = _slug(label)
    if not token:
        token = _slug(PLACEHOLDER_FALLBACK_LABEL)
    return f"{prefix}{token}"


def _slug(label: str) -> str:
    return _NON_ALNUM.sub("_", (label or "").upper()).strip("_")


def select_note_target(
    candidates: Sequence[FieldDescriptor],
    scorer: NoteTargetScorer,
    target_note_field: Optional[str] = None,
) -> Optional[FieldDescriptor]:
    """Pick the field that receives the note body.

    An explicitly named field wins; otherwise the best positive score, earliest
    in document order on ties, falling back to the first candidate.
    """
    if not candidates:
        return None
    wanted = (target_note_field or "").strip().lower()
    if wanted:
        for field in candidates:
            if field.label.strip().lower() == wanted:
                return field
        logger.debug("Requested note field %r not found; using scorer", target_note_field)

    best: Optional[FieldDescriptor] = None
    best_score = 0.0
    for field in candidates:
        score = scorer(field)
        if score > best_score:
            best, best_score = field, score
    return best or candidates[0]


class PlanGenerator:
    """Turn a note and a set of field descriptors into an ordered fill plan."""

    name = "vocabulary"

    def __init__(self, scorer: Optional[NoteTargetScorer] = None, placeholder_prefix: str = PLACEHOLDER_PREFIX) -> None:
        self.scorer = scorer or VocabularyScorer()
        self.placeholder_prefix = placeholder_prefix

    def generate(
        self,
        url: str,
        fields: Sequence[FieldDescriptor],
        note: str,
        *,
        target_note_field: Optional[str] = None,
        plan_id: Optional[str] = None,
    ) -> FillPlan:
        if not isinstance(note, str):
            raise TypeError("note must be a string")
        editable = [field for field in fields if field.editable]
        trimmed = note.strip()
        steps: List[FillStep] = []
        used: Set[str] = set()
        note_target: Optional[FieldDescriptor] = None

        if trimmed:
            note_target = select_note_target(editable, self.scorer, target_note_field)
            if note_target is not None:
                steps.append(FillStep(selector=note_target.selector, value=trimmed, label=note_target.label))
                used.add(note_target.selector)

        for field in editable:
            if field.selector in used:
                continue
            steps.append(
                FillStep(
                    selector=field.selector,
                    value=placeholder_value(field.label, self.placeholder_prefix),
                    label=field.label,
                )
            )
            used.add(field.selector)

        plan = FillPlan(
            id=plan_id or uuid.uuid4().hex,
            url=url,
            steps=steps,
            note_target_selector=note_target.selector if note_target else None,
            meta={
                "generator": self.name,
                "noteLength": len(trimmed),
                "editableFields": len(editable),
                "skippedFields": len(fields) - len(editable),
            },
        )
        logger.info(
            "Generated plan %s with %s steps (note target: %s)",
            plan.id,
            len(steps),
            plan.note_target_selector or "none",
        )
        return plan


def generate_plan(
    url: str,
    fields: Sequence[FieldDescriptor],
    note: str,
    *,
    target_note_field: Optional[str] = None,
    scorer: Optional[NoteTargetScorer] = None,
) -> FillPlan:
    return PlanGenerator(scorer=scorer).generate(url, fields, note, target_note_field=target_note_field)
