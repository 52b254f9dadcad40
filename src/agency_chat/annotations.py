"""Machine-readable annotations embedded in generated answers.

Two marker kinds are recognised, both HTML comments so they stay
invisible if a client renders the raw markdown::

    <!-- suggestions: ["question 1", "question 2"] -->
    <!-- action: {"label": "View Details", "route": "/intel/gwi"} -->

Only the first ``suggestions`` marker counts; every ``action`` marker
counts. Markers are stripped from the display text.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from agency_chat.exceptions import AnnotationParseError
from agency_chat.models.cache import ChatAction

logger = logging.getLogger(__name__)

SUGGESTIONS_RE = re.compile(r"<!--\s*suggestions:\s*(\[[\s\S]*?\])\s*-->")
ACTION_RE = re.compile(r"<!--\s*action:\s*(\{[^}]*?\})\s*-->")


@dataclass(frozen=True, slots=True)
class AnnotatedText:
    """Display text with its annotations lifted out."""

    clean: str
    suggestions: list[str] = field(default_factory=list)
    actions: list[ChatAction] = field(default_factory=list)


def _parse_suggestions(payload: str) -> list[str]:
    try:
        value = json.loads(payload)
    except json.JSONDecodeError as e:
        msg = f"invalid suggestions JSON: {e.msg}"
        raise AnnotationParseError(msg) from e
    if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
        msg = "suggestions marker must hold a JSON array of strings"
        raise AnnotationParseError(msg)
    return value


def _parse_action(payload: str) -> ChatAction:
    try:
        return ChatAction.model_validate_json(payload)
    except ValidationError as e:
        msg = f"invalid action marker: {payload}"
        raise AnnotationParseError(msg) from e


def extract_annotations(text: str, *, strict: bool = False) -> AnnotatedText:
    """Split *text* into clean display text, suggestions and actions.

    Parameters:
        text: The full generated answer.
        strict: Raise on a malformed marker instead of dropping it.

    Returns:
        An ``AnnotatedText``. Malformed markers are removed from the
        clean text and contribute nothing (unless *strict*).

    Raises:
        AnnotationParseError: If *strict* and a marker is malformed.
    """
    suggestions: list[str] = []
    clean = text

    match = SUGGESTIONS_RE.search(clean)
    if match is not None:
        try:
            suggestions = _parse_suggestions(match.group(1))
        except AnnotationParseError:
            if strict:
                raise
            logger.warning("Dropping malformed suggestions marker")
        clean = clean[: match.start()] + clean[match.end() :]

    actions: list[ChatAction] = []
    for action_match in ACTION_RE.finditer(clean):
        try:
            actions.append(_parse_action(action_match.group(1)))
        except AnnotationParseError:
            if strict:
                raise
            logger.warning("Dropping malformed action marker")
    clean = ACTION_RE.sub("", clean)

    return AnnotatedText(clean=clean.strip(), suggestions=suggestions, actions=actions)


def annotation_fragments(suggestions: Sequence[str], actions: Sequence[ChatAction]) -> list[str]:
    """Serialize annotations as text fragments, one per marker.

    Each fragment starts with a newline so it can be appended directly
    after the answer text.
    """
    fragments: list[str] = []
    if suggestions:
        fragments.append(f"\n<!-- suggestions: {json.dumps(list(suggestions))} -->")
    fragments.extend(
        f"\n<!-- action: {json.dumps(action.model_dump(mode='json'))} -->" for action in actions
    )
    return fragments


def render_annotations(suggestions: Sequence[str], actions: Sequence[ChatAction]) -> str:
    """Serialize annotations into a single string of markers."""
    return "".join(annotation_fragments(suggestions, actions))
