"""Advisory narrative for a conflict report, produced by a generative model.

The deterministic detector is the only source of conflicts; the model is
asked to explain them and suggest fixes, nothing more.
"""

from __future__ import annotations

import json
import logging

from openai import OpenAIError

from campus_schedule.core.config import Settings
from campus_schedule.core.exceptions import AdvisoryUnavailableError
from campus_schedule.domain.models import (
    CONFLICT_SEVERITY,
    Advisory,
    ConflictKind,
    ConflictReport,
    Severity,
    Snapshot,
)

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """\
You are a university scheduling assistant. You receive a weekly class \
schedule (events, teachers, classrooms, course offerings) and the list of \
conflicts that a validation engine has ALREADY found in it.

Respond with a JSON object:

{
  "summary": "<two or three sentences describing the overall state of the schedule>",
  "suggestions": ["<one concrete, actionable change per entry>", ...]
}

Rules:
- Do NOT report new conflicts. Only explain and resolve the ones given.
- Refer to events, teachers and classrooms by their ids.
- Follow the constraint priorities: resolve "hard" conflicts first, then \
fix "data" problems, and treat "soft" ones as improvements.
- Prefer moving an event to a free slot over changing teachers.
- If the conflict list is empty, say the schedule is valid and return an \
empty suggestions list.
- Respond with ONLY the JSON object, no other text.
"""


def _advise_with_llm(payload: dict, settings: Settings) -> dict:
    """Call OpenAI with the schedule and its conflicts."""
    from openai import OpenAI

    client = OpenAI(api_key=settings.openai_api_key)
    response = client.chat.completions.create(
        model=settings.openai_model,
        messages=[
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(payload)},
        ],
        temperature=0,
        response_format={"type": "json_object"},
    )
    return json.loads(response.choices[0].message.content)


def constraint_priorities(
    overrides: dict[ConflictKind, Severity] | None = None,
) -> dict[str, str]:
    """Priority of every conflict kind: its severity unless overridden."""
    priorities = {**CONFLICT_SEVERITY, **(overrides or {})}
    return {str(kind): str(priorities[kind]) for kind in ConflictKind}


def advise(
    report: ConflictReport,
    snapshot: Snapshot,
    settings: Settings,
    priorities: dict[ConflictKind, Severity] | None = None,
) -> Advisory:
    """Return a narrative summary and suggestions for *report*.

    *priorities* lets the caller demote or promote conflict kinds for the
    narrative; the report itself is never changed.

    Raises ``AdvisoryUnavailableError`` when the flow is disabled, no API key
    is configured, or the model call fails or answers with malformed JSON.
    """
    if not settings.advisory_enabled:
        raise AdvisoryUnavailableError("Advisory narrative is disabled")
    if not settings.openai_api_key:
        raise AdvisoryUnavailableError("No OpenAI API key configured")

    payload = {
        "schedule": snapshot.model_dump(mode="json"),
        "conflicts": [c.model_dump(mode="json") for c in report.conflicts],
        "constraint_priorities": constraint_priorities(priorities),
    }
    try:
        extracted = _advise_with_llm(payload, settings)
    except (OpenAIError, json.JSONDecodeError) as exc:
        logger.warning("Advisory request failed: %s", exc)
        raise AdvisoryUnavailableError("Advisory request failed") from exc

    if not isinstance(extracted, dict) or not isinstance(extracted.get("summary"), str):
        logger.warning("Advisory response had no summary: %r", extracted)
        raise AdvisoryUnavailableError("Advisory response was malformed")

    suggestions = extracted.get("suggestions") or []
    if not isinstance(suggestions, list):
        suggestions = [suggestions]
    return Advisory(
        summary=extracted["summary"].strip(),
        suggestions=[str(s).strip() for s in suggestions if str(s).strip()],
    )
