from __future__ import annotations

from .types import BUCKET_LABELS, FOCUSES, FORM_VALUES, normalize_bucket


def _bucket_context(bucket_id: str) -> str:
    known = normalize_bucket(bucket_id)
    return BUCKET_LABELS[known] if known else bucket_id


def build_prompt(step_title: str, intention_title: str | None = None, bucket_id: str | None = None) -> str:
    """
    Instruction text for the simulate-opportunities completion.

    Deterministic for the same arguments. Raises ValueError on a blank step title.
    """
    title = str(step_title or "").strip()
    if not title:
        raise ValueError("step_title is required to build an opportunities prompt")

    intention = str(intention_title or "").strip()
    bucket = str(bucket_id or "").strip()
    forms = ", ".join(f'"{f}"' for f in FORM_VALUES)
    focuses = ", ".join(f'"{f}"' for f in FOCUSES)

    lines = [
        "You are helping a King's College London student turn a planned step into real-world opportunities.",
        "Suggest activities a university student could realistically take part in.",
        "",
        f"Step: {title}",
    ]
    if intention:
        lines.append(f"Intention: {intention}")
    if bucket:
        lines.append(f"Time horizon: {_bucket_context(bucket)}")

    lines += [
        "",
        "Respond with a JSON array of 3 to 4 opportunities.",
        'Include 2 to 3 items with "source": "edge_simulated" (activities run through King\'s Edge)'
        ' and exactly 1 item with "source": "independent" (something the student can do on their own).',
        "Each item must be an object with exactly these fields:",
        '- "title": short action-oriented name',
        '- "summary": one or two sentences explaining the activity and how it advances the step',
        '- "source": "edge_simulated" or "independent"',
        f'- "form": one of {forms}',
        f'- "focus": one or more of {focuses}',
        "",
        "Return ONLY valid JSON. Do not add commentary, markdown or code fences.",
    ]
    return "\n".join(lines)
