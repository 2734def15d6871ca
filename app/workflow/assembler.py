"""Turns ordered stage outputs into the final playbook document."""

from typing import Any, Mapping

NOT_SPECIFIED = "Not specified"
SECTION_SEPARATOR = "\n\n---\n\n"
FOOTER = "*Generated by Launch Playbook Generator.*"


def section_title(stage_id: str) -> str:
    """'launch-timeline' -> 'LAUNCH TIMELINE'."""
    words = [word for word in stage_id.replace("_", "-").split("-") if word]
    return " ".join(words).upper()


def _field(summary: Mapping[str, Any], key: str) -> str:
    value = summary.get(key)
    if value is None:
        return NOT_SPECIFIED
    text = str(value).strip()
    return text or NOT_SPECIFIED


def build_header(summary: Mapping[str, Any]) -> str:
    product = _field(summary, "productName")
    title = product if product != NOT_SPECIFIED else "Your Product"
    return "\n".join([
        f"# Launch Playbook for {title}",
        "",
        "## Context Summary",
        f"- **Product:** {product} - {_field(summary, 'coreValueProposition')}",
        f"- **Category:** {_field(summary, 'productCategory')}",
        f"- **Stage:** {_field(summary, 'productStage')}",
        f"- **Target Market:** {_field(summary, 'targetMarketSize')}",
    ])


def assemble(stage_outputs: Mapping[str, str], summary_context: Mapping[str, Any]) -> str:
    """Concatenate a header and one section per stage, in the given order.

    Pure and deterministic: no clock, no I/O. An empty mapping still yields
    the header and footer.
    """
    parts = [build_header(summary_context or {})]
    for stage_id, output in stage_outputs.items():
        parts.append(f"# {section_title(stage_id)}\n\n{output}")
    parts.append(FOOTER)
    return SECTION_SEPARATOR.join(parts)
