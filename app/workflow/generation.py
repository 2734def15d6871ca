import json
import logging
from typing import Any, Dict, Optional

import openai
from langsmith import traceable
from openai import OpenAI

from app.config import Settings, settings as default_settings
from app.core.errors import (
    ContentGenerationError,
    GenerationError,
    TransientGenerationError,
)
from app.models.stage import StageContext

logger = logging.getLogger(__name__)

STAGE_SYSTEM_PROMPT = """You are a launch strategy expert writing one section of a launch playbook.
Be specific to the product described. Build on the previous sections when they are provided.
Return the section as markdown."""

CONTEXT_SYSTEM_PROMPT = """You extract key business information from product documentation.
Return ONLY a JSON object with these string fields: productName, productCategory,
coreValueProposition, targetMarketSize, competitiveLandscape, monetizationModel,
pricingSignals, primaryUserPersona, userBehavior, painPoints, productStage, timeline."""

SUMMARY_FIELDS = (
    ("Product", "productName"),
    ("Value proposition", "coreValueProposition"),
    ("Category", "productCategory"),
    ("Stage", "productStage"),
    ("Market", "targetMarketSize"),
    ("Competition", "competitiveLandscape"),
    ("Business model", "monetizationModel"),
    ("Pricing", "pricingSignals"),
    ("Primary user", "primaryUserPersona"),
    ("Pain points", "painPoints"),
)

# Errors worth another attempt: the request itself was fine
_TRANSIENT_ERRORS = (
    openai.APIConnectionError,  # includes APITimeoutError
    openai.RateLimitError,
    openai.InternalServerError,
)


def _build_stage_prompt(stage_id: str, context: StageContext) -> str:
    """Build the user message for one stage."""
    summary = "\n".join(
        f"- {label}: {context.summary.get(key) or 'Not specified'}"
        for label, key in SUMMARY_FIELDS
    )
    previous = "\n\n".join(
        f"### {prior_id.replace('-', ' ').upper()}\n{text}"
        for prior_id, text in context.previous_outputs.items()
    )
    return (
        f"## Product Context\n{summary}\n\n"
        f"## Previous Sections\n{previous or 'None yet.'}\n\n"
        f"## Full Documentation\n{context.request_input}\n\n"
        f"Write the '{stage_id.replace('-', ' ')}' section."
    )


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def parse_context_json(text: str) -> Dict[str, Any]:
    """Parse the extractor's reply, tolerating ```json fences."""
    try:
        parsed = json.loads(_strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ContentGenerationError(f"context reply is not valid JSON: {e}")
    if not isinstance(parsed, dict):
        raise ContentGenerationError("context reply is not a JSON object")
    return parsed


class OpenAIGenerator:
    """Generation capability backed by the OpenAI chat completions API."""

    def __init__(self, config: Optional[Settings] = None, client: Optional[OpenAI] = None):
        self.config = config or default_settings
        self._client = client

    @property
    def client(self) -> OpenAI:
        # Created on first use so the service can start without credentials
        if self._client is None:
            self._client = OpenAI()
        return self._client

    def _complete(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.config.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                # Bounds the blocking call the stage runner waits on after a timeout
                timeout=self.config.STAGE_TIMEOUT_SECONDS,
                **kwargs,
            )
        except _TRANSIENT_ERRORS as e:
            raise TransientGenerationError(f"{type(e).__name__}: {e}")
        except openai.OpenAIError as e:
            raise GenerationError(f"{type(e).__name__}: {e}")

        if not response.choices:
            raise ContentGenerationError("model returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise ContentGenerationError("model returned empty content")
        return content

    @traceable(name="generate_stage")
    def generate(self, stage_id: str, context: StageContext) -> str:
        """Generate the text of one stage."""
        logger.info(f"Generating stage {stage_id} with {len(context.previous_outputs)} prior section(s)")
        return self._complete(
            STAGE_SYSTEM_PROMPT,
            _build_stage_prompt(stage_id, context),
            temperature=self.config.OPENAI_TEMPERATURE,
            max_tokens=self.config.OPENAI_MAX_TOKENS,
        )

    @traceable(name="extract_context")
    def extract_context(self, request_input: str) -> Dict[str, Any]:
        """Pull product name, category and similar facts out of the documentation."""
        reply = self._complete(
            CONTEXT_SYSTEM_PROMPT,
            f"Documentation to analyze:\n{request_input}",
            temperature=0.3,
            max_tokens=1500,
        )
        return parse_context_json(reply)
