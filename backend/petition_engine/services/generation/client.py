"""
Text Generation Boundary

The narrative text comes from an external collaborator. The core hands it a
GenerationContext and expects a named-section bundle back; nothing it
returns is trusted beyond its shape.
"""
from __future__ import annotations
import logging
from typing import Any, Mapping, Protocol, runtime_checkable

from pydantic import ValidationError

from ...exceptions import GenerationError
from ...models.generation import GeneratedSectionsPayload, GenerationContext
from ...models.ssot import CoverLetterSections

logger = logging.getLogger(__name__)


@runtime_checkable
class TextGenerator(Protocol):
    """Anything that turns a context bundle into named section texts.

    The single suspension point of the pipeline. Retries and backoff, if any,
    belong to the implementation, not to the caller.
    """

    async def generate_sections(self, context: GenerationContext) -> Mapping[str, Any]:
        ...


def parse_generated_sections(payload: Any) -> CoverLetterSections:
    """
    Validate a generator reply into CoverLetterSections.

    Raises GenerationError for a non-mapping reply, unknown section names or
    non-string section values.
    """
    if isinstance(payload, GeneratedSectionsPayload):
        return payload.to_sections()
    if not isinstance(payload, Mapping):
        raise GenerationError(
            f"Text generator returned {type(payload).__name__}, expected a mapping of sections"
        )

    for key, value in payload.items():
        if value is not None and not isinstance(value, str):
            raise GenerationError(
                f"Section '{key}' must be text, got {type(value).__name__}"
            )

    try:
        parsed = GeneratedSectionsPayload.model_validate(dict(payload))
    except ValidationError as e:
        raise GenerationError(f"Generated sections do not match the requested shape: {e}") from e

    sections = parsed.to_sections()
    logger.info(f"Received {len(sections)} generated sections")
    return sections
