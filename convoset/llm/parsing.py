"""Output parsers for LLM responses: plain text and schema-validated JSON."""

import json
from typing import Any

from loguru import logger
from pydantic import BaseModel


def strip_code_fences(content: str) -> str:
    """Strip markdown code fences if present."""
    if not content:
        return content

    content = content.strip()

    if content.startswith("```"):
        first_newline = content.find("\n")
        if first_newline != -1:
            content = content[first_newline + 1:]
        else:
            content = content[3:]

    if content.endswith("```"):
        content = content[:-3]

    return content.strip()


class TextParser:
    """Direct text output parser."""

    def parse(self, raw_output: str | None) -> str:
        """Return the stripped output, or an empty string for empty responses."""
        return raw_output.strip() if raw_output else ""


class JSONParser:
    """Parse structured JSON output into a Pydantic model."""

    def __init__(self, strip_fences: bool = True) -> None:
        """
        Initialize the JSON parser.

        Args:
            strip_fences: Whether to strip markdown code fences from output.
        """
        self._strip_fences = strip_fences

    def _extract_object(self, content: str) -> Any:
        if self._strip_fences:
            content = strip_code_fences(content)

        try:
            return json.loads(content)
        except json.JSONDecodeError:
            start = content.find("{")
            end = content.rfind("}")
            if start < 0 or end <= start:
                logger.warning(f"JSON parse error | Content: {content[:200]}")
                raise ValueError("No JSON object found in LLM response")
            try:
                return json.loads(content[start : end + 1])
            except json.JSONDecodeError as e:
                logger.warning(f"JSON parse error: {e} | Content: {content[:200]}")
                raise ValueError(f"Failed to parse JSON: {e}") from e

    def parse(self, raw_output: Any, schema: type[BaseModel]) -> BaseModel:
        """
        Validate model output against ``schema``.

        Args:
            raw_output: Model content: a JSON string (possibly fenced), a dict,
                or an already parsed model instance.
            schema: Pydantic model the output must satisfy.

        Returns:
            A validated instance of ``schema``.

        Raises:
            ValueError: If the output is not valid JSON or fails validation.
        """
        if isinstance(raw_output, schema):
            return raw_output
        if isinstance(raw_output, BaseModel):
            return schema.model_validate(raw_output.model_dump())
        if isinstance(raw_output, dict):
            return schema.model_validate(raw_output)
        if isinstance(raw_output, str):
            return schema.model_validate(self._extract_object(raw_output))
        raise ValueError(f"Unsupported structured output type: {type(raw_output).__name__}")
