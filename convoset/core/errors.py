"""Exception types raised while resolving schemas and generating rows."""


class ConvosetError(Exception):
    """Base class for all convoset errors."""


class ValidationError(ConvosetError, ValueError):
    """A combinator was configured with invalid arguments."""


class InvalidWeightError(ValidationError):
    """A weighted option carries a weight outside [0, 1]."""


class InvalidWeightTotalError(ValidationError):
    """Explicit option weights sum to more than 1."""


class UniqueConfigError(ValidationError):
    """A unique-selection collection or identifier is unusable."""


class SchemaError(ValidationError):
    """A schema node is malformed or returned an unsupported value."""


class ConfigurationError(ConvosetError, ValueError):
    """Batch-level configuration is invalid (no schemas, bad concurrency, ...)."""


class ToolCallNotFoundError(ConvosetError):
    """A tool result references a call id that was never issued."""

    def __init__(self, call_id: str, normalized_id: str) -> None:
        self.call_id = call_id
        self.normalized_id = normalized_id
        super().__init__(
            f'Tool call arguments with id "{call_id}" not found '
            f'(looked up as "{normalized_id}")'
        )


class UniqueCollectionExhaustedError(ConvosetError):
    """Every candidate of a unique collection has already been chosen."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f'one_of unique collection "{collection}" is exhausted')


class AIClientError(ConvosetError, RuntimeError):
    """The language-model collaborator failed to produce a response."""


class SeedSkewError(ConvosetError):
    """
    Check and Generate phases consumed a different number of random draws.

    This is a schema-authoring bug: some branch depends on live model output.
    It is never retried.
    """

    def __init__(
        self,
        *,
        seed: int | None,
        step_index: int,
        total_steps: int,
        expected_draws: int | None,
        actual_draws: int | None,
        role: str | None = None,
        content_preview: str | None = None,
        step_type: str | None = None,
        row_index: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.seed = seed
        self.step_index = step_index
        self.total_steps = total_steps
        self.expected_draws = expected_draws
        self.actual_draws = actual_draws
        self.role = role
        self.content_preview = content_preview
        self.step_type = step_type
        self.row_index = row_index
        super().__init__(self._build_message(detail))

    def _build_message(self, detail: str | None) -> str:
        header = "Seed skew detected in generation"
        if self.row_index is not None:
            header += f" #{self.row_index}"
        if self.seed is not None:
            header += f" (seed: {self.seed})"

        lines = [header + ":", ""]
        location = f"  Location: step {self.step_index + 1} of {self.total_steps}"
        if self.step_type:
            location += f" ({self.step_type})"
        lines.append(location)
        if self.role is not None:
            lines.append(f'  Message: {self.role} - "{self.content_preview or ""}"')
        if detail:
            lines.append(f"  {detail}")
        if self.expected_draws is not None and self.actual_draws is not None:
            lines.extend(
                [
                    "",
                    f"  Random draws in check phase: {self.expected_draws}",
                    f"  Random draws in generate phase: {self.actual_draws}",
                    f"  Difference: {self.actual_draws - self.expected_draws}",
                ]
            )
        lines.extend(
            [
                "",
                "The schema is not deterministic between phases. Make sure every "
                "branch draws the same number of random values in both phases.",
            ]
        )
        return "\n".join(lines)


class StructureMismatchError(SeedSkewError):
    """Generate produced a different entry sequence than Check planned."""
