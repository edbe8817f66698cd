"""Token accounting data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenCount:
    """Token counts for one message batch, split by role.

    ``error`` carries the failure description when the zero fallback was
    returned instead of real counts.
    """

    input: int = 0
    output: int = 0
    error: str | None = None

    @property
    def total(self) -> int:
        return self.input + self.output

    def as_dict(self) -> dict[str, int]:
        """Return the wire representation."""
        return {"input": self.input, "output": self.output}
