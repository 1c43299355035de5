from __future__ import annotations


class SpecError(ValueError):
    """Raised when a spec payload cannot be read into the grammar model."""


class RowDataError(ValueError):
    pass


class RenderError(RuntimeError):
    """Renderer failure captured by the render step instead of propagating."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
