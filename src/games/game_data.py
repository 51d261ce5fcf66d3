"""
Codec for the opaque game data blob.

A blob is the JSON serialization of one engine's pydantic model. Nothing outside an engine decodes it.
"""

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from src.core.exceptions import GameDataError

ModelT = TypeVar("ModelT", bound=BaseModel)


def decode(blob: str, model: type[ModelT]) -> ModelT:
    """Parse a blob into the engine's model, raise GameDataError if it does not fit."""
    try:
        return model.model_validate_json(blob)
    except ValidationError as exc:
        raise GameDataError(
            f"Cannot interpret game data as {model.__name__}: {exc.error_count()} validation error(s)."
        ) from exc


def encode(data: BaseModel) -> str:
    """Serialize deterministically (field order is the model's declaration order)."""
    return data.model_dump_json()
