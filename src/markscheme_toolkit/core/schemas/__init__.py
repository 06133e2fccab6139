"""JSON schemas and validators for imported question batches."""

from .validator import (
    BatchValidationError,
    NodeShapeError,
    check_node_shape,
    node_shape_errors,
    validate_batch,
)

__all__ = [
    "BatchValidationError",
    "NodeShapeError",
    "check_node_shape",
    "node_shape_errors",
    "validate_batch",
]
