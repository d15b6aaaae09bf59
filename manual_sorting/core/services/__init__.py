from __future__ import annotations

"""Order services: reconciliation, mutation handlers and restore projection.

Services are pure with respect to persistence; the order manager loads,
applies and saves around them inside the operation queue.
"""

from .mutation_service import OperationResult, OrderMutationService  # noqa: F401
from .reconciler import OrderReconciler, match_saved_order  # noqa: F401
from .restore_service import RenderSurface, RestoreProjector  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "OrderMutationService",
    "OrderReconciler",
    "match_saved_order",
    "RenderSurface",
    "RestoreProjector",
]
