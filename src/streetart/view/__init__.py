"""View layer: marker reconciliation and input classification."""

from streetart.view.backend import MapViewport, MarkerBackend, MarkerHandle
from streetart.view.interaction import Interaction, InteractionOrigin, classify_pointer, marker_element
from streetart.view.reconcile import MarkerReconciler, ReconcileStats

__all__ = [
    "Interaction",
    "InteractionOrigin",
    "MapViewport",
    "MarkerBackend",
    "MarkerHandle",
    "MarkerReconciler",
    "ReconcileStats",
    "classify_pointer",
    "marker_element",
]
