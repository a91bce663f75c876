# Application Layer
# =================
# Use cases orchestrating the domain and infrastructure:
# - reconciler: sync the prospect store with the spreadsheet
# - dispatcher: paced sending and delivery status tracking

from .reconciler import Reconciler, ReconcileResult
from .dispatcher import Dispatcher, DispatchResult, DEFAULT_SEND_DELAY

__all__ = ["Reconciler", "ReconcileResult", "Dispatcher", "DispatchResult", "DEFAULT_SEND_DELAY"]
