"""Services for upload_queue module."""
from .executors import HTTPTransferExecutor, SimulatedTransferExecutor
from .metadata import accepts, describe, format_file_size, get_category, get_extension
from .progress import EstimatedProgress, SimulatedProgressSource

__all__ = [
    "HTTPTransferExecutor",
    "SimulatedTransferExecutor",
    "EstimatedProgress",
    "SimulatedProgressSource",
    "accepts",
    "describe",
    "format_file_size",
    "get_category",
    "get_extension",
]
