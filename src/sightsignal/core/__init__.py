"""
SightSignal core: configuration, logging, errors and result values.
"""

from .config import SightSignalSettings, get_settings, reset_settings
from .errors import DatasetError, ErrorCode, ResultError, SightSignalError
from .logging import get_logger
from .result import DomainError, Err, Ok, Result, err, ok

__all__ = [
    "SightSignalSettings",
    "get_settings",
    "reset_settings",
    "get_logger",
    "ErrorCode",
    "SightSignalError",
    "ResultError",
    "DatasetError",
    "DomainError",
    "Ok",
    "Err",
    "Result",
    "ok",
    "err",
]
