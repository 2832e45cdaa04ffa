"""Remote drivers for ftplink."""

from ftplink.drivers.driver import RemoteDriver, DriverState
from ftplink.drivers.classifier import ErrorContext, Operation, classify
from ftplink.drivers.ftpdriver import FtpDriver, Attempt, log_diagnostic
from ftplink.drivers.ftpsdriver import FtpsDriver

__all__ = [
    "RemoteDriver",
    "DriverState",
    "ErrorContext",
    "Operation",
    "classify",
    "FtpDriver",
    "FtpsDriver",
    "Attempt",
    "log_diagnostic",
]
