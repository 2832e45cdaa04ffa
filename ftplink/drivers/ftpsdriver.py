from ftplib import FTP

from ftplink.drivers.ftpdriver import FtpDriver


class FtpsDriver(FtpDriver):
    """FTP over explicit TLS.

    ``AUTH TLS`` is negotiated as soon as the control connection is open,
    so credentials never travel in clear; the data channel is switched to
    protected mode (``PROT P``) after login.
    """

    tls = True

    def _secure_control_channel(self, ftp: FTP) -> None:
        ftp.auth()  # type: ignore[attr-defined]

    def _secure_data_channel(self, ftp: FTP) -> None:
        ftp.prot_p()  # type: ignore[attr-defined]
