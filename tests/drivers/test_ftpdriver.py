"""Tests for FtpDriver class."""

import os
import tempfile
import unittest
from datetime import datetime, timezone
from ftplib import error_perm
from io import BytesIO
from unittest.mock import Mock, call, patch

from ftplink.config.remotes import ProxyConfig
from ftplink.converters import WindowsListingConverter
from ftplink.drivers import DriverState, FtpDriver
from ftplink.drivers.classifier import Operation
from ftplink.exceptions import (
    AuthenticationError,
    ChmodError,
    ClientConnectionError,
    CommandExecutionError,
    FileSystemError,
    FileSystemOperation,
    ListingError,
    MissingDependencyError,
    RenameError,
    TransferDirection,
    TransferError,
)
from tests.fixtures.listings import GARBAGE_LINES, NAME_LISTING, UNIX_LISTING


def make_ftp(replies=None):
    """Mock ftplib connection answering SYST and any command in ``replies``."""
    replies = {"SYST": "215 UNIX Type: L8", **(replies or {})}
    ftp = Mock()

    def sendcmd(command):
        reply = replies.get(command)
        if reply is None:
            raise error_perm(f"500 '{command}': command not understood")
        if isinstance(reply, Exception):
            raise reply
        return reply

    ftp.sendcmd.side_effect = sendcmd
    ftp.pwd.return_value = "/home/bob"
    return ftp


@patch("ftplink.drivers.ftpdriver.FTP")
class TestFtpDriver(unittest.TestCase):
    """Test cases for FtpDriver class."""

    def setUp(self):
        self.driver = FtpDriver("example.com", 21, "bob", "secret")

    def test_operations_connect_lazily(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp
        self.assertIs(self.driver.state, DriverState.DISCONNECTED)

        self.driver.mkdir("incoming")

        mock_ftp.connect.assert_called_once_with("example.com", 21, timeout=30)
        mock_ftp.login.assert_called_once_with(user="bob", passwd="secret")
        mock_ftp.set_pasv.assert_called_once_with(True)
        mock_ftp.mkd.assert_called_once_with("incoming")
        self.assertIs(self.driver.state, DriverState.AUTHENTICATED)

    def test_context_manager(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        with self.driver as d:
            self.assertIs(d, self.driver)
            mock_ftp.login.assert_called_once_with(user="bob", passwd="secret")

        mock_ftp.quit.assert_called_once()
        self.assertIs(self.driver.state, DriverState.DISCONNECTED)

    def test_active_mode(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp
        driver = FtpDriver("example.com", passive=False)

        driver.login()

        mock_ftp.set_pasv.assert_not_called()
        driver.passive = True
        mock_ftp.set_pasv.assert_called_once_with(True)

    def test_connect_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.connect.side_effect = OSError("Connection refused")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(ClientConnectionError) as ctx:
            self.driver.connect()

        self.assertEqual(ctx.exception.port, 21)
        self.assertEqual(ctx.exception.reason, "Connection refused")
        mock_ftp.close.assert_called_once()
        self.assertIs(self.driver.state, DriverState.DISCONNECTED)

    def test_login_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.login.side_effect = error_perm("530 Login incorrect.")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(AuthenticationError) as ctx:
            self.driver.ls()

        self.assertEqual(ctx.exception.user, "bob")
        self.assertEqual(ctx.exception.reason, "530 Login incorrect.")
        self.assertIsInstance(ctx.exception.original_error, error_perm)
        self.assertEqual(self.driver.error_context.operation, Operation.LOGIN.value)
        self.assertIs(self.driver.state, DriverState.CONNECTED)

    def test_close_failure_forces_close(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.quit.side_effect = EOFError()
        mock_ftp_class.return_value = mock_ftp
        self.driver.connect()

        with self.assertRaises(ClientConnectionError) as ctx:
            self.driver.close()

        self.assertTrue(ctx.exception.closing)
        mock_ftp.close.assert_called_once()
        self.assertIs(self.driver.state, DriverState.DISCONNECTED)

    def test_close_when_disconnected_is_noop(self, mock_ftp_class):
        self.driver.close()
        mock_ftp_class.assert_not_called()

    def test_changing_host_drops_connection(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp
        self.driver.connect()

        self.driver.host = "example.com"
        mock_ftp.quit.assert_not_called()

        self.driver.host = "other.example.com"
        mock_ftp.quit.assert_called_once()
        self.assertIs(self.driver.state, DriverState.DISCONNECTED)
        self.assertEqual(self.driver.host, "other.example.com")

    def test_windows_server_uses_windows_converter(self, mock_ftp_class):
        mock_ftp_class.return_value = make_ftp({"SYST": "215 Windows_NT"})

        self.driver.connect()

        self.assertIsInstance(self.driver.converter, WindowsListingConverter)

    def test_syst_failure_assumes_unix(self, mock_ftp_class):
        mock_ftp_class.return_value = make_ftp({"SYST": error_perm("502 Not implemented")})

        self.driver.connect()

        self.assertEqual(self.driver.systype(), "UNIX")

    def test_ls_full(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        def mock_retrlines(command, callback):
            for line in UNIX_LISTING:
                callback(line)

        mock_ftp.retrlines.side_effect = mock_retrlines

        entries = self.driver.ls("/pub", full=True)

        mock_ftp.retrlines.assert_called_once()
        self.assertEqual(mock_ftp.retrlines.call_args.args[0], "LIST /pub")
        self.assertEqual(len(entries), 4)
        self.assertTrue(entries[0].is_directory)
        self.assertEqual(entries[3].link_target, "release-1.2")
        self.assertEqual(self.driver.skipped_lines, 0)

    def test_ls_full_recursive_counts_skipped_lines(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        def mock_retrlines(command, callback):
            for line in GARBAGE_LINES + UNIX_LISTING:
                callback(line)

        mock_ftp.retrlines.side_effect = mock_retrlines

        with self.assertLogs("ftplink.drivers.ftpdriver", level="WARNING"):
            entries = self.driver.ls("/pub", full=True, recursive=True)

        self.assertEqual(mock_ftp.retrlines.call_args.args[0], "LIST -R /pub")
        self.assertEqual(len(entries), 4)
        self.assertEqual(self.driver.skipped_lines, 2)

    def test_ls_names(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.nlst.return_value = NAME_LISTING
        mock_ftp_class.return_value = mock_ftp

        entries = self.driver.ls()

        mock_ftp.nlst.assert_called_once_with(".")
        self.assertEqual([e.filename for e in entries], NAME_LISTING)
        self.assertTrue(entries[0].is_directory)
        self.assertFalse(entries[2].is_directory)

    def test_ls_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.retrlines.side_effect = error_perm("550 No such directory")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(ListingError) as ctx:
            self.driver.ls("/missing", full=True)

        self.assertEqual(ctx.exception.path, "/missing")

    def test_pwd_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.pwd.side_effect = error_perm("550")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(ListingError) as ctx:
            self.driver.pwd()

        self.assertIsNone(ctx.exception.path)

    def test_chdir_returns_new_folder(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.pwd.return_value = "/pub"
        mock_ftp_class.return_value = mock_ftp

        self.assertEqual(self.driver.chdir("pub"), "/pub")
        mock_ftp.cwd.assert_called_once_with("pub")

    def test_chdir_without_pwd_falls_back_to_path(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.pwd.side_effect = error_perm("502")
        mock_ftp_class.return_value = mock_ftp

        self.assertEqual(self.driver.chdir("pub"), "pub")

    def test_chdir_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.cwd.side_effect = error_perm("550 No such directory")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(FileSystemError) as ctx:
            self.driver.chdir("nowhere")

        self.assertIs(ctx.exception.kind, FileSystemOperation.CHANGE_FOLDER)
        self.assertEqual(ctx.exception.path, "nowhere")

    def test_cdup(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.pwd.return_value = "/"
        mock_ftp_class.return_value = mock_ftp

        self.assertEqual(self.driver.cdup(), "/")
        mock_ftp.voidcmd.assert_called_once_with("CDUP")

    def test_mkdir_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.mkd.side_effect = error_perm("550 File exists")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(FileSystemError) as ctx:
            self.driver.mkdir("/a/b")

        self.assertIs(ctx.exception.kind, FileSystemOperation.CREATE_FOLDER)
        self.assertEqual(ctx.exception.path, "/a/b")
        self.assertEqual(ctx.exception.reason, "550 File exists")

    def test_rmdir_and_delete(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        self.driver.rmdir("old")
        self.driver.delete("file.txt")

        mock_ftp.rmd.assert_called_once_with("old")
        mock_ftp.delete.assert_called_once_with("file.txt")

    def test_delete_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.delete.side_effect = error_perm("550")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(FileSystemError) as ctx:
            self.driver.delete("file.txt")

        self.assertIs(ctx.exception.kind, FileSystemOperation.DELETE_FILE)

    def test_rename_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.rename.side_effect = error_perm("550")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(RenameError) as ctx:
            self.driver.rename("a.txt", "b.txt")

        self.assertEqual(ctx.exception.old_name, "a.txt")
        self.assertEqual(ctx.exception.new_name, "b.txt")

    def test_chmod(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        self.driver.chmod("755", "run.sh")
        self.driver.chmod(0o644, "notes.txt")

        mock_ftp.voidcmd.assert_has_calls(
            [call("SITE CHMOD 755 run.sh"), call("SITE CHMOD 644 notes.txt")]
        )

    def test_chmod_invalid_mode(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(ChmodError) as ctx:
            self.driver.chmod("rwx", "run.sh")

        self.assertEqual(ctx.exception.mode, "rwx")
        mock_ftp.voidcmd.assert_not_called()

    def test_size(self, mock_ftp_class):
        mock_ftp = make_ftp({"SIZE big.iso": "213 4096"})
        mock_ftp_class.return_value = mock_ftp

        self.assertEqual(self.driver.size("big.iso"), 4096)
        mock_ftp.voidcmd.assert_called_once_with("TYPE I")

    def test_size_failure(self, mock_ftp_class):
        mock_ftp_class.return_value = make_ftp()

        with self.assertRaises(FileSystemError) as ctx:
            self.driver.size("missing")

        self.assertIs(ctx.exception.kind, FileSystemOperation.SIZE)

    def test_mdtm(self, mock_ftp_class):
        mock_ftp_class.return_value = make_ftp({"MDTM notes.txt": "213 20240102030405"})

        self.assertEqual(
            self.driver.mdtm("notes.txt"),
            datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        )

    def test_file_exists_for_file(self, mock_ftp_class):
        mock_ftp = make_ftp({"MDTM notes.txt": "213 20240102030405"})
        mock_ftp_class.return_value = mock_ftp

        self.assertTrue(self.driver.file_exists("notes.txt"))
        mock_ftp.cwd.assert_not_called()

    def test_file_exists_for_directory_restores_folder(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        self.assertTrue(self.driver.file_exists("pub"))
        self.assertEqual(mock_ftp.cwd.call_args_list, [call("pub"), call("/home/bob")])

    def test_file_exists_missing(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.cwd.side_effect = error_perm("550")
        mock_ftp_class.return_value = mock_ftp

        self.assertFalse(self.driver.file_exists("ghost"))

    def test_get_sync_with_progress(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        def mock_retrbinary(command, callback):
            callback(b"hello ")
            callback(b"world")

        mock_ftp.retrbinary.side_effect = mock_retrbinary
        progress = Mock()

        with tempfile.TemporaryDirectory() as tmp:
            local = os.path.join(tmp, "hello.txt")
            result = self.driver.get("/pub/hello.txt", local, progress=progress)

            self.assertEqual(result, local)
            with open(local, "rb") as f:
                self.assertEqual(f.read(), b"hello world")

        self.assertEqual(mock_ftp.retrbinary.call_args.args[0], "RETR /pub/hello.txt")
        self.assertEqual([c.args[0] for c in progress.call_args_list], [6, 11])

    def test_get_async_into_file_object(self, mock_ftp_class):
        mock_ftp = make_ftp()
        conn = Mock()
        conn.recv.side_effect = [b"abc", b"def", b""]
        mock_ftp.transfercmd.return_value = conn
        mock_ftp_class.return_value = mock_ftp
        buffer = BytesIO()
        progress = Mock()

        self.driver.get("data.bin", buffer, asynchronous=True, progress=progress)

        self.assertEqual(buffer.getvalue(), b"abcdef")
        mock_ftp.transfercmd.assert_called_once_with("RETR data.bin")
        self.assertEqual([c.args[0] for c in progress.call_args_list], [0, 3, 6, 6])
        self.assertFalse(buffer.closed)

    def test_get_async_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.transfercmd.side_effect = error_perm("550 No such file")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(TransferError) as ctx:
            self.driver.get("missing.bin", BytesIO(), asynchronous=True)

        self.assertIs(ctx.exception.direction, TransferDirection.DOWNLOAD)
        self.assertTrue(ctx.exception.asynchronous)
        self.assertEqual(ctx.exception.remote, "missing.bin")
        self.assertEqual(ctx.exception.reason, "550 No such file")

    def test_failed_download_removes_created_file(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.retrbinary.side_effect = error_perm("550 No such file")
        mock_ftp_class.return_value = mock_ftp

        with tempfile.TemporaryDirectory() as tmp:
            local = os.path.join(tmp, "missing.bin")

            with self.assertRaises(TransferError):
                self.driver.get("missing.bin", local)

            self.assertFalse(os.path.exists(local))

    def test_failed_async_download_removes_created_file(self, mock_ftp_class):
        mock_ftp = make_ftp()
        conn = Mock()
        conn.recv.side_effect = [b"partial", OSError("connection reset")]
        mock_ftp.transfercmd.return_value = conn
        mock_ftp_class.return_value = mock_ftp

        with tempfile.TemporaryDirectory() as tmp:
            local = os.path.join(tmp, "data.bin")

            with self.assertRaises(TransferError):
                self.driver.get("data.bin", local, asynchronous=True)

            self.assertFalse(os.path.exists(local))

    def test_failed_download_keeps_existing_file(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.retrbinary.side_effect = error_perm("550 No such file")
        mock_ftp_class.return_value = mock_ftp

        with tempfile.TemporaryDirectory() as tmp:
            local = os.path.join(tmp, "existing.bin")
            with open(local, "wb") as f:
                f.write(b"old")

            with self.assertRaises(TransferError):
                self.driver.get("missing.bin", local)

            self.assertTrue(os.path.exists(local))

    def test_put_sync_defaults_remote_name(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp_class.return_value = mock_ftp

        with tempfile.TemporaryDirectory() as tmp:
            local = os.path.join(tmp, "report.pdf")
            with open(local, "wb") as f:
                f.write(b"%PDF")

            remote = self.driver.put(local)

        self.assertEqual(remote, "report.pdf")
        self.assertEqual(mock_ftp.storbinary.call_args.args[0], "STOR report.pdf")

    def test_put_async(self, mock_ftp_class):
        mock_ftp = make_ftp()
        conn = Mock()
        mock_ftp.transfercmd.return_value = conn
        mock_ftp_class.return_value = mock_ftp

        remote = self.driver.put(BytesIO(b"payload"), "/in/payload.bin", asynchronous=True)

        self.assertEqual(remote, "/in/payload.bin")
        mock_ftp.transfercmd.assert_called_once_with("STOR /in/payload.bin")
        conn.sendall.assert_called_once_with(b"payload")

    def test_put_file_object_requires_remote_name(self, mock_ftp_class):
        mock_ftp_class.return_value = make_ftp()

        with self.assertRaises(TransferError) as ctx:
            self.driver.put(BytesIO(b"data"))

        self.assertIs(ctx.exception.direction, TransferDirection.UPLOAD)

    def test_put_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.storbinary.side_effect = error_perm("553 Could not create file")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(TransferError) as ctx:
            self.driver.put(BytesIO(b"data"), "/ro/data.bin")

        self.assertFalse(ctx.exception.asynchronous)
        self.assertEqual(ctx.exception.remote, "/ro/data.bin")

    def test_execute_dispatch(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.getmultiline.return_value = "211-Features:\n MDTM\n211 End"
        mock_ftp_class.return_value = mock_ftp

        self.assertTrue(self.driver.execute("SITE EXEC backup.sh"))
        self.assertTrue(self.driver.execute("SITE UMASK 022"))
        self.assertEqual(self.driver.execute("FEAT"), ["211-Features:", " MDTM", "211 End"])

        mock_ftp.voidcmd.assert_has_calls(
            [call("SITE EXEC backup.sh"), call("SITE UMASK 022")]
        )
        mock_ftp.putcmd.assert_called_once_with("FEAT")

    def test_execute_raw_site_command(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.getmultiline.return_value = "200 OK"
        mock_ftp_class.return_value = mock_ftp

        self.assertEqual(self.driver.execute("SITE HELP", raw=True), ["200 OK"])
        mock_ftp.putcmd.assert_called_once_with("SITE HELP")
        mock_ftp.voidcmd.assert_not_called()

    def test_execute_failure(self, mock_ftp_class):
        mock_ftp = make_ftp()
        mock_ftp.voidcmd.side_effect = error_perm("500 Unknown SITE command")
        mock_ftp_class.return_value = mock_ftp

        with self.assertRaises(CommandExecutionError) as ctx:
            self.driver.execute("SITE FOO")

        self.assertEqual(ctx.exception.command, "SITE FOO")

    def test_from_options(self, mock_ftp_class):
        from ftplink.connection import parse_connection_string

        options = parse_connection_string("ftp://alice:pw@host:2121?passive=false&timeout=5")
        driver = FtpDriver.from_options(options)

        self.assertEqual((driver.host, driver.port), ("host", 2121))
        self.assertEqual((driver.user, driver.password), ("alice", "pw"))
        self.assertFalse(driver.passive)
        self.assertEqual(driver.timeout, 5)


class TestFtpDriverProxy(unittest.TestCase):
    """Test cases for SOCKS5 proxy support."""

    def setUp(self):
        self.proxy = ProxyConfig(host="proxy.local", port=9050, username="p", password="q")

    @patch("ftplink.drivers.socks.SOCKS_AVAILABLE", False)
    def test_missing_pysocks(self):
        driver = FtpDriver("example.com", proxy=self.proxy)

        with self.assertRaises(MissingDependencyError):
            driver.connect()

    @patch("ftplink.drivers.socks.SOCKS_AVAILABLE", True)
    @patch("ftplink.drivers.socks.Socks5FTP")
    def test_proxy_transport(self, mock_socks_class):
        mock_socks_class.return_value = make_ftp()
        driver = FtpDriver("example.com", proxy=self.proxy)

        driver.connect()

        mock_socks_class.assert_called_once_with(
            proxy_host="proxy.local",
            proxy_port=9050,
            proxy_username="p",
            proxy_password="q",
        )
        mock_socks_class.return_value.connect.assert_called_once_with(
            "example.com", 21, timeout=30
        )


class TestDiagnostics(unittest.TestCase):
    """Test cases for the default diagnostic handler."""

    def test_log_diagnostic(self):
        from ftplink.drivers import log_diagnostic

        with self.assertLogs("ftplink.drivers.ftpdriver", level="ERROR") as logs:
            log_diagnostic("teleport", "boom")

        self.assertIn("teleport", logs.output[0])


if __name__ == "__main__":
    unittest.main()
