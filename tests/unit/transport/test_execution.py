"""Tests for local command execution and retries."""

from unittest.mock import MagicMock, patch

import pytest

from repoship.common.errors import CommandError, TransferError
from repoship.transport.execution import CommandResult, LocalRunner, retry_on_fail


class TestCommandResult:
    """Tests for CommandResult."""

    def test_lines_skip_blanks(self):
        """Test stdout lines are stripped and blank lines dropped."""
        result = CommandResult(args=["find"], returncode=0, stdout="a\n\n  b  \n")

        assert result.lines == ["a", "b"]
        assert result.ok


class TestLocalRunner:
    """Tests for LocalRunner (mocked subprocess)."""

    @pytest.fixture
    def mock_run(self):
        """Mock subprocess.run."""
        with patch("subprocess.run") as mock:
            mock.return_value = MagicMock(returncode=0, stdout=b"out\n", stderr=b"")
            yield mock

    def test_run_success(self, mock_run):
        """Test a successful command returns decoded output."""
        result = LocalRunner().run(["echo", "out"])

        assert result.ok
        assert result.stdout == "out\n"
        mock_run.assert_called_once_with(["echo", "out"], capture_output=True, cwd=None)

    def test_run_uses_cwd(self, mock_run):
        """Test the working directory is passed through."""
        LocalRunner(cwd="/srv/repos").run(["ls"])

        assert mock_run.call_args.kwargs["cwd"] == "/srv/repos"

    def test_run_failure_raises(self, mock_run):
        """Test a non-zero exit raises CommandError with output."""
        mock_run.return_value = MagicMock(returncode=2, stdout=b"", stderr=b"bad option")

        with pytest.raises(CommandError) as exc_info:
            LocalRunner().run(["createrepo", "--bogus"])

        assert exc_info.value.returncode == 2
        assert "bad option" in str(exc_info.value)

    def test_run_failure_unchecked(self, mock_run):
        """Test check=False returns the failed result."""
        mock_run.return_value = MagicMock(returncode=1, stdout=b"", stderr=b"")

        result = LocalRunner().run(["test", "-d", "/missing"], check=False)

        assert not result.ok

    def test_succeeds(self, mock_run):
        """Test succeeds reports the exit status."""
        runner = LocalRunner()
        assert runner.succeeds(["true"])

        mock_run.return_value = MagicMock(returncode=1, stdout=b"", stderr=b"")
        assert not runner.succeeds(["false"])

    def test_missing_executable(self, mock_run):
        """Test a missing executable behaves like exit status 127."""
        mock_run.side_effect = FileNotFoundError("no such file: reprepro")

        result = LocalRunner().run(["reprepro"], check=False)

        assert result.returncode == 127
        assert "reprepro" in result.stderr


class TestRetryOnFail:
    """Tests for retry_on_fail."""

    def test_returns_first_success(self):
        """Test no retry happens after success."""
        func = MagicMock(return_value="done")

        assert retry_on_fail(func, times=3, delay=0) == "done"
        assert func.call_count == 1

    def test_retries_until_success(self):
        """Test failures are retried until one attempt succeeds."""
        func = MagicMock(side_effect=[TransferError("a", "b", 23), "done"])
        sleeps = []

        result = retry_on_fail(func, times=3, delay=5, sleep=sleeps.append)

        assert result == "done"
        assert func.call_count == 2
        assert sleeps == [5]

    def test_reraises_last_error(self):
        """Test the last error propagates after all attempts fail."""
        errors = [TransferError("a", "b", code) for code in (10, 11, 12)]
        func = MagicMock(side_effect=errors)

        with pytest.raises(TransferError) as exc_info:
            retry_on_fail(func, times=3, delay=1, sleep=lambda _: None)

        assert exc_info.value is errors[-1]
        assert func.call_count == 3

    def test_single_attempt(self):
        """Test one attempt re-raises without sleeping."""
        error = TransferError("a", "b", 23)
        sleeps = []

        with pytest.raises(TransferError) as exc_info:
            retry_on_fail(MagicMock(side_effect=error), times=1, delay=5, sleep=sleeps.append)

        assert exc_info.value is error
        assert sleeps == []

    def test_unlisted_exceptions_propagate(self):
        """Test exceptions outside the retry set are not retried."""
        func = MagicMock(side_effect=KeyError("x"))

        with pytest.raises(KeyError):
            retry_on_fail(func, times=3, exceptions=(TransferError,), sleep=lambda _: None)

        assert func.call_count == 1

    def test_invalid_times(self):
        """Test at least one attempt is required."""
        with pytest.raises(ValueError):
            retry_on_fail(lambda: None, times=0)
