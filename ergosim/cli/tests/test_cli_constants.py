"""Unit tests for ergosim.cli.constants module."""

from ergosim.cli import constants


class TestExitCodes:
    """Tests for exit code constants."""

    def test_exit_codes_follow_unix_conventions(self) -> None:
        """Test the exit code values."""
        assert constants.SUCCESS_EXIT_CODE == 0
        assert constants.ERROR_EXIT_CODE == 1
        assert constants.INTERRUPT_EXIT_CODE == 130

    def test_traceback_lines_is_positive(self) -> None:
        """Test the traceback length constant."""
        assert constants.DEFAULT_MAX_TRACEBACK_LINES > 0
