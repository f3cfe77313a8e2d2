import os
import tempfile
import unittest
from io import StringIO
from unittest.mock import MagicMock, patch

from smartshell.config import Config
from smartshell.errors import (
    APIError,
    BackgroundCallError,
    InvalidResponseError,
    MissingCredentialError,
    ModelRefusal,
    RequestFailedError,
)
from smartshell.handlers import dispatch_complete, dispatch_explain, handle_complete, handle_explain
from smartshell.outcome import Failure, Refusal, Success, capture_outcome
from smartshell.ui import TerminalSpinner


class TestCaptureOutcome(unittest.TestCase):

    def test_success(self):
        self.assertEqual(capture_outcome(lambda: "ls"), Success("ls"))

    def test_refusal(self):
        def refuse():
            raise ModelRefusal("Not a shell task")
        self.assertEqual(capture_outcome(refuse), Refusal("Not a shell task"))

    def test_infrastructure_errors(self):
        for error in (
            MissingCredentialError("OpenAI API key not set"),
            RequestFailedError("Request failed: timeout"),
            APIError("API error: bad key"),
            InvalidResponseError("Missing content in response"),
            BackgroundCallError("Background thread failed"),
        ):
            def fail():
                raise error
            self.assertEqual(capture_outcome(fail), Failure(str(error)))

    def test_unexpected_errors_propagate(self):
        def bug():
            raise KeyError("oops")
        with self.assertRaises(KeyError):
            capture_outcome(bug)


class TestDispatch(unittest.TestCase):
    """Tests for mapping outcomes to stdout, log entries and exit codes."""

    def setUp(self):
        self.query_logger = MagicMock()

    @patch("sys.stdout", new_callable=StringIO)
    def test_complete_command(self, mock_stdout):
        code = dispatch_complete(Success("ls -a"), "hidden files", self.query_logger)
        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "ls -a\n")
        self.query_logger.log_entry.assert_called_once_with("complete", "hidden files", "ls -a")

    @patch("sys.stdout", new_callable=StringIO)
    def test_complete_comment_exits_1(self, mock_stdout):
        code = dispatch_complete(Success("# No single command does that"), "q", self.query_logger)
        self.assertEqual(code, 1)
        self.assertEqual(mock_stdout.getvalue(), "# No single command does that\n")
        self.query_logger.log_entry.assert_called_once_with("complete", "q", "# No single command does that")

    @patch("sys.stdout", new_callable=StringIO)
    def test_complete_failure(self, mock_stdout):
        code = dispatch_complete(Failure("Request failed: timeout"), "q", self.query_logger)
        self.assertEqual(code, 1)
        self.assertEqual(mock_stdout.getvalue(), "Request failed: timeout\n")
        self.query_logger.log_entry.assert_called_once_with("complete", "q", "ERROR: Request failed: timeout")

    @patch("sys.stdout", new_callable=StringIO)
    def test_complete_refusal(self, mock_stdout):
        code = dispatch_complete(Refusal("Too vague"), "q", self.query_logger)
        self.assertEqual(code, 2)
        self.assertEqual(mock_stdout.getvalue(), "# Too vague\n")
        self.query_logger.log_entry.assert_called_once_with("complete", "q", "REFUSED: Too vague")

    @patch("sys.stdout", new_callable=StringIO)
    def test_complete_never_exits_0_on_refusal(self, mock_stdout):
        for message in ("", "#", "ls", "Too vague"):
            self.assertNotEqual(dispatch_complete(Refusal(message), "q", self.query_logger), 0)

    @patch("sys.stdout", new_callable=StringIO)
    def test_command_text_is_printed_literally(self, mock_stdout):
        text = "echo [bold]:smile:[/bold] | awk '{print $1}'"
        dispatch_complete(Success(text), "q", self.query_logger)
        self.assertEqual(mock_stdout.getvalue(), text + "\n")

    @patch("sys.stdout", new_callable=StringIO)
    def test_explain_success(self, mock_stdout):
        code = dispatch_explain(Success("Lists files"), "ls", self.query_logger)
        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "# Lists files\n")
        self.query_logger.log_entry.assert_called_once_with("explain", "ls", "Lists files")

    @patch("sys.stdout", new_callable=StringIO)
    def test_explain_failures(self, mock_stdout):
        self.assertEqual(dispatch_explain(Failure("API error: bad key"), "ls", self.query_logger), 1)
        self.assertEqual(dispatch_explain(Refusal("Not a command"), "ls", self.query_logger), 1)
        self.assertEqual(mock_stdout.getvalue(), "API error: bad key\nNot a command\n")
        self.query_logger.log_entry.assert_any_call("explain", "ls", "ERROR: API error: bad key")
        self.query_logger.log_entry.assert_any_call("explain", "ls", "ERROR: Not a command")

    @patch("sys.stdout", new_callable=StringIO)
    def test_tabs_and_control_characters_are_kept(self, mock_stdout):
        text = "cut -d'\t' -f2 file.tsv | tr -d '\r'"
        self.assertEqual(dispatch_complete(Success(text), "q", self.query_logger), 0)
        self.assertEqual(mock_stdout.getvalue(), text + "\n")

        mock_stdout.truncate(0)
        mock_stdout.seek(0)
        dispatch_complete(Refusal("no\ttabs\rhere"), "q", self.query_logger)
        self.assertEqual(mock_stdout.getvalue(), "# no\ttabs\rhere\n")

        mock_stdout.truncate(0)
        mock_stdout.seek(0)
        dispatch_explain(Success("Splits on\ttab"), "cut", self.query_logger)
        self.assertEqual(mock_stdout.getvalue(), "# Splits on\ttab\n")


class TestHandlers(unittest.TestCase):
    """End-to-end scenarios through the handlers, with the provider mocked."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.log_path = os.path.join(self.tmp.name, "smartshell.log")
        self.spinner = TerminalSpinner(None)

    def tearDown(self):
        self.tmp.cleanup()

    def _config(self, **env):
        environ = {"SMSH_API_KEY": "sk-test", "SMSH_LOG": self.log_path}
        environ.update(env)
        return Config(environ=environ, config_file="/nonexistent/config.toml")

    def _log_lines(self):
        if not os.path.exists(self.log_path):
            return []
        with open(self.log_path) as f:
            return f.read().splitlines()

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_complete_with_buffer(self, mock_get_client, mock_stdout):
        mock_get_client.return_value.call.return_value = "ls -a"

        code = handle_complete(self._config(), buffer="ls", query="hidden files too", spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "ls -a\n")
        request = mock_get_client.return_value.call.call_args.args[0]
        self.assertEqual(request.prompt, "Alter zsh command `ls` to comply with query `hidden files too`")
        self.assertEqual(request.provider, "openai")
        lines = self._log_lines()
        self.assertEqual(len(lines), 1)
        self.assertTrue(lines[0].endswith("complete | query: hidden files too | result: ls -a"))

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_complete_refused(self, mock_get_client, mock_stdout):
        mock_get_client.return_value.call.side_effect = ModelRefusal("This is destructive and ambiguous")

        code = handle_complete(self._config(), query="reformat my entire disk", spinner=self.spinner)

        self.assertEqual(code, 2)
        self.assertEqual(mock_stdout.getvalue(), "# This is destructive and ambiguous\n")
        self.assertTrue(self._log_lines()[0].endswith("result: REFUSED: This is destructive and ambiguous"))

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.credentials.platform.system", return_value="Linux")
    def test_complete_without_api_key(self, mock_system, mock_stdout):
        config = Config(environ={"SMSH_LOG": self.log_path}, config_file="/nonexistent/config.toml")

        with patch("requests.Session.post") as mock_post:
            code = handle_complete(config, query="list files", spinner=self.spinner)
        mock_post.assert_not_called()

        self.assertEqual(code, 1)
        self.assertIn("API key not set", mock_stdout.getvalue())
        lines = self._log_lines()
        self.assertEqual(len(lines), 1)
        self.assertIn("| result: ERROR: OpenAI API key not set", lines[0])

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_explain(self, mock_get_client, mock_stdout):
        mock_get_client.return_value.call.return_value = "Recursively deletes /tmp/x"

        code = handle_explain(self._config(), buffer="rm -rf /tmp/x", spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "# Recursively deletes /tmp/x\n")
        request = mock_get_client.return_value.call.call_args.args[0]
        self.assertEqual(request.prompt, "rm -rf /tmp/x")
        self.assertTrue(self._log_lines()[0].endswith("explain | query: rm -rf /tmp/x | result: Recursively deletes /tmp/x"))

    @patch("sys.stdout", new_callable=StringIO)
    @patch("builtins.input", return_value="")
    @patch("smartshell.handlers.get_client")
    def test_complete_empty_interactive_input(self, mock_get_client, mock_input, mock_stdout):
        code = handle_complete(self._config(), spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertIn("Completion aborted (empty input).", mock_stdout.getvalue())
        mock_get_client.assert_not_called()
        self.assertEqual(self._log_lines(), [])

    @patch("sys.stdout", new_callable=StringIO)
    @patch("builtins.input", return_value="show disk usage")
    @patch("smartshell.handlers.get_client")
    def test_complete_interactive_query(self, mock_get_client, mock_input, mock_stdout):
        mock_get_client.return_value.call.return_value = "df -h"

        code = handle_complete(self._config(), spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertTrue(mock_stdout.getvalue().endswith("df -h\n"))
        request = mock_get_client.return_value.call.call_args.args[0]
        self.assertEqual(request.prompt, "show disk usage")

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_explain_empty_buffer(self, mock_get_client, mock_stdout):
        code = handle_explain(self._config(), buffer="", spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "Nothing to explain.\n")
        mock_get_client.assert_not_called()
        self.assertEqual(self._log_lines(), [])

    @patch("sys.stdout", new_callable=StringIO)
    def test_unknown_provider(self, mock_stdout):
        code = handle_complete(self._config(SMSH_LLM_PROVIDER="gemini"), query="ls", spinner=self.spinner)

        self.assertEqual(code, 1)
        self.assertEqual(mock_stdout.getvalue(), "Unknown provider: gemini\n")
        self.assertIn("ERROR: Unknown provider: gemini", self._log_lines()[0])

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_invalid_timeout_is_a_failure(self, mock_get_client, mock_stdout):
        code = handle_complete(self._config(SMSH_TIMEOUT="soon"), query="ls", spinner=self.spinner)

        self.assertEqual(code, 1)
        self.assertEqual(mock_stdout.getvalue(), "Invalid timeout: soon\n")
        mock_get_client.assert_not_called()
        self.assertIn("| result: ERROR: Invalid timeout: soon", self._log_lines()[0])

    @patch("sys.stdout", new_callable=StringIO)
    @patch("builtins.input", return_value="")
    def test_invalid_timeout_does_not_block_abort(self, mock_input, mock_stdout):
        code = handle_complete(self._config(SMSH_TIMEOUT="soon"), spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertIn("Completion aborted (empty input).", mock_stdout.getvalue())
        self.assertEqual(self._log_lines(), [])

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.get_client")
    def test_log_write_failure_keeps_outcome(self, mock_get_client, mock_stdout):
        mock_get_client.return_value.call.return_value = "ls"
        config = self._config(SMSH_LOG=os.path.join(self.tmp.name, "missing", "dir"))

        with patch("smartshell.logger.open", side_effect=PermissionError("denied"), create=True):
            code = handle_complete(config, query="list files", spinner=self.spinner)

        self.assertEqual(code, 0)
        self.assertEqual(mock_stdout.getvalue(), "ls\n")

    @patch("sys.stdout", new_callable=StringIO)
    @patch("smartshell.handlers.TerminalSpinner.for_tty")
    @patch("smartshell.handlers.get_client")
    def test_spinner_on_terminal_by_default(self, mock_get_client, mock_for_tty, mock_stdout):
        mock_get_client.return_value.call.return_value = "ls"
        tty_spinner = TerminalSpinner(None)
        mock_for_tty.return_value = tty_spinner

        handle_complete(self._config(), query="list files")

        mock_for_tty.assert_called_once_with()


if __name__ == "__main__":
    unittest.main()
