"""
Custom exceptions for msp-toolkit with helpful error messages.
"""

from rich.markup import escape


class MspToolkitError(Exception):
    """Base exception for msp-toolkit errors."""

    def __init__(self, message: str, suggestion: str = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.message)

    def __str__(self):
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(MspToolkitError):
    """Configuration file errors."""

    pass


class InvalidConfigError(ConfigurationError):
    """Configuration file is invalid."""

    def __init__(self, error_details: str):
        message = f"Invalid configuration file: {error_details}"

        suggestion = (
            "Fix the msp-toolkit.yaml file.\n"
            "You can regenerate the default configuration:\n"
            "  mv msp-toolkit.yaml msp-toolkit.yaml.backup\n"
            "  msp-toolkit init . --force\n\n"
            "Then merge your settings back from the backup."
        )
        super().__init__(message, suggestion)


class ConfigAlreadyExistsError(ConfigurationError):
    """Configuration file already exists at target location."""

    def __init__(self, path: str):
        message = f"Configuration already exists at: {path}"
        suggestion = "Edit the existing file, or overwrite it with:\n  msp-toolkit init --force"
        super().__init__(message, suggestion)


class ITGlueError(MspToolkitError):
    """Errors related to the IT Glue API."""

    pass


class ITGlueAuthError(ITGlueError):
    """IT Glue API key not available."""

    def __init__(self, api_key_env: str):
        message = f"IT Glue API key not found in environment variable '{api_key_env}'."
        suggestion = (
            f"Set the API key environment variable:\n"
            f"  export {api_key_env}=<your-api-key>\n\n"
            f"Or point msp-toolkit.yaml at a different variable:\n"
            f"  itglue:\n"
            f"    api_key_env: MY_ITGLUE_KEY"
        )
        super().__init__(message, suggestion)


class ITGlueAPIError(ITGlueError):
    """IT Glue API call failed."""

    def __init__(
        self,
        method: str,
        url: str,
        error_message: str,
        status_code: int | None = None,
        body: str | None = None,
        retry_count: int = 0,
        retryable: bool = False,
    ):
        self.method = method
        self.url = url
        self.error_message = error_message
        self.status_code = status_code
        self.body = body
        self.retry_count = retry_count
        self.retryable = retryable

        status = f"HTTP {status_code}" if status_code is not None else "no response"
        message = f"IT Glue {method} {url} failed ({status}): {error_message}"
        if retry_count > 0:
            message += f" (after {retry_count} retries)"
        if body:
            message += f"\nResponse body: {body}"

        suggestion = None
        if status_code in (401, 403):
            suggestion = (
                "The API key was rejected. Check that:\n"
                "  - the key is current and has not been revoked\n"
                "  - the key has password access if you are auditing passwords\n"
                "  - the base URL matches your IT Glue region (us, eu, au)"
            )
        elif retryable:
            suggestion = (
                "This could be due to:\n"
                "  - Network connectivity issues\n"
                "  - API rate limiting (3000 requests per 5 minutes)\n"
                "  - Service outage\n\n"
                "Wait a few minutes and retry, or raise itglue.retry.max_attempts."
            )
        super().__init__(message, suggestion)


class InputError(MspToolkitError):
    """Errors in user-supplied input files."""

    pass


class InputFileNotFoundError(InputError):
    """Input file not found."""

    def __init__(self, file_path: str):
        message = f"File not found: {file_path}"
        suggestion = (
            "Check that the file path is correct and the file exists:\n" f"  ls -l {file_path}"
        )
        super().__init__(message, suggestion)


class CsvInputError(InputError):
    """CSV input is missing required columns."""

    def __init__(self, file_path: str, missing_columns: list[str]):
        column_list = ", ".join(missing_columns)
        message = f"CSV file {file_path} is missing required column(s): {column_list}"
        suggestion = (
            "Column names are matched case-insensitively and ignore spaces, so\n"
            "'Serial Number', 'serial_number' and 'SerialNumber' are equivalent.\n"
            "Add the missing column(s) to the header row and retry."
        )
        super().__init__(message, suggestion)


class CleanupError(MspToolkitError):
    """Errors during Windows cleanup operations."""

    pass


class UnknownProfileError(CleanupError):
    """Cleanup profile not found in the catalog."""

    def __init__(self, profile_name: str, available_profiles: list[str]):
        message = f"Cleanup profile '{profile_name}' not found."
        profiles_list = "\n  - ".join(available_profiles)
        suggestion = (
            f"Available profiles:\n  - {profiles_list}\n\n"
            "List them with descriptions:\n"
            "  msp-toolkit cleanup list"
        )
        super().__init__(message, suggestion)


class CommandNotAvailableError(CleanupError):
    """A required system command is missing."""

    def __init__(self, command: str):
        message = f"Command not available: {command}"
        suggestion = (
            "Cleanup profiles drive reg.exe, sc.exe and schtasks.exe and must run\n"
            "on a Windows endpoint, typically as SYSTEM from the RMM agent."
        )
        super().__init__(message, suggestion)


class CommandFailedError(CleanupError):
    """A system command exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, output: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        message = f"Command failed with exit code {returncode}: {' '.join(args)}"
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)


class RetryableError(MspToolkitError):
    """Error that should be retried."""

    def __init__(self, original_error: Exception, attempt: int, max_attempts: int):
        self.original_error = original_error
        self.attempt = attempt
        self.max_attempts = max_attempts

        message = f"Operation failed (attempt {attempt}/{max_attempts}): " f"{str(original_error)}"
        super().__init__(message)


def format_error_for_cli(error: Exception) -> str:
    """
    Format an exception for CLI display with helpful information.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, MspToolkitError):
        # Custom errors have helpful messages and suggestions
        output = f"[red]Error:[/red] {escape(error.message)}"
        if error.suggestion:
            output += f"\n\n[yellow]{escape(error.suggestion)}[/yellow]"
        return output
    else:
        return f"[red]Error:[/red] {escape(str(error))}"
