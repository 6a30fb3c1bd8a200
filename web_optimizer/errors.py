"""Error taxonomy for the audit path, chat and session handling."""


class AuditError(Exception):
    """Base class. `kind` is stable for logging, `user_message` is safe to show."""

    kind = "audit_error"
    user_message = "The audit could not be completed."

    def __init__(self, message: str = "", *, user_message: str | None = None):
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class GatewayError(AuditError):
    kind = "gateway_error"


class GenerationFailed(GatewayError):
    """Transport, auth or quota error talking to the model service."""

    kind = "generation_failed"
    user_message = "The analysis service returned an error."

    def __init__(self, message: str = "", *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EmptyResponse(GatewayError):
    kind = "empty_response"
    user_message = "The analysis service returned no text."


class ExtractionError(AuditError):
    """Raw model text could not be turned into a value. Keeps the text for logs."""

    kind = "extraction_error"
    user_message = "Failed to parse the audit report returned by the analysis service."

    def __init__(self, message: str = "", *, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class NoJsonFound(ExtractionError):
    kind = "no_json_found"


class MalformedReport(ExtractionError):
    kind = "malformed_report"

    def __init__(self, message: str = "", *, raw_text: str = "", problems: list[str] | None = None):
        super().__init__(message, raw_text=raw_text)
        self.problems = list(problems or [])


class InvalidUrl(AuditError):
    kind = "invalid_url"
    user_message = "Enter a valid website address, e.g. example.com or https://example.com."


class ConfigurationError(AuditError):
    kind = "configuration_error"
    user_message = (
        "The analysis service rejected the configured credentials or quota. "
        "Check ANTHROPIC_API_KEY and your account limits, then try again."
    )


class ServiceUnavailable(AuditError):
    kind = "service_unavailable"
    user_message = "Unable to reach the analysis service right now. Please try again in a moment."


class InvalidTransition(AuditError):
    kind = "invalid_transition"
    user_message = "That action is not available right now."


class ChatBusy(AuditError):
    kind = "chat_busy"
    user_message = "Please wait for the assistant to finish replying."
