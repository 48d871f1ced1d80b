"""
PsExec Bridge - Error taxonomy.
Every error a handler can surface to a client, with its HTTP status.
"""
from typing import Optional


class BridgeError(Exception):
    status_code = 500
    message = "Bridge error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class AuthRequired(BridgeError):
    status_code = 401
    message = "Authentication required"


class AuthInvalid(BridgeError):
    status_code = 403
    message = "Invalid or expired token"


class InvalidCredentials(BridgeError):
    status_code = 401
    message = "Invalid credentials"


class InvalidPath(BridgeError):
    status_code = 400
    message = "Invalid Windows path format"


class InvalidName(BridgeError):
    status_code = 400
    message = "Name contains invalid characters"


class MissingArgument(BridgeError):
    status_code = 400
    message = "Required argument is missing"


class UnsupportedType(BridgeError):
    status_code = 400
    message = "File type not supported for preview"


class PayloadTooLarge(BridgeError):
    status_code = 413
    message = "Uploaded file exceeds the size limit"


class PathNotFound(BridgeError):
    status_code = 404
    message = "Path does not exist on the remote host"


class ExecutionFailed(BridgeError):
    status_code = 500
    message = "Remote command failed"

    def __init__(self, message: Optional[str] = None, exit_code: Optional[int] = None,
                 stderr_text: str = ""):
        self.exit_code = exit_code
        self.stderr_text = stderr_text
        super().__init__(message, details=stderr_text.strip() or None)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["exitCode"] = self.exit_code
        return body


class ExecutionTimeout(BridgeError):
    status_code = 504
    message = "Remote command timed out"


class CopyMissing(BridgeError):
    status_code = 500
    message = "Remote copy reported success but the file did not arrive"
