"""reqview errors - failure taxonomy for the response pipeline."""

# Subset of curl's documented exit codes (see `man curl`, EXIT CODES).
CURL_ERRORS = {
    1: "Unsupported protocol. This build of curl has no support for this protocol.",
    2: "Failed to initialize.",
    3: "URL malformed. The syntax was not correct.",
    5: "Couldn't resolve proxy. The given proxy host could not be resolved.",
    6: "Couldn't resolve host. The given remote host was not resolved.",
    7: "Failed to connect to host.",
    8: "Weird server reply. The server sent data curl couldn't parse.",
    16: "HTTP/2 error. A problem was detected in the HTTP2 framing layer.",
    18: "Partial file. Only a part of the file was transferred.",
    22: "HTTP page not retrieved. The requested url was not found or returned "
    "another error with the HTTP error code being 400 or above.",
    23: "Write error. Curl couldn't write data to a local filesystem or similar.",
    26: "Read error. Various reading problems.",
    27: "Out of memory. A memory allocation request failed.",
    28: "Operation timeout. The specified time-out period was reached.",
    35: "SSL connect error. The SSL handshaking failed.",
    43: "Internal error. A function was called with a bad parameter.",
    45: "Interface error. A specified outgoing interface could not be used.",
    47: "Too many redirects. When following redirects, curl hit the maximum amount.",
    52: "The server didn't reply anything, which here is considered an error.",
    55: "Failed sending network data.",
    56: "Failure in receiving network data.",
    58: "Problem with the local certificate.",
    60: "Peer certificate cannot be authenticated with known CA certificates.",
    61: "Unrecognized transfer encoding.",
    63: "Maximum file size exceeded.",
    67: "The user name, password, or similar was not accepted and curl failed to log in.",
    77: "Problem reading the SSL CA cert (path? access rights?).",
    78: "The resource referenced in the URL does not exist.",
    92: "Stream error in the HTTP/2 framing layer.",
}


def curl_error(code: int) -> str:
    """Human-readable message for a curl exit code."""
    message = CURL_ERRORS.get(code)
    if message is None:
        return f"curl exited with code {code}"
    return f"curl error {code}: {message}"


class ReqviewError(Exception):
    """Base class for reqview errors."""


class ConfigError(ReqviewError):
    """Raised when configuration cannot be interpreted."""


class TransferFailed(ReqviewError):
    """curl ran but exited non-zero. No response is rendered."""

    def __init__(self, exit_code: int):
        self.exit_code = exit_code
        super().__init__(curl_error(exit_code))


class FormatterFailed(ReqviewError):
    """A body formatter failed. Always recovered; the raw body is kept."""

    def __init__(self, subtype: str | None, detail: str):
        self.subtype = subtype
        self.detail = detail
        super().__init__(f"Error formatting {subtype} response body:\n{detail}")


class ScriptError(ReqviewError):
    """A post-processing script raised."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Script failed: {detail}")


class InvocationError(ReqviewError):
    """The transfer itself could not be carried out (e.g. curl missing)."""


class SurfaceError(ReqviewError):
    """Write attempted on a surface that is not writable."""
