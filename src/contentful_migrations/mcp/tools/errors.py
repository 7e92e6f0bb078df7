"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so AI agents can
recover from errors without human intervention.
"""

import mcp.types as types
import requests

from ...transfer.errors import (
    CommitError,
    FetchError,
    StateMismatchError,
    TransferError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (state_mismatch, fetch_error, commit_error,
            not_found, permission_denied, validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("fetch_error", "Failed to fetch entries", "Retry later.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_transfer_error(error: TransferError) -> types.CallToolResult:
    """Translate a transfer failure into a structured error response."""
    match error:
        case StateMismatchError():
            return build_error_response(
                "state_mismatch",
                str(error),
                "Apply the pending migrations so both environments report "
                "the same version (see migration_status), then retry.",
            )
        case FetchError():
            return build_error_response(
                "fetch_error",
                str(error),
                "Check that the environment exists and the management token "
                "can read it, then retry.",
            )
        case CommitError():
            return build_error_response(
                "commit_error",
                str(error),
                "Records written before the failure were kept. Fix the "
                "listed records and re-run the transfer; unchanged records "
                "are skipped automatically.",
            )
        case _:
            return build_error_response(
                "server_error", str(error), "Retry the transfer later."
            )


def translate_http_error(error: requests.HTTPError) -> types.CallToolResult:
    """Translate a Management API HTTP error into a structured response."""
    status = error.response.status_code if error.response is not None else 0
    match status:
        case 401 | 403:
            return build_error_response(
                "permission_denied",
                str(error),
                "Check CONTENTFUL_MANAGEMENT_TOKEN and its space permissions.",
            )
        case 404:
            return build_error_response(
                "not_found",
                str(error),
                "Check the space id and environment names.",
            )
        case 409 | 422:
            return build_error_response(
                "validation_error",
                str(error),
                "The record was changed or rejected by the content model. "
                "Re-run to pick up the current version.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Retry later; the Management API may be rate limiting.",
            )
