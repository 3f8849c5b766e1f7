"""Xero integration errors

Every error carries the HTTP status and a stable code; the application-level
exception handler turns them into JSON error responses.
"""


class XeroError(Exception):
    """Base class for Xero integration failures"""

    status_code = 500
    code = "xero_error"
    default_message = "Xero request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotConnected(XeroError):
    """No token row, no stored credentials or no tokens yet"""

    status_code = 400
    code = "not_connected"
    default_message = "Xero not connected. Please connect Xero in settings."


class RefreshFailed(XeroError):
    """The refresh-token grant was rejected; the user must reconnect"""

    status_code = 401
    code = "refresh_failed"
    default_message = "Failed to refresh Xero token. Please reconnect Xero."


class TenantNotSelected(XeroError):
    status_code = 400
    code = "tenant_not_selected"
    default_message = "Xero tenant not selected. Please reconnect Xero."


class RemoteApiError(XeroError):
    """Non-2xx response from the Xero API"""

    status_code = 502
    code = "remote_api_error"

    def __init__(self, detail: str, http_status: int | None = None):
        self.detail = detail
        self.http_status = http_status
        super().__init__(f"Xero: {detail}")


class PersistenceError(XeroError):
    """A required database write failed"""

    status_code = 500
    code = "persistence_error"
    default_message = "Failed to save Xero data"
