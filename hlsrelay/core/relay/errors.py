class RelayError(Exception):
    """Base class for failures while fetching an upstream resource."""


class TransportError(RelayError):
    """DNS failure, refused connection, timeout or any other network-level error."""


class UpstreamHttpError(RelayError):
    """Origin answered with a status that is neither success nor a redirect."""

    def __init__(self, status_code: int) -> None:
        """
        Initialize the exception with the origin status code.

        Parameters:
            status_code (int): HTTP status returned by the origin.

        Description:
            Stores `status_code` on the instance and sets the exception message to "HTTP <status_code>".
        """
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class TooManyRedirects(RelayError):
    """Redirect chain exceeded the configured maximum."""

    def __init__(self, max_redirects: int) -> None:
        self.max_redirects = max_redirects
        super().__init__("Too many redirects")
