"""
Error taxonomy for WFS access and reprojection.
"""


class WFSError(Exception):
    """
    Base class for all WFS client failures.

    Parameters
    ----------
    message : str
        Error message describing the failure
    stage : str or None, optional
        Pipeline stage that failed ("normalize", "capabilities", "hits",
        "features" or "reproject")
    url : str or None, optional
        Offending resource or request URL
    """

    def __init__(self, message: str, stage: str | None = None, url: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.url = url


class UrlParseError(WFSError):
    """Raised when a resource URL cannot be parsed into a WFS endpoint."""


class NetworkError(WFSError):
    """
    Raised on transport failures or non-success HTTP status codes.

    Parameters
    ----------
    message : str
        Error message describing the failure
    stage : str or None, optional
        Pipeline stage that failed
    url : str or None, optional
        Request URL
    status_code : int or None, optional
        HTTP status code when the server answered with an error
    """

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, stage=stage, url=url)
        self.status_code = status_code


class RequestTimeoutError(NetworkError, TimeoutError):
    """Raised when a request exceeds its configured timeout. Also a builtin ``TimeoutError``."""


class EmptyCapabilitiesError(WFSError):
    """Raised when a GetCapabilities document advertises no feature types."""


class InvalidResponseError(WFSError):
    """Raised when a response body or content type is not what was requested."""


class UnresolvableCRSError(WFSError):
    """
    Raised when a source CRS cannot be mapped to a projection definition.

    Parameters
    ----------
    message : str
        Error message describing the failure
    crs : str or None, optional
        The CRS identifier that could not be resolved
    """

    def __init__(self, message: str, crs: str | None = None) -> None:
        super().__init__(message, stage="reproject")
        self.crs = crs
