"""Errors raised while talking to the WebPageTest service."""


class WebPageTestError(Exception):
    """Raised when the WebPageTest API rejects a request or answers garbage."""


class TestTimeoutError(WebPageTestError):
    """Raised when a submitted test does not complete within the timeout."""

    __test__ = False

    def __init__(self, test_id: str, timeout: float) -> None:
        super().__init__(f"Test {test_id} did not complete within {timeout} seconds")
        self.test_id = test_id
        self.timeout = timeout
