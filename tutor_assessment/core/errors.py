class ExternalServiceError(Exception):
    """Raised by service clients when a remote signal source cannot be used"""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")
