class FunctionError(Exception):
    """Failure that must reach the caller as a JSON error body."""

    def __init__(self, message, status=500, details=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details

    def to_dict(self):
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ConfigError(FunctionError):
    def __init__(self, what):
        super().__init__(f"{what} not configured", status=500)


def require(value, what):
    if not value:
        raise ConfigError(what)
    return value
