# oauth_errors.py


class OAuthError(Exception):
    """Error reported to the caller as an RFC 6749 error response."""

    def __init__(self, error: str, description: str, status_code: int = 400):
        super().__init__(f"{error}: {description}")
        self.error = error
        self.description = description
        self.status_code = status_code

    def to_dict(self):
        return {"error": self.error, "error_description": self.description}


class InvalidRequestError(OAuthError):
    def __init__(self, description: str):
        super().__init__("invalid_request", description)


class InvalidGrantError(OAuthError):
    def __init__(self, description: str):
        super().__init__("invalid_grant", description)


class InvalidTokenError(OAuthError):
    def __init__(self, description: str):
        super().__init__("invalid_token", description, status_code=401)


SERVER_ERROR_BODY = {
    "error": "server_error",
    "error_description": "An internal server error occurred",
}
