"""Exception type shared by the sidecar client."""


class ClientError(Exception):
    """Raised when a client call is given invalid arguments or fails."""