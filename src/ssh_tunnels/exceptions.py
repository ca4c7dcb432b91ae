"""Custom exceptions for SSH tunnel manager."""


class TunnelManagerError(Exception):
    """Base exception for all tunnel manager errors."""
    pass


class RegistryError(TunnelManagerError):
    """Raised for tunnel registry identity errors."""
    pass


class DuplicateIdError(RegistryError):
    """Raised when a tunnel with the same ID is already registered."""

    def __init__(self, tunnel_id: int):
        self.tunnel_id = tunnel_id
        super().__init__(f"Tunnel with ID {tunnel_id} already exists")


class TunnelNotFoundError(RegistryError):
    """Raised when no tunnel is registered under the given ID."""

    def __init__(self, tunnel_id: int):
        self.tunnel_id = tunnel_id
        super().__init__(f"Tunnel with ID {tunnel_id} not found")


class StoreError(TunnelManagerError):
    """Raised when reading or writing tunnel storage fails."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)


class CorruptStoreError(StoreError):
    """Raised when a tunnel file exists but cannot be parsed."""
    pass


class SourceNotFoundError(StoreError):
    """Raised when an import source cannot be read."""
    pass


class StoreWriteError(StoreError):
    """Raised when tunnel settings cannot be written."""
    pass


class AuditSinkError(TunnelManagerError):
    """Raised when the audit log cannot be opened."""
    pass


class CredentialUnavailableError(TunnelManagerError):
    """Raised when a credential provider cannot supply a password."""
    pass
