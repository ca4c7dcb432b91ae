"""Tunnel definition models.

A tunnel definition holds the endpoints of one SSH target and a credential
that is either a key file or a password. ``TunnelRecord`` is the flat shape
the definitions take in the tunnel file.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SSH_PORT = 22
DEFAULT_TIMEOUT = 30
MIN_PORT = 0
MAX_PORT = 65535


class KeyAuth(BaseModel):
    """Authenticate with a private key file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["key"] = "key"
    key_path: str | None = Field(
        default=None, description="Private key file (required to connect)"
    )


class PasswordAuth(BaseModel):
    """Authenticate with a password, saved or asked for at connect time."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["password"] = "password"
    saved_password: str | None = Field(
        default=None, repr=False, description="Password stored in clear text"
    )


AuthCredential = Annotated[KeyAuth | PasswordAuth, Field(discriminator="kind")]


class TunnelDefinition(BaseModel):
    """One named SSH target with its credential and connection options."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, description="Unique tunnel identifier")
    name: str = Field(description="Display name")
    username: str = Field(description="SSH login name")
    hostname: str = Field(description="SSH server host, used verbatim")
    local_port: int = Field(ge=MIN_PORT, le=MAX_PORT, description="Local port")
    remote_port: int = Field(ge=MIN_PORT, le=MAX_PORT, description="Remote port")
    credential: AuthCredential = Field(default_factory=PasswordAuth)
    timeout_seconds: int = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="TCP connect timeout in seconds"
    )
    auto_connect: bool = Field(
        default=False, description="Connect automatically when tunnels are loaded"
    )

    @property
    def uses_key_auth(self) -> bool:
        return isinstance(self.credential, KeyAuth)

    @property
    def auth_label(self) -> str:
        return self.credential.kind

    @property
    def target(self) -> str:
        """SSH endpoint in ``host:port`` form."""
        return f"{self.hostname}:{SSH_PORT}"

    def matches(self, query: str) -> bool:
        """Check whether name or hostname contains query (case-sensitive)."""
        return query in self.name or query in self.hostname


class TunnelRecord(BaseModel):
    """Stored form of a tunnel definition.

    Fields with defaults may be missing in older files; unknown fields are
    ignored so newer files still load.
    """

    model_config = ConfigDict(extra="ignore")

    id: int = Field(ge=0)
    name: str
    username: str
    hostname: str
    local_port: int = Field(ge=MIN_PORT, le=MAX_PORT)
    remote_port: int = Field(ge=MIN_PORT, le=MAX_PORT)
    use_key_auth: bool = False
    key_path: str | None = None
    timeout: int = Field(default=DEFAULT_TIMEOUT, gt=0)
    auto_connect: bool = False
    saved_password: str | None = Field(default=None, repr=False)

    @classmethod
    def from_definition(cls, definition: TunnelDefinition) -> "TunnelRecord":
        credential = definition.credential
        return cls(
            id=definition.id,
            name=definition.name,
            username=definition.username,
            hostname=definition.hostname,
            local_port=definition.local_port,
            remote_port=definition.remote_port,
            use_key_auth=isinstance(credential, KeyAuth),
            key_path=credential.key_path if isinstance(credential, KeyAuth) else None,
            timeout=definition.timeout_seconds,
            auto_connect=definition.auto_connect,
            saved_password=(
                credential.saved_password
                if isinstance(credential, PasswordAuth)
                else None
            ),
        )

    def to_definition(self) -> TunnelDefinition:
        """Build a definition; a saved password is dropped for key auth."""
        credential: KeyAuth | PasswordAuth
        if self.use_key_auth:
            credential = KeyAuth(key_path=self.key_path or None)
        else:
            credential = PasswordAuth(saved_password=self.saved_password)

        return TunnelDefinition(
            id=self.id,
            name=self.name,
            username=self.username,
            hostname=self.hostname,
            local_port=self.local_port,
            remote_port=self.remote_port,
            credential=credential,
            timeout_seconds=self.timeout,
            auto_connect=self.auto_connect,
        )

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")
