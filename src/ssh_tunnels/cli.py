"""Command line interface: ssh-tunnels.

Every command loads the tunnel file first and, unless disabled, runs the
auto-connect sweep before doing its own work.
"""

from __future__ import annotations

import click
from pydantic import ValidationError

from . import __version__
from .common.logging import setup_logging
from .config import ManagerSettings
from .connection.attempt import AttemptOutcome
from .exceptions import TunnelManagerError
from .manager import TunnelManager
from .tunnels.models import KeyAuth, PasswordAuth, TunnelDefinition

PORT = click.IntRange(0, 65535)

MENU = """
Choose a command:
1. Add tunnel
2. Remove tunnel
3. Connect to tunnel
4. Connect to all tunnels
5. List tunnels
6. Search tunnels
7. Export configuration
8. Import configuration
9. Exit"""


def render_outcome(outcome: AttemptOutcome) -> None:
    if outcome.succeeded:
        click.secho(f"OK  {outcome.describe()}", fg="green")
    else:
        click.secho(f"ERR {outcome.describe()}", fg="red")


def render_tunnel(tunnel: TunnelDefinition) -> str:
    return (
        f"ID: {tunnel.id}, Name: '{tunnel.name}', Host: {tunnel.hostname}, "
        f"Local port: {tunnel.local_port}, Remote port: {tunnel.remote_port}, "
        f"Auth: {tunnel.auth_label}, Auto-connect: {'on' if tunnel.auto_connect else 'off'}"
    )


def build_definition(
    tunnel_id: int,
    name: str,
    username: str,
    hostname: str,
    local_port: int,
    remote_port: int,
    key_auth: bool,
    key_path: str | None,
    timeout: int,
    auto_connect: bool,
    saved_password: str | None,
) -> TunnelDefinition:
    """Build a definition from command input.

    Raises:
        click.UsageError: If the input does not form a valid tunnel
    """
    if key_auth and saved_password is not None:
        raise click.UsageError("A saved password cannot be combined with key auth")

    name, username, hostname = name.strip(), username.strip(), hostname.strip()
    if not hostname:
        raise click.UsageError("Host must not be empty")

    credential: KeyAuth | PasswordAuth
    if key_auth:
        credential = KeyAuth(key_path=key_path or None)
    else:
        credential = PasswordAuth(saved_password=saved_password)

    try:
        return TunnelDefinition(
            id=tunnel_id,
            name=name,
            username=username,
            hostname=hostname,
            local_port=local_port,
            remote_port=remote_port,
            credential=credential,
            timeout_seconds=timeout,
            auto_connect=auto_connect,
        )
    except ValidationError as e:
        raise click.UsageError(f"Invalid tunnel: {e}") from e


def echo_tunnels(manager: TunnelManager) -> None:
    found = False
    for _, tunnel in manager.list_tunnels():
        click.echo(render_tunnel(tunnel))
        found = True
    if not found:
        click.echo("No tunnels configured.")


def echo_search(manager: TunnelManager, query: str) -> None:
    found = manager.search(query)
    for tunnel in found:
        click.echo(f"ID: {tunnel.id}, Name: '{tunnel.name}', Host: {tunnel.hostname}")
    if not found:
        click.echo(f"No tunnels match '{query}'.")


def _manager(ctx: click.Context) -> TunnelManager:
    return ctx.find_object(TunnelManager)


@click.group(context_settings={"auto_envvar_prefix": "SSH_TUNNELS"})
@click.version_option(version=__version__, prog_name="ssh-tunnels")
@click.option("--store", "store_path", default="tunnels.json", show_default=True,
              type=click.Path(dir_okay=False), help="Tunnel settings file.")
@click.option("--audit-log", "audit_log_path", default="ssh_tunnel_manager.log",
              show_default=True, type=click.Path(dir_okay=False), help="Audit log file.")
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                                case_sensitive=False))
@click.option("--json-logs", is_flag=True, help="Emit JSON log lines.")
@click.option("--auto-connect/--no-auto-connect", "auto_connect_on_start", default=True,
              help="Connect auto-connect tunnels at startup.")
@click.option("--prompt/--no-prompt", "prompt_for_passwords", default=True,
              help="Ask for passwords that are not saved.")
@click.pass_context
def main(ctx: click.Context, **options):
    """Manage SSH tunnel definitions and test connections to them."""
    settings = ManagerSettings(**options)
    setup_logging(level=settings.log_level, json_format=settings.json_logs)

    try:
        manager = TunnelManager(settings)
        outcomes = manager.start()
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e

    for outcome in outcomes:
        render_outcome(outcome)
    ctx.obj = manager


@main.command("add")
@click.option("--id", "tunnel_id", required=True, type=click.IntRange(min=0))
@click.option("--name", required=True)
@click.option("--user", "username", required=True)
@click.option("--host", "hostname", required=True)
@click.option("--local-port", required=True, type=PORT)
@click.option("--remote-port", required=True, type=PORT)
@click.option("--key-auth", is_flag=True, help="Authenticate with an SSH key.")
@click.option("--key-path", default=None, type=click.Path(dir_okay=False))
@click.option("--timeout", default=None, type=click.IntRange(min=1),
              help="Connect timeout in seconds.")
@click.option("--auto-connect", is_flag=True, help="Connect on every startup.")
@click.option("--save-password", is_flag=True,
              help="Prompt for a password and store it in clear text.")
@click.pass_context
def add_cmd(ctx, tunnel_id, name, username, hostname, local_port, remote_port,
            key_auth, key_path, timeout, auto_connect, save_password):
    """Add a tunnel definition."""
    manager = _manager(ctx)
    saved_password = None
    if save_password and not key_auth:
        saved_password = click.prompt("Password to save", hide_input=True,
                                      confirmation_prompt=True)
    elif save_password:
        raise click.UsageError("--save-password cannot be used with --key-auth")

    tunnel = build_definition(
        tunnel_id, name, username, hostname, local_port, remote_port, key_auth,
        key_path, timeout or manager.settings.default_timeout, auto_connect,
        saved_password,
    )
    try:
        manager.add(tunnel)
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Tunnel '{tunnel.name}' added with ID {tunnel.id}")


@main.command("remove")
@click.argument("tunnel_id", type=int)
@click.pass_context
def remove_cmd(ctx, tunnel_id):
    """Remove a tunnel definition."""
    try:
        _manager(ctx).remove(tunnel_id)
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Tunnel {tunnel_id} removed")


@main.command("connect")
@click.argument("tunnel_id", type=int)
@click.pass_context
def connect_cmd(ctx, tunnel_id):
    """Try to connect and authenticate to one tunnel."""
    try:
        outcome = _manager(ctx).connect(tunnel_id)
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e
    render_outcome(outcome)
    if not outcome.succeeded:
        ctx.exit(1)


@main.command("connect-all")
@click.pass_context
def connect_all_cmd(ctx):
    """Try every tunnel in turn."""
    outcomes = _manager(ctx).connect_all()
    for outcome in outcomes:
        render_outcome(outcome)
    if any(not o.succeeded for o in outcomes):
        ctx.exit(1)


@main.command("list")
@click.pass_context
def list_cmd(ctx):
    """List tunnel definitions."""
    echo_tunnels(_manager(ctx))


@main.command("search")
@click.argument("query")
@click.pass_context
def search_cmd(ctx, query):
    """Find tunnels by name or host substring."""
    echo_search(_manager(ctx), query)


@main.command("export")
@click.argument("destination", type=click.Path(dir_okay=False))
@click.pass_context
def export_cmd(ctx, destination):
    """Write all tunnels to a JSON file."""
    try:
        count = _manager(ctx).export_to(destination)
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Exported {count} tunnel(s) to '{destination}'")


@main.command("import")
@click.argument("source", type=click.Path(dir_okay=False))
@click.pass_context
def import_cmd(ctx, source):
    """Merge tunnels from a JSON file, replacing same-ID entries."""
    try:
        imported = _manager(ctx).import_from(source)
    except TunnelManagerError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Imported {len(imported)} tunnel(s) from '{source}'")


@main.command("shell")
@click.pass_context
def shell_cmd(ctx):
    """Interactive menu."""
    manager = _manager(ctx)
    while True:
        click.echo(MENU)
        choice = click.prompt("Enter command number", default="", show_default=False)
        if choice == "9":
            click.echo("Bye.")
            return
        try:
            _run_menu_choice(manager, choice)
        except (TunnelManagerError, click.UsageError) as e:
            click.secho(f"Error: {e}", fg="red")


def _run_menu_choice(manager: TunnelManager, choice: str) -> None:
    if choice == "1":
        key_auth = click.confirm("Use SSH key for authentication?", default=False)
        tunnel_id = click.prompt("Tunnel ID", type=click.IntRange(min=0))
        name = click.prompt("Name")
        username = click.prompt("Username")
        hostname = click.prompt("Host")
        local_port = click.prompt("Local port", type=PORT)
        remote_port = click.prompt("Remote port", type=PORT)
        key_path = None
        if key_auth:
            key_path = click.prompt("Path to SSH key (empty to leave unset)",
                                    default="", show_default=False) or None
        timeout = click.prompt("Connect timeout in seconds",
                               default=manager.settings.default_timeout,
                               type=click.IntRange(min=1))
        auto_connect = click.confirm("Enable auto-connect?", default=False)
        saved_password = None
        if not key_auth and click.confirm("Save password for automatic login?", default=False):
            saved_password = click.prompt("Password to save", hide_input=True)
        tunnel = build_definition(tunnel_id, name, username, hostname, local_port,
                                  remote_port, key_auth, key_path, timeout,
                                  auto_connect, saved_password)
        manager.add(tunnel)
        click.echo(f"Tunnel '{tunnel.name}' added with ID {tunnel.id}")
    elif choice == "2":
        tunnel_id = click.prompt("Tunnel ID to remove", type=int)
        manager.remove(tunnel_id)
        click.echo(f"Tunnel {tunnel_id} removed")
    elif choice == "3":
        render_outcome(manager.connect(click.prompt("Tunnel ID to connect", type=int)))
    elif choice == "4":
        for outcome in manager.connect_all():
            render_outcome(outcome)
    elif choice == "5":
        echo_tunnels(manager)
    elif choice == "6":
        echo_search(manager, click.prompt("Name or host to search for"))
    elif choice == "7":
        destination = click.prompt("Export file name (e.g. config.json)")
        count = manager.export_to(destination)
        click.echo(f"Exported {count} tunnel(s) to '{destination}'")
    elif choice == "8":
        source = click.prompt("Import file name")
        imported = manager.import_from(source)
        click.echo(f"Imported {len(imported)} tunnel(s) from '{source}'")
    else:
        click.echo("Unknown command, try again.")


if __name__ == "__main__":
    main()
