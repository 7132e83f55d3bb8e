"""CLI commands for deskpress."""

import asyncio
import base64
import os
import re
import secrets
import sys
from pathlib import Path

import click

from deskpress.config import get_settings, set_config_path
from deskpress.lib.build_status import BuildStatus, BuildStatusPoller, fetch_build_status


@click.group()
@click.version_option(package_name="deskpress")
@click.option(
    "-f",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the app config file (defaults to ./app.yaml)",
)
def cli(config_path):
    """deskpress - admin backend for a small publishing site."""
    if config_path:
        set_config_path(config_path)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the API server."""
    import signal

    from hypercorn.asyncio import serve as hypercorn_serve
    from hypercorn.config import Config

    config = Config()
    config.application_path = "deskpress.asgi:app()"
    config.bind = [f"{host}:{port}"]
    config.workers = 1 if reload else workers
    config.loglevel = log_level.upper()
    config.include_server_header = False

    if reload:
        config.use_reloader = True
        from hypercorn.run import run
        run(config)
        return

    from deskpress.asgi import create_app

    app = create_app()
    shutdown_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    loop.add_signal_handler(signal.SIGINT, shutdown_event.set)
    loop.add_signal_handler(signal.SIGTERM, shutdown_event.set)
    try:
        loop.run_until_complete(hypercorn_serve(app, config, shutdown_trigger=shutdown_event.wait))
    finally:
        loop.close()


@cli.command()
@click.option("--write", type=click.Path(), default=None, help="Write SECRET_KEY to a .env file")
@click.option(
    "--format",
    "fmt",
    default="urlsafe",
    type=click.Choice(["urlsafe", "hex", "base64"]),
    help="Output format for the secret key",
)
@click.option("--length", default=32, type=int, help="Number of random bytes")
def secret(write, fmt, length):
    """Generate a secure secret key."""
    if fmt == "urlsafe":
        key = secrets.token_urlsafe(length)
    elif fmt == "hex":
        key = secrets.token_hex(length)
    else:
        key = base64.b64encode(secrets.token_bytes(length)).decode("ascii")

    if not write:
        click.echo(key)
        return

    env_path = Path(write)
    env_content = env_path.read_text() if env_path.exists() else ""

    pattern = re.compile(r"^SECRET_KEY=.*$", re.MULTILINE)
    new_line = f"SECRET_KEY={key}"
    if pattern.search(env_content):
        env_content = pattern.sub(new_line, env_content)
    else:
        if env_content and not env_content.endswith("\n"):
            env_content += "\n"
        env_content += new_line + "\n"

    env_path.write_text(env_content)
    click.echo(f"SECRET_KEY written to {env_path}")


def _run_alembic(args: list[str]) -> None:
    from alembic.config import CommandLine, Config

    package_dir = Path(__file__).parent
    alembic_ini = package_dir / "alembic.ini"
    if not alembic_ini.exists():
        click.echo("Error: Could not find alembic.ini", err=True)
        sys.exit(1)

    cfg = Config(str(alembic_ini))
    cfg.set_main_option("script_location", str(package_dir / "alembic"))

    cmd = CommandLine()
    options = cmd.parser.parse_args(args)
    if not hasattr(options, "cmd"):
        cmd.parser.error("too few arguments")
    cfg.cmd_opts = options
    fn, positional, kwarg = options.cmd
    fn(
        cfg,
        *[getattr(options, k, None) for k in positional],
        **{k: getattr(options, k, None) for k in kwarg},
    )


@cli.command(context_settings=dict(ignore_unknown_options=True, allow_extra_args=True))
@click.pass_context
def db(ctx):
    """Run database migrations via Alembic.

    \b
    Examples:
        deskpress db upgrade head    # Apply all migrations
        deskpress db downgrade -1    # Roll back one migration
        deskpress db current         # Show current revision
    """
    if not ctx.args:
        click.echo(ctx.get_help())
        return
    _run_alembic(ctx.args)


def _echo_status(status: BuildStatus) -> None:
    current = status.current
    if current is None:
        click.echo("No builds found")
    else:
        outcome = current.conclusion or current.status
        click.echo(f"Build #{current.id}: {outcome} ({current.event or 'unknown trigger'})")
        if current.html_url:
            click.echo(f"  {current.html_url}")
    if status.last_successful and status.last_successful.completed_at:
        click.echo(f"Last successful: {status.last_successful.completed_at.isoformat()}")


@cli.command("build-status")
@click.option("--watch", is_flag=True, help="Keep polling until the current build finishes")
@click.option("--interval", type=float, default=None, help="Seconds between polls")
def build_status(watch, interval):
    """Show the static-site build status."""
    from deskpress.lib.github import GitHubClient

    settings = get_settings()
    github = GitHubClient(settings.github)
    if not github.is_configured:
        raise click.ClickException("GitHub repository is not configured")

    async def fetch() -> BuildStatus:
        return await fetch_build_status(github)

    async def run() -> None:
        if not watch:
            _echo_status(await fetch())
            return
        poller = BuildStatusPoller(
            fetch,
            interval=interval or settings.build.poll_interval,
            on_update=_echo_status,
        )
        poller.start()
        try:
            await poller.wait()
        finally:
            await poller.stop()

    asyncio.run(run())


@cli.command()
def rebuild():
    """Trigger a rebuild of the static site."""
    from deskpress.lib.github import GitHubClient

    github = GitHubClient(get_settings().github)
    if not github.is_configured:
        raise click.ClickException("GitHub repository is not configured")
    asyncio.run(github.dispatch_rebuild(manual=True))
    click.echo("Rebuild triggered")


@cli.command("grant-admin")
@click.argument("email")
def grant_admin(email):
    """Make an existing user an admin (bootstraps the first admin)."""
    from sqlalchemy import select

    from deskpress.asgi import create_db_config
    from deskpress.db.models import User
    from deskpress.db.services import user_service

    async def run() -> bool:
        db_config = create_db_config(get_settings())
        async with db_config.get_session() as session:
            user = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
            if user is None:
                return False
            await user_service.grant_admin_access(session, user.id)
            return True

    if not asyncio.run(run()):
        raise click.ClickException(f"No user with email {email}; sign in once first")
    click.echo(f"{email} is now an admin")


@cli.command("device-login")
@click.option("--client-id", default=None, help="GitHub App client ID (defaults to auth.device_client_id)")
@click.option("--scope", default="repo", help="Requested scope")
def device_login(client_id, scope):
    """Obtain a GitHub token through the device flow."""
    from deskpress.lib.device_auth import DeviceAuthError, GitHubDeviceAuth

    client_id = client_id or get_settings().auth.device_client_id or os.environ.get("GITHUB_CLIENT_ID")
    if not client_id:
        raise click.ClickException("No GitHub client ID configured")

    flow = GitHubDeviceAuth(client_id, scope=scope)

    async def run() -> str:
        code = await flow.request_device_code()
        click.echo(f"Open {code.verification_uri} and enter the code {code.user_code}")
        return await flow.poll_for_token(code.device_code, code.interval)

    try:
        token = asyncio.run(run())
    except DeviceAuthError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(token)


if __name__ == "__main__":
    cli()
