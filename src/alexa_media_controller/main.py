"""Main entry point for the Alexa media controller.

This module provides the CLI interface: configuration loading, logging setup,
session creation and output rendering around the command verbs.
"""

import asyncio
import logging
import pathlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar

import jinja2
import typer

from alexa_media_controller import commands, config
from alexa_media_controller.credential_store import DEFAULT_DEVICE_KEY, CredentialStore, create_credential_store
from alexa_media_controller.devices import is_default, list_controllable
from alexa_media_controller.errors import ControllerError
from alexa_media_controller.logger import get_logger
from alexa_media_controller.remote_client import alexa_connector
from alexa_media_controller.session import Session, SessionManager

LOGGER_NAME = "alexa_media_controller"
BROADCAST_FAILED_EXIT_CODE = 4

T = TypeVar("T")

app = typer.Typer(help="Alexa Media Controller", no_args_is_help=True, add_completion=False)

DeviceOption = Annotated[str | None, typer.Option("--device", "-d", help="Target device name or serial")]


@dataclass
class AppContext:
    """State shared by all commands of one invocation.

    Attributes:
        config_obj: Loaded configuration.
        logger: Process logger.
        store: Credential store selected by the configuration.
        template_env: Jinja2 environment for output templates.
    """

    config_obj: config.ControllerConfig
    logger: logging.Logger
    store: CredentialStore
    template_env: jinja2.Environment

    def render(self, template_name: str, **context: Any) -> str:
        return self.template_env.get_template(template_name).render(**context).rstrip("\n")


def ok(message: str) -> None:
    typer.echo(typer.style("✓", fg=typer.colors.GREEN) + " " + message)


def info(message: str) -> None:
    typer.echo(typer.style("→", fg=typer.colors.BLUE) + " " + message)


def fail(message: str, hint: str | None = None, exit_code: int = 1) -> typer.Exit:
    typer.secho(f"✗ {message}", fg=typer.colors.RED, err=True)
    if hint:
        typer.secho(f"  {hint}", dim=True, err=True)
    return typer.Exit(code=exit_code)


def bold(text: str) -> str:
    return typer.style(text, bold=True)


@app.callback()
def cli(
    ctx: typer.Context,
    config_path: Annotated[
        pathlib.Path | None,
        typer.Option("--config", envvar="AMC_CONFIG_PATH", help="YAML configuration file"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Control Alexa media devices."""
    config_obj = config.load_config(config_path)
    logger = get_logger(LOGGER_NAME, logging.DEBUG if verbose else config_obj.log_level)
    template_env = jinja2.Environment(
        loader=jinja2.PackageLoader("alexa_media_controller", "templates"),
    )
    ctx.obj = AppContext(
        config_obj=config_obj,
        logger=logger,
        store=create_credential_store(config_obj),
        template_env=template_env,
    )


def run_with_session(ctx: typer.Context, action: Callable[[Session], Awaitable[T]]) -> T:
    """Connect, run action with the session and map controller errors to exit codes."""
    app_ctx: AppContext = ctx.obj
    connector = alexa_connector(app_ctx.config_obj.alexa, app_ctx.config_obj.config_dir, app_ctx.logger)
    manager = SessionManager(app_ctx.store, connector, app_ctx.logger)

    async def runner() -> T:
        try:
            session = await manager.get_session()
            return await action(session)
        finally:
            await manager.close()

    try:
        return asyncio.run(runner())
    except ControllerError as e:
        raise fail(str(e), e.hint, e.exit_code) from e
    except ValueError as e:
        raise fail(str(e)) from e


@app.command()
def auth(
    ctx: typer.Context,
    cookie: Annotated[str, typer.Option(prompt=True, hide_input=True, help="Amazon cookie string")],
    csrf: Annotated[str | None, typer.Option(help="csrf token")] = None,
) -> None:
    """Store Amazon credentials captured by a login helper."""
    app_ctx: AppContext = ctx.obj
    try:
        commands.save_credentials(app_ctx.store, cookie, csrf)
    except ValueError as e:
        raise fail(str(e)) from e
    ok("Authenticated! Credentials saved.")
    ok("Run: amc devices  - to see your Alexa devices")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Remove saved credentials."""
    commands.logout(ctx.obj.store)
    ok("Logged out. Run amc auth to re-authenticate.")


@app.command()
def devices(ctx: typer.Context) -> None:
    """List playback-capable Alexa devices."""
    app_ctx: AppContext = ctx.obj
    device_list = run_with_session(ctx, list_controllable)
    if not device_list:
        info("No playback-capable devices found.")
        return
    default = app_ctx.store.get(DEFAULT_DEVICE_KEY)
    rows = [(device, is_default(device, default)) for device in device_list]
    typer.echo(app_ctx.render("devices.j2", rows=rows, bold=bold))


@app.command("default")
def default_device(ctx: typer.Context, name: str) -> None:
    """Set the default device."""
    device = run_with_session(ctx, lambda session: commands.set_default(session, name))
    ok(f"Default device set to: {bold(device.account_name)}")


@app.command()
def play(
    ctx: typer.Context,
    query: Annotated[str | None, typer.Argument()] = None,
    service: Annotated[
        str, typer.Option("--service", "-s", help="Music service (applemusic, spotify, amazon)")
    ] = "applemusic",
    device: DeviceOption = None,
) -> None:
    """Play music, or resume playback without a query."""
    target = run_with_session(ctx, lambda session: commands.play(session, query, service, device))
    if query:
        ok(f'Playing "{query}" via {service} on {bold(target.account_name)}')
    else:
        ok(f"Resumed on {bold(target.account_name)}")


@app.command()
def pause(ctx: typer.Context, device: DeviceOption = None) -> None:
    """Pause playback."""
    target = run_with_session(ctx, lambda session: commands.pause(session, device))
    ok(f"Paused on {bold(target.account_name)}")


@app.command("next")
def next_track(ctx: typer.Context, device: DeviceOption = None) -> None:
    """Skip to the next track."""
    target = run_with_session(ctx, lambda session: commands.next_track(session, device))
    ok(f"Skipped on {bold(target.account_name)}")


@app.command("prev")
def previous_track(ctx: typer.Context, device: DeviceOption = None) -> None:
    """Go to the previous track."""
    target = run_with_session(ctx, lambda session: commands.previous_track(session, device))
    ok(f"Previous track on {bold(target.account_name)}")


@app.command("vol")
def volume(
    ctx: typer.Context,
    level: Annotated[int, typer.Argument(min=commands.MIN_VOLUME, max=commands.MAX_VOLUME)],
    device: DeviceOption = None,
) -> None:
    """Set the volume (0-100)."""
    target = run_with_session(ctx, lambda session: commands.set_volume(session, level, device))
    ok(f"Volume set to {bold(str(level))} on {bold(target.account_name)}")


@app.command()
def mute(ctx: typer.Context, device: DeviceOption = None) -> None:
    """Mute the device."""
    target = run_with_session(ctx, lambda session: commands.mute(session, device))
    ok(f"Muted {bold(target.account_name)}")


@app.command()
def say(ctx: typer.Context, text: str, device: DeviceOption = None) -> None:
    """Make Alexa say something."""
    target = run_with_session(ctx, lambda session: commands.speak(session, text, device))
    ok(f'Alexa says: "{text}" on {bold(target.account_name)}')


@app.command()
def announce(ctx: typer.Context, text: str) -> None:
    """Announce to every Alexa device."""
    app_ctx: AppContext = ctx.obj
    results = run_with_session(ctx, lambda session: commands.broadcast(session, text))
    if not results:
        info("No playback-capable devices found.")
        return
    typer.echo(app_ctx.render("broadcast.j2", text=text, results=results, bold=bold))
    if not all(result.ok for result in results):
        raise typer.Exit(code=BROADCAST_FAILED_EXIT_CODE)


@app.command()
def cmd(ctx: typer.Context, text: str, device: DeviceOption = None) -> None:
    """Send any text command to Alexa."""
    target = run_with_session(ctx, lambda session: commands.text_command(session, text, device))
    ok(f'Sent: "{text}" -> {bold(target.account_name)}')


@app.command()
def routine(ctx: typer.Context, name: str, device: DeviceOption = None) -> None:
    """Trigger an Alexa routine by name."""
    target = run_with_session(ctx, lambda session: commands.run_routine(session, name, device))
    ok(f'Routine "{name}" triggered on {bold(target.account_name)}')


@app.command()
def status(ctx: typer.Context, device: DeviceOption = None) -> None:
    """Show the current playback status."""
    app_ctx: AppContext = ctx.obj
    target, player_status = run_with_session(ctx, lambda session: commands.status(session, device))
    if player_status is None:
        typer.secho("No playback info available.", dim=True)
        return
    state_colors = {"PLAYING": typer.colors.GREEN, "PAUSED": typer.colors.YELLOW}
    state = typer.style(player_status.state, fg=state_colors.get(player_status.state))
    typer.echo(app_ctx.render("status.j2", device=target, status=player_status, state=state, bold=bold))


if __name__ == "__main__":
    app()
