# Copyright 2025 iGenius S.p.A
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from typing_extensions import Annotated

from ..config.settings import Settings, get_settings
from ..core.orchestrator import ReadinessOrchestrator
from ..exceptions import ConfigurationError
from ..helpers.logger import setup_logger
from ..utils.version import get_version

app = typer.Typer(
    name="wait-for-ironic",
    no_args_is_help=True,
    help="Wait for the Ironic services to be up and running.",
)

console = Console()
logger = setup_logger("ironic_readiness", level=logging.INFO, console=console)

IronicEndpointOpt = Annotated[
    Optional[str],
    typer.Option("--ironic-endpoint", help="Ironic base URL. Defaults to $IRONIC_ENDPOINT."),
]
InspectorEndpointOpt = Annotated[
    Optional[str],
    typer.Option(
        "--inspector-endpoint",
        help="Ironic Inspector base URL. Defaults to $IRONIC_INSPECTOR_ENDPOINT.",
    ),
]
MicroversionOpt = Annotated[
    Optional[str],
    typer.Option("--microversion", help="Ironic API microversion. Defaults to 1.52."),
]


def _load_settings(**overrides) -> Settings:
    """Read env settings and apply CLI overrides, validating both."""
    update = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = get_settings()
        if update:
            settings = Settings.model_validate({**settings.model_dump(), **update})
    except ValidationError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(code=1)
    setup_logger("ironic_readiness", level=settings.log_level, console=console)
    return settings


def _build_orchestrator(settings: Settings, **kwargs) -> ReadinessOrchestrator:
    try:
        ironic, inspector = settings.endpoints()
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    return ReadinessOrchestrator(
        ironic,
        inspector,
        timeout_s=settings.timeout_s,
        poll_interval_s=settings.poll_interval_s,
        request_timeout_s=settings.request_timeout_s,
        require_drivers=settings.require_drivers,
        **kwargs,
    )


@app.command("version", short_help="Show the version of wait-for-ironic")
def version(short: bool = False):
    v = get_version()
    print(v if short else f"wait-for-ironic version: {v}")
    raise typer.Exit()


@app.command("wait", short_help="Block until Ironic and Ironic Inspector are ready")
def wait_for_ironic(
    ironic_endpoint: IronicEndpointOpt = None,
    inspector_endpoint: InspectorEndpointOpt = None,
    microversion: MicroversionOpt = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Overall timeout in seconds. Defaults to 600."),
    ] = None,
    poll_interval: Annotated[
        Optional[float],
        typer.Option("--poll-interval", help="Seconds between attempts. Defaults to 5."),
    ] = None,
    require_drivers: Annotated[
        Optional[bool],
        typer.Option(
            "--require-drivers/--no-require-drivers",
            help="Fail when Ironic is up but has no drivers loaded.",
        ),
    ] = None,
    sequential: Annotated[
        bool,
        typer.Option("--sequential", help="Wait for Ironic first, then for Inspector."),
    ] = False,
):
    """
    Wait for Ironic (and its drivers) and Ironic Inspector to become ready.

    Exits 0 when both services answer, 1 on timeout or missing configuration.
    """
    settings = _load_settings(
        ironic_endpoint=ironic_endpoint,
        inspector_endpoint=inspector_endpoint,
        ironic_microversion=microversion,
        timeout_s=timeout,
        poll_interval_s=poll_interval,
        require_drivers=require_drivers,
    )

    with console.status("[bold green]Waiting for Ironic services…") as status:
        orchestrator = _build_orchestrator(
            settings,
            sequential=sequential,
            on_progress=lambda msg: status.update(f"[yellow]{msg}"),
        )
        typer.echo("Waiting for Ironic...")
        typer.echo("Waiting for Ironic Inspector...")
        report = orchestrator.run()

    if not report.ready:
        typer.echo(report.message, err=True)
        raise typer.Exit(code=1)
    typer.echo(report.message)


@app.command("check", short_help="Check once, without waiting, whether Ironic is ready")
def check(
    ironic_endpoint: IronicEndpointOpt = None,
    inspector_endpoint: InspectorEndpointOpt = None,
    microversion: MicroversionOpt = None,
):
    settings = _load_settings(
        ironic_endpoint=ironic_endpoint,
        inspector_endpoint=inspector_endpoint,
        ironic_microversion=microversion,
    )
    orchestrator = _build_orchestrator(settings)
    if not orchestrator.is_ready():
        typer.echo("Ironic is not ready", err=True)
        raise typer.Exit(code=1)
    typer.echo("Ironic is ready")


if __name__ == "__main__":
    app()
