"""aws-eni CLI"""

import json
from typing import Optional

import typer
import yaml
from rich.console import Console

from .config import ENIConfig
from .core import setup_logging
from .errors import ENIError
from .modules.eni import ENIClient, ENIDisplay

app = typer.Typer(
    name="aws-eni",
    help="Manage elastic network interfaces of this EC2 instance",
    no_args_is_help=True,
)
console = Console()


class Ctx:
    def __init__(self):
        self.profile: Optional[str] = None
        self.format: str = "table"
        self.config: ENIConfig = ENIConfig()


# Global context instance
gctx = Ctx()


def _render(data, fmt: str):
    if fmt == "table":
        return False  # caller should render with display
    if fmt == "json":
        console.print_json(json.dumps(data, default=str))
        return True
    if fmt == "yaml":
        console.print(yaml.safe_dump(data, sort_keys=False))
        return True
    console.print(f"[yellow]Unknown format: {fmt}. Defaulting to table.[/]")
    return False


def _client() -> ENIClient:
    return ENIClient(gctx.profile, config=gctx.config)


def _fail(e: ENIError):
    ENIDisplay(console).print_error(str(e))
    raise typer.Exit(1)


@app.callback()
def _global(
    profile: Optional[str] = typer.Option(None, "--profile", "-p"),
    output_format: str = typer.Option("table", "--format", help="table|json|yaml"),
    owner_tag: Optional[str] = typer.Option(
        None, "--owner-tag", help="Value of the 'created by' ownership tag"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Seconds to wait for EC2 to converge"
    ),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    log_file: Optional[str] = typer.Option(None, "--log-file"),
):
    gctx.profile = profile
    gctx.format = output_format
    try:
        gctx.config = ENIConfig.from_env(owner_tag=owner_tag, timeout=timeout)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1)
    setup_logging(debug=debug, log_file=log_file)


@app.command("environment")
def show_environment():
    """Show this instance's id, zone, region and VPC"""
    try:
        identity = _client().environment.get().model_dump()
    except ENIError as e:
        _fail(e)
    if not _render(identity, gctx.format):
        ENIDisplay(console).show_environment(identity)


@app.command("clean")
def clean(
    filter: Optional[str] = typer.Argument(
        None, help="Interface id, subnet id or availability zone"
    ),
    unsafe: bool = typer.Option(
        False,
        "--unsafe",
        help="Also delete interfaces not created by this tool, regardless of age",
    ),
):
    """Delete unattached interfaces in this VPC"""
    try:
        result = _client().clean_interfaces(filter, safe_mode=not unsafe).to_dict()
    except ENIError as e:
        _fail(e)
    if not _render(result, gctx.format):
        ENIDisplay(console).show_clean(result)


@app.command("allocate-eip")
def allocate_eip():
    """Allocate a new elastic IP address"""
    try:
        result = _client().allocate_elastic_ip().to_dict()
    except ENIError as e:
        _fail(e)
    if not _render(result, gctx.format):
        ENIDisplay(console).show_result("Allocated Elastic IP", result)


@app.command("release-eip")
def release_eip(
    address: str = typer.Argument(..., help="Public IP or allocation id"),
):
    """Release an unassociated elastic IP address"""
    try:
        result = _client().release_elastic_ip(address).to_dict()
    except ENIError as e:
        _fail(e)
    if not _render(result, gctx.format):
        ENIDisplay(console).show_result("Released Elastic IP", result)


@app.command("check-access")
def check_access():
    """Check the AWS credentials allow every EC2 call aws-eni makes"""
    try:
        allowed = _client().can_access_ec2()
    except ENIError as e:
        _fail(e)
    if _render({"ec2_access": allowed}, gctx.format):
        if not allowed:
            raise typer.Exit(1)
        return
    if allowed:
        console.print("[green]EC2 API access OK[/]")
    else:
        console.print("[red]Insufficient AWS API access[/]")
        raise typer.Exit(1)


def main():
    app()


if __name__ == "__main__":
    main()
