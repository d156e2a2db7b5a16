from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from associate_eip.aws.ec2 import make_ec2_client
from associate_eip.aws.imds import Imds
from associate_eip.control.actions import parse_user_data
from associate_eip.control.executor import Executor

err_console = Console(stderr=True)

DEFAULT_USER_DATA_PATH = "/.bottlerocket/bootstrap-containers/current/user-data"


def _make_executor(debug: bool) -> Executor:
    """Create an Executor with stdout progress and optional debug wiring."""
    on_debug = None
    if debug:
        on_debug = lambda msg: err_console.log(f"[dim]{escape(msg)}[/]")
    imds = Imds(on_debug=on_debug)
    return Executor(imds, make_client=make_ec2_client, on_status=click.echo, on_debug=on_debug)


def _fail(message: str, code: int = 1):
    err_console.print(f"[bold red]Error:[/] {escape(message)}", soft_wrap=True)
    raise SystemExit(code)


@click.command()
@click.version_option(version="0.1.0", prog_name="associate-eip")
@click.option(
    "--user-data", "user_data_path",
    default=DEFAULT_USER_DATA_PATH, envvar="USER_DATA_PATH", show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="File holding the container user-data",
)
@click.option("--debug", is_flag=True, help="Show IMDS and EC2 calls on stderr")
def cli(user_data_path, debug):
    """Attach Elastic IPs and assign private addresses to this instance.

    User-data is either a comma-separated list of eipalloc ids, IPv4 and
    IPv6 addresses, or JSON: one object or an array of objects with
    AllocationId, AllowReassociation and Filters.
    """
    try:
        raw = user_data_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        _fail(f"could not read user-data from {user_data_path}: {e}")

    try:
        actions = parse_user_data(raw)
    except ValueError as e:
        _fail(f"invalid user-data ({type(e).__name__}): {e}")

    executor = _make_executor(debug)
    try:
        executor.run(actions)
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Interrupted.[/]")
        raise SystemExit(130)
    except Exception as e:
        _fail(f"{type(e).__name__}: {e}")
