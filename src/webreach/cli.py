import asyncio
import json
import logging
from typing import Optional

import typer
from rich import print
from rich.table import Table

from webreach.config import get_config
from webreach.services.tool_executor import ToolExecutor

logger = logging.getLogger(__name__)

APP_HELP = """
webreach: Live web and social retrieval tools for agents.

Each tool returns a JSON envelope. Failures never crash the command; they come
back as {"error", "error_code", "suggestion"} so the caller can recover.

TOOLS:
- web_search:          Search the web (SearXNG or Tavily).
- web_scrape:          Title and main text of one page.
- multi_scrape:        Up to 3 pages at once, failures isolated per URL.
- social_timeline:     Recent posts of a Twitter/X account via mirrors.
- social_post_scrape:  One Twitter/X post and its thread via mirrors.
"""

app = typer.Typer(name="webreach", help=APP_HELP, no_args_is_help=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command("tools")
def list_tools(json_output: bool = typer.Option(False, "--json", help="Output schemas as JSON")):
    """
    List the available tools and their arguments.
    """
    executor = ToolExecutor(get_config())
    schemas = executor.get_tool_schemas()

    if json_output:
        typer.echo(json.dumps(schemas, indent=2))
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Arguments", style="magenta")
    table.add_column("Description")

    for schema in schemas:
        fn = schema["function"]
        params = fn.get("parameters", {})
        required = set(params.get("required", []))
        args = ", ".join(
            name if name in required else f"{name} (optional)"
            for name in params.get("properties", {})
        )
        table.add_row(fn["name"], args, fn.get("description", ""))

    print(table)


@app.command("run")
def run_tool(
    name: str = typer.Argument(..., help="Tool name (see `webreach tools`)"),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object"),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Override the tool timeout in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """
    Run one tool and print its JSON envelope.

    Example: webreach run social_timeline --args '{"username": "jack"}'
    """
    _configure_logging(verbose)

    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        print(f"[red]Invalid --args JSON: {e}[/red]")
        raise typer.Exit(code=2)

    executor = ToolExecutor(get_config())
    envelope = asyncio.run(executor.dispatch(name, arguments, timeout=timeout))
    typer.echo(json.dumps(envelope, indent=2, default=str, ensure_ascii=False))

    if "error_code" in envelope:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
