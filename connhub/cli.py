"""
CLI tool for running and driving the connection hub.

Provides commands for starting the server and for inspecting and
dispatching to the connections registered on a running instance.
"""

import json
from typing import Any
from urllib.parse import quote

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

typer_app = typer.Typer(
    name="connhub",
    help="Connection hub CLI - Run the server and dispatch events to its connections",
    add_completion=False,
)
console = Console()

DEFAULT_URL = "http://localhost:8000"


class HubClient:
    """
    HTTP client for a running connection hub.

    Example:
        client = HubClient("http://localhost:8000")
        print(client.connections()["count"])
    """

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def __enter__(self) -> "HubClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def connections(self) -> dict[str, Any]:
        return self._request("GET", "/connections")

    def broadcast(self, event: str, message: Any) -> dict[str, Any]:
        return self._request(
            "POST", "/broadcast", json={"event": event, "message": message}
        )

    def multicast(
        self, exclude: list[str], event: str, message: Any
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/multicast",
            json={"event": event, "message": message, "exclude": exclude},
        )

    def disconnect(self, key: str) -> None:
        self._request("POST", f"/connections/{quote(key, safe='')}/disconnect")

    def disconnect_all(self) -> dict[str, Any]:
        return self._request("POST", "/disconnect-all")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._client.request(method, f"{self.base_url}{path}", **kwargs)
        response.raise_for_status()
        if response.status_code == httpx.codes.NO_CONTENT:
            return None
        return response.json()


def _parse_message(message: str) -> Any:
    """Send JSON objects and arrays as structured data, anything else as text."""
    try:
        parsed = json.loads(message)
    except json.JSONDecodeError:
        return message
    return parsed if isinstance(parsed, (dict, list)) else message


def _fail(error: httpx.HTTPError) -> None:
    console.print(f"[red]✗ Request failed:[/red] {error}")
    raise typer.Exit(code=1)


@typer_app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """
    Run the hub with uvicorn.

    Example:
        connhub serve --port 8000
    """
    import uvicorn

    uvicorn.run(
        "connhub:application",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@typer_app.command()
def connections(url: str = typer.Option(DEFAULT_URL, help="Hub base URL")):
    """Display a table of the connections registered on the hub."""
    try:
        with HubClient(url) as client:
            data = client.connections()
    except httpx.HTTPError as e:
        _fail(e)

    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Registered Connections[/bold cyan]",
            border_style="cyan",
        )
    )

    table = Table("Key", "Ready", show_lines=True)
    for connection in data["connections"]:
        ready = "[green]yes[/green]" if connection["ready"] else "[red]no[/red]"
        table.add_row(connection["key"], ready)

    console.print(table)
    console.print(f"[bold]Summary:[/bold] {data['count']} connections")
    console.print()


@typer_app.command()
def broadcast(
    event: str,
    message: str,
    url: str = typer.Option(DEFAULT_URL, help="Hub base URL"),
):
    """
    Send an event to every ready connection.

    Example:
        connhub broadcast "system shutdown" "The system will shut down soon"
    """
    try:
        with HubClient(url) as client:
            data = client.broadcast(event, _parse_message(message))
    except httpx.HTTPError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Delivered to {data['delivered']} connections")


@typer_app.command()
def multicast(
    event: str,
    message: str,
    exclude: list[str] = typer.Option([], "--exclude", "-x", help="Key to skip"),
    url: str = typer.Option(DEFAULT_URL, help="Hub base URL"),
):
    """Send an event to every ready connection except the excluded keys."""
    try:
        with HubClient(url) as client:
            data = client.multicast(exclude, event, _parse_message(message))
    except httpx.HTTPError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Delivered to {data['delivered']} connections")


@typer_app.command()
def disconnect(
    key: str,
    url: str = typer.Option(DEFAULT_URL, help="Hub base URL"),
):
    """Disconnect the connection registered under KEY."""
    try:
        with HubClient(url) as client:
            client.disconnect(key)
    except httpx.HTTPError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Disconnected {key}")


@typer_app.command(name="disconnect-all")
def disconnect_all(url: str = typer.Option(DEFAULT_URL, help="Hub base URL")):
    """Disconnect every connection registered on the hub."""
    try:
        with HubClient(url) as client:
            data = client.disconnect_all()
    except httpx.HTTPError as e:
        _fail(e)
    console.print(
        f"[green]✓[/green] Disconnected {data['disconnected']} connections "
        f"({data['remaining']} still registered)"
    )


if __name__ == "__main__":
    typer_app()
