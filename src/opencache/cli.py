"""CLI entry point."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from opencache.core.config import get_settings
from opencache.core.logging import configure_logging

app = typer.Typer(
    name="opencache",
    help="Nix binary cache storage on GitHub Releases",
    no_args_is_help=True,
)
console = Console()


@app.command()
def version() -> None:
    """Show version."""
    from opencache import __version__

    console.print(f"opencache {__version__}")


@app.command()
def info() -> None:
    """Show configured storage backend."""
    settings = get_settings()

    console.print(f"[bold]Storage backend[/bold]  {settings.storage_backend}")
    console.print(f"[bold]Local path[/bold]       {settings.local_storage_path}")
    if settings.storage_backend == "github-releases":
        console.print(
            f"[bold]Release[/bold]          "
            f"{settings.github_owner}/{settings.github_repo}@{settings.github_release_tag}"
        )
    elif settings.storage_backend == "s3":
        console.print(f"[bold]Bucket[/bold]           {settings.s3_bucket}")


@app.command("generate-static")
def generate_static(
    output_dir: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory"),
    narinfo_dir: Optional[Path] = typer.Option(None, help="narinfo directory to export"),
    store_dir: Optional[str] = typer.Option(None, help="Nix store directory"),
    priority: Optional[int] = typer.Option(None, help="Substituter priority"),
) -> None:
    """Export narinfo files as a static binary cache site."""
    from opencache.static.site import generate_static_site

    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)

    if not settings.github_owner or not settings.github_repo:
        console.print(
            "[red]generate-static requires OPENCACHE_GITHUB_OWNER and OPENCACHE_GITHUB_REPO[/red]"
        )
        raise typer.Exit(code=1)

    result = asyncio.run(
        generate_static_site(
            narinfo_dir=narinfo_dir or settings.narinfo_dir,
            output_dir=output_dir or settings.static_output_dir,
            owner=settings.github_owner,
            repo=settings.github_repo,
            release_tag=settings.github_release_tag,
            store_dir=store_dir or settings.store_dir,
            priority=settings.priority if priority is None else priority,
            download_host=settings.github_download_host,
        )
    )

    console.print(f"[green]Exported {result.narinfo_count} narinfo files[/green] to {result.output_dir}")
    console.print(f"NAR downloads redirect to {result.nar_base_url}")


if __name__ == "__main__":
    app()
