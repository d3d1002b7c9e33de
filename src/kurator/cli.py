"""Typer CLI for Kurator."""

import asyncio

import typer
from rich.console import Console

app = typer.Typer(name="kurator", help="Kurator: governance relationship CRM")
console = Console()


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Bind host"),
    port: int = typer.Option(8080, help="Bind port"),
):
    """Start the Kurator API server."""
    import uvicorn
    from kurator.app import create_app

    console.print(f"[bold green]Starting Kurator on {host}:{port}[/bold green]")
    uvicorn.run(create_app(), host=host, port=port)


async def _init_db() -> tuple[int, str, bool]:
    from kurator.common.config import get_settings
    from kurator.deps import get_db, get_reference_service, get_user_service

    settings = get_settings()
    db = get_db()
    await db.init()
    await db.create_all()
    try:
        async with db.get_session() as session:
            seeded = await get_reference_service().seed_defaults(session)
            admin, created = await get_user_service().ensure_admin(
                session, settings.admin_login, settings.admin_password,
            )
            return seeded, admin.login, created
    finally:
        await db.close()


@app.command("init-db")
def init_db():
    """Create tables, seed reference values and the bootstrap administrator."""
    from kurator.common.logging import setup_logging

    setup_logging("WARNING")
    seeded, login, created = asyncio.run(_init_db())
    console.print(f"  [created] {seeded} reference values")
    if created:
        console.print(f"  [created] administrator '{login}'")
    else:
        console.print(f"  [skip] administrator '{login}' already exists")
    console.print("[bold green]Database ready.[/bold green]")


@app.command()
def encrypt(
    value: str = typer.Argument(..., help="Plaintext field value"),
):
    """Encrypt one field value with the configured key."""
    from kurator.deps import get_encryptor

    console.print(get_encryptor().encrypt(value).ciphertext, soft_wrap=True)


@app.command()
def decrypt(
    value: str = typer.Argument(..., help="Stored ciphertext (v2 or legacy format)"),
):
    """Decrypt one stored field value with the configured key."""
    from kurator.common.encryption import EncryptionError
    from kurator.deps import get_encryptor

    try:
        console.print(get_encryptor().decrypt(value), soft_wrap=True)
    except EncryptionError as e:
        console.print(f"[bold red]{e.code}[/bold red] — {e.message}")
        raise typer.Exit(1)


@app.command()
def health(
    url: str = typer.Option("http://localhost:8080", help="Server URL"),
):
    """Check Kurator server health."""
    import httpx

    try:
        resp = httpx.get(f"{url}/health", timeout=5)
        data = resp.json()
        console.print(f"[bold green]{data['status']}[/bold green] — v{data['version']}")
    except (httpx.HTTPError, ValueError, KeyError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
