"""
ISP Payments CLI.

Command-line interface for common operator tasks.
"""

import asyncio
import json
import sys
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="isp-payments",
    help="ISP payment reconciliation CLI",
    add_completion=False,
)
console = Console()

VERSION = "1.0.0"


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def db_init():
    """Create payment tables if they do not exist."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    console.print(f"[blue]Creating tables on: {engine.url.render_as_string(hide_password=True)}[/blue]")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        console.print(f"[red]✗ Table creation failed: {e}[/red]")
        raise typer.Exit(1)
    console.print("[green]✓ Tables created/verified[/green]")


# =============================================================================
# Webhook Commands
# =============================================================================

@app.command()
def sign(
    payload_file: Path = typer.Argument(..., exists=True, readable=True, help="JSON webhook body"),
    secret: str = typer.Option(None, envvar="PAYMENT_WEBHOOK_SECRET", help="Webhook secret"),
):
    """Compute the webhook signature for a JSON payload (integration testing)."""
    from pydantic import ValidationError
    from shared.utils.payment_schemas import WebhookPayload
    from rest_api.services.payments import SignatureVerifier

    if not secret:
        console.print("[red]No secret: pass --secret or set PAYMENT_WEBHOOK_SECRET[/red]")
        raise typer.Exit(1)

    try:
        payload = WebhookPayload.model_validate(json.loads(payload_file.read_text()))
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]✗ Invalid payload: {e}[/red]")
        raise typer.Exit(1)

    signature = SignatureVerifier(secret).sign(payload.signable())
    signed = payload.model_copy(update={"signature": signature})
    console.print(f"[green]signature:[/green] {signature}")
    console.print_json(json.dumps(signed.model_dump(by_alias=True, mode="json")))


# =============================================================================
# Payment Commands
# =============================================================================

@app.command()
def status(
    transaction_id: str = typer.Argument(..., help="Transaction id / external reference"),
):
    """Check a payment's status (local ledger first, then Mercado Pago)."""
    from shared.infrastructure.db import get_db_context
    from rest_api.core.dependencies import get_gateway_client, get_signature_verifier
    from rest_api.services.payments import (
        PaymentError,
        PaymentLedger,
        PaymentReconciler,
    )

    async def _status():
        with get_db_context() as db:
            reconciler = PaymentReconciler(
                ledger=PaymentLedger(db),
                verifier=get_signature_verifier(),
                gateway=get_gateway_client(),
            )
            return await reconciler.check_status(transaction_id)

    try:
        view = asyncio.run(_status())
    except PaymentError as e:
        console.print(f"[red]✗ {e.kind.value}: {e.message}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Payment {transaction_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Status", view.status.value)
    table.add_row("Amount", str(view.amount))
    table.add_row("Customer", str(view.customer_id))
    table.add_row("Service", str(view.service_id))
    table.add_row("Processed at", str(view.processed_at or "-"))
    table.add_row("Source", view.source)
    console.print(table)


@app.command()
def recent(
    customer_id: int = typer.Argument(..., help="Customer id"),
    service_id: int = typer.Argument(..., help="Service id"),
    limit: int = typer.Option(3, "--limit", "-l", help="Number of payments (1-50)"),
):
    """List the latest payments of a customer's service."""
    from shared.infrastructure.db import get_db_context
    from rest_api.services.payments import PaymentLedger

    with get_db_context() as db:
        payments = PaymentLedger(db).recent(customer_id, service_id, limit)

        if not payments:
            console.print("[yellow]No payments found[/yellow]")
            return

        table = Table(title=f"Payments: customer {customer_id}, service {service_id}")
        table.add_column("Transaction", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Amount", justify="right")
        table.add_column("Processed at", style="yellow")

        for payment in payments:
            table.add_row(
                payment.transaction_id,
                payment.status,
                str(payment.amount),
                str(payment.processed_at or "-"),
            )

    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000/api/health/detailed", help="Health endpoint"),
):
    """Check API health."""
    import httpx

    table = Table(title="Service Health")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Detail", style="yellow")

    start = time.perf_counter()
    try:
        response = httpx.get(url, timeout=5.0)
    except httpx.HTTPError as e:
        table.add_row("REST API", f"✗ {type(e).__name__}", "-")
        console.print(table)
        raise typer.Exit(1)
    elapsed = (time.perf_counter() - start) * 1000

    body = response.json()
    table.add_row("REST API", body.get("status", "?"), f"{elapsed:.0f}ms")
    for name, component in body.get("components", {}).items():
        table.add_row(name, component.get("status", "?"), component.get("error", ""))
    for name, breaker in body.get("circuit_breakers", {}).items():
        table.add_row(f"breaker:{name}", breaker.get("state", "?"), f"failed={breaker.get('failed_calls', 0)}")

    console.print(table)
    if response.status_code != 200:
        raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    table = Table(title="ISP Payments Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "1.0.0")
    table.add_row("CLI", VERSION)
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
