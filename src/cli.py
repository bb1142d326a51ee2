"""
Command-line interface for sensor-monitor.

Provides commands to run the API and the sensor stream consumer,
initialize the database, and run maintenance and diagnostic checks.

Usage:
    sensor-monitor serve                    # Run the HTTP API
    sensor-monitor worker                   # Run the sensor stream consumer
    sensor-monitor init-db                  # Create tables and default thresholds
    sensor-monitor health                   # Check PostgreSQL and Redis
    sensor-monitor publish-reading --gas 610 --temperature 20
    sensor-monitor email-test --to ops@example.com
    sensor-monitor fix-notification-status  # Normalize legacy status values
"""

import asyncio
import json
import signal
import sys

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Sensor Monitor - threshold alerting for gas, temperature and sound sensors."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
def serve(host: str | None, port: int | None, reload: bool, metrics: bool) -> None:
    """Start the HTTP API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    if metrics:
        get_metrics().start_server(port=settings.metrics_port)
        click.echo(f"Metrics available on http://localhost:{settings.metrics_port}/metrics")

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def worker(metrics: bool, metrics_port: int | None) -> None:
    """Run the sensor stream consumer."""
    from src.services.context import AppContext
    from src.services.sensor_stream import SensorStreamConsumer

    async def run():
        context = AppContext.from_settings()
        await context.connect()
        consumer = SensorStreamConsumer(context)

        if metrics:
            get_metrics().start_server(port=metrics_port)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda: asyncio.create_task(consumer.stop()))

        try:
            await consumer.start()
        finally:
            await context.close()

    asyncio.run(run())


@main.command("init-db")
def init_db() -> None:
    """Create the schema and seed the default thresholds."""
    from src.services.context import AppContext
    from src.storage.schema import create_tables

    async def run():
        context = AppContext.from_settings()
        await context.connect(redis_required=False)
        try:
            await create_tables(context.database)
            config = await context.thresholds.get_active()
        finally:
            await context.close()

        click.echo("Database initialized successfully")
        click.echo(f"Active thresholds: {json.dumps(config.to_dict())}")

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of PostgreSQL and Redis."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        from src.services.context import AppContext

        context = AppContext.from_settings()
        results = {"postgres": False, "redis": False}
        try:
            await context.connect()
            status = await context.health()
            results = {"postgres": status["database"], "redis": status["redis"]}
        except Exception as e:
            logger.error("Health check failed", error=str(e))
        finally:
            await context.close()

        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)
        for name, ok in results.items():
            icon = "✓" if ok else "✗"
            color = "green" if ok else "red"
            click.echo(click.style(f"  {icon} {name}: {ok}", fg=color))
        click.echo("-" * 40)

        if all(results.values()):
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        click.echo(click.style("Some services unhealthy!", fg="red"))
        sys.exit(1)

    asyncio.run(check())


@main.command("publish-reading")
@click.option("--gas", type=float, default=None, help="Gas concentration (ppm)")
@click.option("--temperature", type=float, default=None, help="Temperature (°C)")
@click.option("--sound", type=float, default=None, help="Sound level (dB)")
@click.option("--payload", default=None, help="Raw JSON payload, overrides the value options")
def publish_reading(
    gas: float | None,
    temperature: float | None,
    sound: float | None,
    payload: str | None,
) -> None:
    """Publish a test payload to the sensor stream, as a device would."""
    from src.queues.sensor_queue import SensorQueue

    if payload is not None:
        try:
            message = json.loads(payload)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--payload")
    else:
        message = {
            key: value
            for key, value in (("gas", gas), ("temperature", temperature), ("sound", sound))
            if value is not None
        }
        if not message:
            raise click.UsageError("Provide at least one of --gas, --temperature, --sound")

    async def run():
        queue = SensorQueue()
        await queue.connect()
        try:
            message_id = await queue.publish(message)
        finally:
            await queue.close()
        click.echo(f"Published {json.dumps(message)} as {message_id}")

    asyncio.run(run())


@main.command("email-test")
@click.option("--to", "recipient", required=True, help="Address to send the test email to")
def email_test(recipient: str) -> None:
    """Send a test email using the EMAIL_* configuration."""
    from src.errors import NotificationDeliveryError
    from src.notifications.notifier import EmailNotifier

    notifier = EmailNotifier()
    config = notifier.config
    click.echo(
        f"SMTP: host={config.smtp_host or '(unset)'} port={config.smtp_port} "
        f"user={config.smtp_user or '(none)'} from={config.from_address}"
    )

    try:
        asyncio.run(notifier.send_test(recipient))
    except NotificationDeliveryError as e:
        click.echo(click.style(f"Email test failed: {e}", fg="red"))
        sys.exit(1)
    click.echo(click.style(f"Test email sent to {recipient}", fg="green"))


@main.command("fix-notification-status")
def fix_notification_status() -> None:
    """Rewrite legacy notification status values (e.g. 'dangerous') to canonical ones."""
    from src.services.context import AppContext

    async def run():
        context = AppContext.from_settings()
        await context.connect(redis_required=False)
        try:
            counts = await context.notifications.normalize_severities()
        finally:
            await context.close()

        for severity, updated in counts.items():
            click.echo(f"  {severity}: {updated} updated")
        click.echo(f"Normalized {sum(counts.values())} notification(s)")

    asyncio.run(run())


if __name__ == "__main__":
    main()
