"""
CLI commands for thumbnail worker management.

Builds the worker's adapters from settings and runs the consume loop.
"""

import asyncio
import logging

import click

from files_api.services import build_services
from files_api.settings import get_settings
from thumbnail_workers.worker import ThumbnailWorker

# Configure logging
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """CLI commands for thumbnail worker management"""
    pass


@cli.command()
@click.option("--concurrency", type=int, default=None,
              help="Tasks processed at the same time (defaults to WORKER_CONCURRENCY)")
@click.option("--once", is_flag=True, default=False,
              help="Process at most one task and exit")
def run(concurrency, once):
    """Start the thumbnail worker"""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    services = build_services(settings, with_sessions=False)
    worker = ThumbnailWorker(
        queue=services.queue,
        file_service=services.files,
        user_service=services.users,
        blob_store=services.blob_store,
        widths=settings.thumbnail_widths,
        concurrency=concurrency or settings.worker_concurrency,
        max_attempts=settings.worker_max_attempts,
        retry_delay=settings.worker_retry_delay,
        poll_interval=settings.worker_poll_interval,
    )
    click.echo(f"Starting thumbnail worker in {settings.deployment_mode} mode...")
    click.echo(f"Queue handler initialized: {type(services.queue).__name__}")

    try:
        if once:
            processed = asyncio.run(worker.run_once())
            click.echo("Processed one task" if processed else "Queue is empty")
        else:
            asyncio.run(worker.run())
    except KeyboardInterrupt:
        worker.stop()
        click.echo("Worker stopped")
    finally:
        services.close()


if __name__ == "__main__":
    cli()
